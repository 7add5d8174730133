"""
alertsync command line.

Usage:
    alertsync run
    alertsync render [--output config.yml]
    alertsync sync-state
    alertsync serve [--host 0.0.0.0] [--port 8080]
"""

from __future__ import annotations

import argparse
import asyncio
import signal
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.table import Table

from alertsync import __version__
from alertsync.config import get_settings
from alertsync.controller import AlertController
from alertsync.core.errors import ExitCode, main_with_error_handling
from alertsync.logging import configure_logging

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alertsync",
        description="Alertmanager config reconciler and alert state synchronizer",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Render logs for humans instead of JSON",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "run",
        help="Publish the Alertmanager config and run the state-sync and pod-watch loops",
    )

    render_parser = subparsers.add_parser(
        "render",
        help="Print the Alertmanager config compiled from the rule store",
    )
    render_parser.add_argument("--output", "-o", help="Write the document to a file instead")

    subparsers.add_parser("sync-state", help="Run a single state reconcile tick")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the HTTP API; the reconcile loops run inside the server",
    )
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8080)
    return parser


async def _run(controller: AlertController) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    try:
        await controller.run(stop)
    finally:
        await controller.close()


async def _render(controller: AlertController, output: str | None) -> int:
    try:
        config = await controller.config_syncer.render()
    finally:
        await controller.close()

    document = config.to_yaml()
    if output:
        Path(output).write_text(document, encoding="utf-8")
        console.print(f"[green]Wrote[/green] {output} ({len(config.receivers)} receivers)")
    else:
        console.print(document, markup=False, highlight=False)
    return ExitCode.SUCCESS


async def _sync_state(controller: AlertController) -> int:
    try:
        report = await controller.state_syncer.sync_once()
    finally:
        await controller.close()

    if report.skipped:
        console.print("[yellow]State sync skipped: Alertmanager or rule store unavailable[/yellow]")
        return ExitCode.ENGINE_ERROR

    table = Table(title=f"State sync: {controller.settings.cluster_name}")
    table.add_column("Rules", justify="right")
    table.add_column("Persisted", justify="right")
    table.add_column("Silences added", justify="right")
    table.add_column("Silences removed", justify="right")
    table.add_column("Failures", justify="right")
    table.add_row(
        str(report.rules),
        str(report.persisted),
        str(report.silences_added),
        str(report.silences_removed),
        str(report.failures),
    )
    console.print(table)
    return ExitCode.SUCCESS if report.failures == 0 else ExitCode.ENGINE_ERROR


@main_with_error_handling()
def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level.upper(), json=not args.console_logs)

    if args.command == "serve":
        import uvicorn

        from alertsync.api.main import create_app

        uvicorn.run(create_app(), host=args.host, port=args.port, log_level=settings.log_level.lower())
        return ExitCode.SUCCESS

    controller = AlertController(settings)
    if args.command == "run":
        asyncio.run(_run(controller))
        return ExitCode.SUCCESS
    if args.command == "render":
        return asyncio.run(_render(controller, args.output))
    return asyncio.run(_sync_state(controller))


if __name__ == "__main__":
    raise SystemExit(main())
