"""
alertsync: alert rule compiler and Alertmanager state synchronizer.
"""

__version__ = "0.1.0"
