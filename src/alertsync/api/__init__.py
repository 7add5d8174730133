"""HTTP API for managing alert rules and notifiers."""
