"""SQLAlchemy-backed rule store."""
