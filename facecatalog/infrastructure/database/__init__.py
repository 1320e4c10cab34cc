"""SQLAlchemy models, sessions and repositories."""
