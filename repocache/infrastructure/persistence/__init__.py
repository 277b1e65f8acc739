"""Persistence: SQLAlchemy engine/session, models and repositories."""
