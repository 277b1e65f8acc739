"""repocache: SQLAlchemy repositories with a transparent read-through cache."""

__version__ = "1.0.0"
