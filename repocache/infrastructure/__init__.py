"""Infrastructure: cache backend and SQLAlchemy persistence."""
