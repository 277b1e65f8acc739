"""Application interfaces (ports)."""

from repocache.application.interfaces.repositories import (
    Columns,
    Conditions,
    IRepository,
    Relations,
    Sorts,
)

__all__ = ["Columns", "Conditions", "IRepository", "Relations", "Sorts"]
