"""Model building blocks: declarative Base and mixins."""

from repocache.infrastructure.persistence.database import Base
from repocache.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TimestampMixin,
)

__all__ = ["Base", "CuidMixin", "SoftDeleteMixin", "TimestampMixin"]
