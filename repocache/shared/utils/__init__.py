"""Shared utilities: datetime and generators."""

from repocache.shared.utils.datetime import utc_now
from repocache.shared.utils.generators import generate_cuid

__all__ = ["generate_cuid", "utc_now"]
