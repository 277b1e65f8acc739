"""Application DTOs."""

from repocache.application.dtos.pagination import Page

__all__ = ["Page"]
