"""Presentation layer: FastAPI dependency providers."""
