# errors.py
"""Error taxonomy shared by the loaders, the request pipeline and the service."""
from __future__ import annotations

from typing import Optional

__all__ = [
    "RevenueServiceError",
    "LoadError",
    "ValidationError",
    "InvalidParameterError",
    "SchemaMismatchError",
]


class RevenueServiceError(Exception):
    """Base class for every error raised by this project."""


class LoadError(RevenueServiceError, RuntimeError):
    """A startup artifact (model or geometry file) is missing or corrupt."""


class ValidationError(RevenueServiceError, ValueError):
    """A request field could not be coerced to its declared type."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidParameterError(RevenueServiceError, ValueError):
    """A well-formed parameter is out of its allowed range (e.g. neighbour count)."""


class SchemaMismatchError(RevenueServiceError, RuntimeError):
    """The assembled feature vector does not match the model's schema."""

    def __init__(self, message: str, missing=(), unexpected=()):
        super().__init__(message)
        self.missing = tuple(missing)
        self.unexpected = tuple(unexpected)
