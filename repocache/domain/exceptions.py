"""Domain exceptions for the repository layer.

Defines errors raised by repositories and their callers. These exceptions
are independent of the cache backend; infrastructure errors extend
RepoCacheException in repocache.infrastructure.exceptions so an outer layer
can map every error the same way (message, error_code, details).
"""

from typing import Any


class RepoCacheException(Exception):
    """Base exception for all repocache errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. argument, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class InvalidArgumentException(RepoCacheException):
    """Raised when a query argument is malformed (condition arity, operator, column, sort)."""

    def __init__(self, message: str, argument: str | None = None) -> None:
        """Initialize with message and optional argument name.

        Args:
            message: Description of the invalid argument.
            argument: Optional parameter name (e.g. 'conditions', 'sorts').
        """
        details = {"argument": argument} if argument else {}
        super().__init__(message, "INVALID_ARGUMENT", details)


class ResourceNotFoundException(RepoCacheException):
    """Raised when a required record is not found (e.g. first_or_fail)."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (usually the model name).
            resource_id: The ID or lookup description that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class UnsupportedOperationException(RepoCacheException):
    """Raised when an operation does not apply to a model (e.g. restore without soft deletes)."""

    def __init__(self, operation: str, resource_type: str) -> None:
        super().__init__(
            f"Operation '{operation}' is not supported by {resource_type}",
            "UNSUPPORTED_OPERATION",
            {"operation": operation, "resource_type": resource_type},
        )


class SqlNotConfiguredException(RepoCacheException):
    """Raised when a database session is requested but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
