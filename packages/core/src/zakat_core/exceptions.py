"""Custom exceptions for the Zakat worksheet.

This module provides a hierarchy of exception classes for consistent error
handling across the worksheet. All exceptions inherit from ZakatError,
making it easy to catch all application-specific errors.

Very few of these ever reach the user. The calculation pipeline coerces its
inputs instead of raising, storage faults degrade to defaults and price
lookup faults become an "unavailable" status. What remains are programmer
errors (catalog mismatches, unknown field ids) and configuration problems.

Example:
    try:
        quote = await source.fetch_quote()
    except PriceFetchError as e:
        if e.recoverable:
            # Ask the user to enter the price manually
            ...
"""

from typing import Any, Optional


class ZakatError(Exception):
    """Base exception for all Zakat worksheet errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise ZakatError("Something went wrong", details={"code": 500})
        ZakatError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ZakatError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error is potentially recoverable through
                retry or manual input. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class CatalogError(ZakatError):
    """Error raised when a field group references ids outside the catalog.

    This is a programmer error detected once, when an aggregator is built,
    never while summing.

    Attributes:
        group: Name of the offending group.
        missing_ids: Field ids that are not in the catalog.
    """

    def __init__(
        self,
        message: str,
        *,
        group: Optional[str] = None,
        missing_ids: Optional[list[str]] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.group = group
        self.missing_ids = missing_ids or []

        if group:
            self.details["group"] = group
        if missing_ids:
            self.details["missing_ids"] = missing_ids


class WorksheetValidationError(ZakatError):
    """Error raised when a worksheet edit cannot be applied.

    Attributes:
        field: The field that failed validation.
        value: The rejected value (if safe to include).
        constraint: The validation constraint that was violated.

    Example:
        >>> raise WorksheetValidationError(
        ...     "Unknown worksheet field",
        ...     field="yacht",
        ...     constraint="Must be a field of the catalog",
        ... )
        WorksheetValidationError: Unknown worksheet field
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize WorksheetValidationError.

        Args:
            message: Human-readable error description.
            field: The name of the field that failed validation.
            value: The rejected value.
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed by user correction.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class UnknownFieldError(WorksheetValidationError):
    """Error raised when an edit targets a field id outside the catalog."""

    def __init__(self, field_id: str) -> None:
        super().__init__(
            f"Unknown worksheet field: {field_id}",
            field=field_id,
            constraint="Must be a field of the catalog",
            recoverable=False,
        )


class PriceFetchError(ZakatError):
    """Error raised when the silver spot price cannot be obtained.

    Covers transport failures, non-success status codes and payloads that do
    not carry a usable numeric price. Callers turn it into the
    "unavailable - enter manually" status.

    Attributes:
        source: URL of the price source.
        status_code: HTTP status code, if a response was received.
        reason: Short machine-friendly reason (``"http_status"``,
            ``"transport"``, ``"bad_payload"``).
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.source = source
        self.status_code = status_code
        self.reason = reason

        if source:
            self.details["source"] = source
        if status_code is not None:
            self.details["status_code"] = status_code
        if reason:
            self.details["reason"] = reason


class StorageError(ZakatError):
    """Error raised when the local store cannot be read or written.

    The store itself catches these and falls back to in-memory defaults;
    they are only visible to code using the low-level helpers directly.

    Attributes:
        key: Storage key being accessed.
        path: Backing file path.
        operation: ``"read"`` or ``"write"``.
    """

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        path: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.key = key
        self.path = path
        self.operation = operation

        if key:
            self.details["key"] = key
        if path:
            self.details["path"] = path
        if operation:
            self.details["operation"] = operation


class ConfigurationError(ZakatError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Storage directory is not writable",
        ...     config_key="ZAKAT_STORAGE_DIR",
        ...     expected="Writable directory",
        ... )
        ConfigurationError: Storage directory is not writable
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "ZakatError",
    "CatalogError",
    "WorksheetValidationError",
    "UnknownFieldError",
    "PriceFetchError",
    "StorageError",
    "ConfigurationError",
]
