"""
Core exception hierarchy for ReviewHub.

Provides standardized exception types with categorization for retry logic.
All components should use these exceptions instead of generic Exception.
"""

from typing import Any, Optional


# =============================================================================
# Base Exceptions
# =============================================================================


class ReviewHubError(Exception):
    """Base exception for all ReviewHub errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(ReviewHubError):
    """
    Transient errors that should be retried.

    Examples: Timeouts, unreachable webhook targets, storage hiccups.
    """

    pass


class PermanentError(ReviewHubError):
    """
    Errors that won't be fixed by retrying.

    Examples: Invalid input, missing required data, unknown resources.
    """

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class RecordValidationError(PermanentError):
    """A single scraped record failed structural, type or range checks.

    Always recovered by the caller: the record is skipped and counted.
    """

    def __init__(
        self,
        platform: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.platform = platform
        super().__init__(f"[{platform}] {message}", details)


class BatchValidationError(PermanentError):
    """The batch itself is malformed (not a list, unknown platform, ...)."""

    pass


# =============================================================================
# Reconciliation Errors
# =============================================================================


class ReconciliationError(ReviewHubError):
    """Cascade delete or notification failed during identifier reconciliation.

    Logged, never raised to the caller of the configuration action.
    """

    def __init__(
        self,
        platform: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.platform = platform
        super().__init__(f"[{platform}] {message}", details)


class WebhookDeliveryError(RetryableError):
    """Outbound scraper webhook could not be delivered."""

    pass


# =============================================================================
# Lookup / Storage Errors
# =============================================================================


class NotFoundError(PermanentError):
    """Requested resource does not exist."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            f"{resource} not found: {identifier}",
            {"resource": resource, "id": str(identifier)},
        )


class StorageError(RetryableError):
    """Backing store failed to read or write."""

    pass


class StorageRejectedError(StorageError):
    """The database answered and refused the statement.

    Constraint, permission and schema errors. Never retried.
    """

    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PermanentError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitBreakerOpenError(RetryableError):
    """Raised when circuit breaker is open and blocking requests."""

    def __init__(self, service: str, recovery_time: float):
        self.service = service
        self.recovery_time = recovery_time
        super().__init__(
            f"Circuit breaker open for {service}. Recovery in {recovery_time:.1f}s",
            {"service": service, "recovery_time": recovery_time},
        )
