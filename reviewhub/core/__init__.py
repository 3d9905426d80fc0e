"""
Core infrastructure modules for ReviewHub.

Provides common utilities used across the application:
- exceptions: Standardized exception hierarchy
- numeric: NaN/Infinity-safe rating arithmetic
- circuit_breaker: Resilience pattern for outbound webhooks
"""

from reviewhub.core.exceptions import (
    ReviewHubError,
    RetryableError,
    PermanentError,
    RecordValidationError,
    BatchValidationError,
    ReconciliationError,
    WebhookDeliveryError,
    NotFoundError,
    StorageError,
    StorageRejectedError,
    ConfigurationError,
    CircuitBreakerOpenError,
)

from reviewhub.core.numeric import (
    bound,
    clamp_rating,
    finite_values,
    is_valid_rating,
    percent,
    rescale,
    safe_average,
    safe_ratio,
    to_number,
)

__all__ = [
    # Exceptions
    "ReviewHubError",
    "RetryableError",
    "PermanentError",
    "RecordValidationError",
    "BatchValidationError",
    "ReconciliationError",
    "WebhookDeliveryError",
    "NotFoundError",
    "StorageError",
    "StorageRejectedError",
    "ConfigurationError",
    "CircuitBreakerOpenError",
    # Numeric guard
    "bound",
    "clamp_rating",
    "finite_values",
    "is_valid_rating",
    "percent",
    "rescale",
    "safe_average",
    "safe_ratio",
    "to_number",
]
