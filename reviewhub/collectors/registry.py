"""Validator registry for runtime validator selection.

Provides decorator-based registration and a factory function for the
per-platform review validators.
"""

from typing import TYPE_CHECKING

from reviewhub.core.exceptions import BatchValidationError
from reviewhub.models.schemas import Platform

if TYPE_CHECKING:
    from reviewhub.collectors.validation.base import PlatformValidator


_validators: dict[Platform, type["PlatformValidator"]] = {}


def register_validator(platform: Platform):
    """Decorator to register a validator class.

    Args:
        platform: The Platform this validator handles.

    Returns:
        Decorator function that registers the class.

    Example:
        @register_validator(Platform.BOOKING)
        class BookingValidator(PlatformValidator):
            ...
    """

    def decorator(cls: type["PlatformValidator"]):
        cls.platform = platform
        _validators[platform] = cls
        return cls

    return decorator


def get_validator(platform: Platform | str) -> "PlatformValidator":
    """Factory function to get a validator instance.

    Args:
        platform: Platform enum or its string value.

    Returns:
        Instantiated validator.

    Raises:
        BatchValidationError: If the platform is unknown or has no validator.
    """
    try:
        platform = Platform(platform)
    except ValueError as e:
        raise BatchValidationError(
            f"Unknown platform: {platform}", {"platform": str(platform)}
        ) from e
    if platform not in _validators:
        raise BatchValidationError(
            f"No validator registered for platform: {platform.value}",
            {"platform": platform.value},
        )
    return _validators[platform]()


def list_validators() -> list[Platform]:
    """List all platforms that have a registered validator."""
    return list(_validators.keys())
