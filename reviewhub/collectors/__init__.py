"""
Review collectors: per-platform validation and normalization.

- registry: decorator-based validator registration
- validation: alias resolution and schema checks per platform
- normalization: rescaling and mapping to the canonical review model
"""

from reviewhub.collectors import validation  # noqa: F401  registers validators
from reviewhub.collectors.normalization import ReviewNormalizer, build_default_normalizer
from reviewhub.collectors.registry import get_validator, list_validators, register_validator

__all__ = [
    "ReviewNormalizer",
    "build_default_normalizer",
    "get_validator",
    "list_validators",
    "register_validator",
]
