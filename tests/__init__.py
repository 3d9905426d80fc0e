"""
ReviewHub Test Suite.

This package contains all tests for ReviewHub:
- unit/: Validators, normalizer, aggregation, services
- integration/: The FastAPI app driven in-process
"""
