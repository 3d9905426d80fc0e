"""
ReviewHub - review ingestion, normalization and windowed analytics.

This package contains the core modules for the ReviewHub service:
- collectors: per-platform validation and normalization of scraped reviews
- analytics: windowed aggregation, rating distribution, period comparison
- services: ingestion, analytics orchestration, market identifier reconciliation
- storage: in-memory and Supabase persistence
- api: FastAPI application and endpoints
- config: Pydantic settings and configuration
- models: Data models and schemas
"""

__version__ = "0.1.0"
