"""FastAPI application and endpoints."""
