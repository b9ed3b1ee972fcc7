"""
Shared utilities for the method result cache.

This package aggregates the ambient building blocks used by the caching
library and its admin service:

- config: Settings via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service scaffolding (health, metrics, error handlers)

Do not import from method_cache into shared/.
"""
