"""
Shared utilities for the Place Search Proxy.

This package aggregates common building blocks consumed by services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- secrets_manager: Named secret lookup (environment, encrypted file)
- base_service: FastAPI service skeleton

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
