"""
Shared utilities for the feature-flag runtime.

This package aggregates common building blocks consumed by the runtime core:

- config: Runtime configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for network collaborators

Anything used by more than one runtime component should live here to avoid
import cycles. Do not import from service_flags into shared/.
"""
