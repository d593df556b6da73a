"""
Shared utilities for full-sync processes.

Provides:
- logging: root logger setup and formatters
- tracing: OpenTelemetry spans
- metrics: Prometheus helpers and HTTP endpoint
- retry: exponential backoff decorators
- sql_safety: identifier validation and quoting
"""

__version__ = "1.0.0"
__all__ = ["logging", "tracing", "metrics", "retry", "sql_safety"]
