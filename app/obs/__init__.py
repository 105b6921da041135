"""Observability: request context, structured logging, metrics and middleware."""

__all__ = [
    "middleware",
    "metrics",
    "logger",
    "context",
]
