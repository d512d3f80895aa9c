"""Observability helpers for optional telemetry integrations."""

from .tracing import RetrievalTracer

__all__ = ["RetrievalTracer"]
