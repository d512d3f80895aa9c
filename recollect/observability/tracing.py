"""
OpenTelemetry spans for the retrieval path.

Spans are opened around ``retrieve_context``, every source search and every
memory store. Tracing stays off unless TelemetryConfig enables it, and the
raw query text is attached only with ``capture_content``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from opentelemetry import trace

from recollect.version import __version__

MAX_CAPTURED_CHARS = 16000


class RetrievalTracer:
    """Opens spans through the OpenTelemetry API, or does nothing when disabled."""

    def __init__(
        self,
        *,
        enabled: bool = False,
        capture_content: bool = False,
        capture_content_max_chars: int = 1000,
    ):
        self.enabled = enabled
        self.capture_content = capture_content
        self.capture_limit = min(max(capture_content_max_chars, 0), MAX_CAPTURED_CHARS)
        self._otel = (
            trace.get_tracer("recollect.retrieval", instrumenting_library_version=__version__)
            if enabled
            else None
        )

    @classmethod
    def from_config(cls, telemetry) -> "RetrievalTracer":
        return cls(
            enabled=telemetry.enabled,
            capture_content=telemetry.capture_content,
            capture_content_max_chars=telemetry.capture_content_max_chars,
        )

    @property
    def active(self) -> bool:
        return self._otel is not None

    @contextmanager
    def span(self, name: str, attributes: Optional[dict] = None) -> Iterator[None]:
        """Span named ``name``; attributes whose value is None are dropped."""
        if self._otel is None:
            yield
            return
        clean = {k: v for k, v in (attributes or {}).items() if v is not None}
        with self._otel.start_as_current_span(name, attributes=clean):
            yield

    def record(self, **attributes) -> None:
        """Attach attributes to whichever span is current."""
        if self._otel is None:
            return
        current = trace.get_current_span()
        for key, value in attributes.items():
            if value is not None:
                current.set_attribute(f"recollect.{key}", value)

    def query_attribute(self, text: Optional[str]) -> Optional[str]:
        """The query text to record, or None when content capture is off."""
        if not (self.capture_content and text and self.capture_limit):
            return None
        return text[: self.capture_limit]
