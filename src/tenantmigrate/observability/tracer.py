"""
Tracers handed to the migration stages.

Stages never import OpenTelemetry. Each one takes a ``tracer`` argument
(or builds one with create_tracer) and wraps its units of work in
``tracer.span(...)``. Tests pass a MockTracer to see which spans a stage
opened and with which attributes.

Example:
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> with tracer.span("tenantmigrate.snapshot.table", {ATTR_TABLE_NAME: name}) as span:
    ...     items = await store.scan_all(name)
    ...     if span:
    ...         span.set_attribute(ATTR_RECORD_COUNT, len(items))
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from opentelemetry.trace import Span

try:
    from opentelemetry import trace

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False
    trace = None  # type: ignore[assignment]


def should_trace(enable_tracing: bool) -> bool:
    """True when a stage asked for tracing and OpenTelemetry is importable."""
    return enable_tracing and OTEL_AVAILABLE


@runtime_checkable
class Tracer(Protocol):
    """
    Opens spans around units of work.

    ``span`` yields the live span, or None when nothing is recorded, so
    callers only compute result attributes behind ``if span:``.
    """

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]: ...

    @property
    def enabled(self) -> bool: ...


class NullTracer:
    """Tracer used when tracing is off; every span is None."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Iterator[None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by the globally configured OpenTelemetry provider.

    Attributes whose value is None (an unmapped tenant, a table without a
    sort key) are left off the span, since OpenTelemetry rejects them.

    Raises:
        ImportError: If opentelemetry-api is not installed
    """

    def __init__(self, tracer_name: str) -> None:
        if trace is None:
            raise ImportError("opentelemetry-api is required for OpenTelemetryTracer")
        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        cleaned = {k: v for k, v in (attributes or {}).items() if v is not None}
        return self._tracer.start_as_current_span(name, attributes=cleaned)

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Tracer for tests: remembers every span opened, in order.

    Spans are recorded as ``(name, attributes)`` pairs and yield None, so
    result attributes set behind ``if span:`` are not recorded.

    Example:
        >>> tracer = MockTracer()
        >>> driver = MigrationDriver(store, store, config, tracer=tracer)
        >>> await driver.migrate_table(mapping, MigrationMode.DRY_RUN, scope)
        >>> tracer.span_names
        ['tenantmigrate.driver.migrate_table']
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Iterator[None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Build the tracer a stage uses when none is injected.

    Returns:
        OpenTelemetryTracer when tracing is enabled and OpenTelemetry is
        importable, NullTracer otherwise
    """
    if should_trace(enable_tracing):
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "OTEL_AVAILABLE",
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "Tracer",
    "create_tracer",
    "should_trace",
]
