"""Utilities for tracing the steps of a chart inflation.

Each step is wrapped in `trace_context` which logs the nested step label on
entry and exit. Timings may optionally be collected for a summary:
```python
with get_trace_collector() as collector:
    await generator.generate()
for name, duration in collector.timings.items():
    print(name, duration)
```
"""

from collections import defaultdict
from collections.abc import Generator
import contextvars
from contextlib import contextmanager
import logging
from time import perf_counter


_LOGGER = logging.getLogger(__name__)

__all__ = [
    "TraceCollector",
    "get_trace_collector",
    "trace_context",
]


class TraceCollector:
    """Accumulates the elapsed time of each traced step by name."""

    def __init__(self) -> None:
        """Initialize TraceCollector."""
        self.timings: dict[str, float] = defaultdict(float)
        self.counts: dict[str, int] = defaultdict(int)

    def add(self, name: str, duration: float) -> None:
        """Record a single run of the named step."""
        self.timings[name] += duration
        self.counts[name] += 1


trace: contextvars.ContextVar[list[str]] = contextvars.ContextVar("trace")
_collector: contextvars.ContextVar[TraceCollector | None] = contextvars.ContextVar(
    "trace_collector", default=None
)


@contextmanager
def get_trace_collector() -> Generator[TraceCollector, None, None]:
    """Collect timings for all steps traced within the context."""
    collector = TraceCollector()
    token = _collector.set(collector)
    try:
        yield collector
    finally:
        _collector.reset(token)


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    stack = trace.get([])
    token = trace.set(stack + [name])
    label = " > ".join(stack + [name])
    t1 = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    finally:
        t2 = perf_counter()
        trace.reset(token)
        if (collector := _collector.get()) is not None:
            collector.add(name, t2 - t1)
        _LOGGER.debug("[Trace] < %s (%0.2fs)", label, (t2 - t1))
