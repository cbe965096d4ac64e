"""Recorder API — what application code calls to record metrics.

The shape follows prometheus_client on purpose, so code written against
it reads the same:

  ERRORS = registry.counter("get_products_error_count", "...", ["stage"])
  ERRORS.inc(stage="fill_prices")
  ERRORS.labels(stage="fill_prices").inc()

  DURATION = registry.histogram("request_duration_seconds", "...", ["route"])
  with DURATION.labels(route="/products").time():
      ...

The difference is that every recorder is bound to an explicit Registry
instead of a process-global one.

labels() resolves the series once and returns a child that records
straight into it, which is the cheapest option on a hot path.
"""

from __future__ import annotations

import functools
import inspect
import time
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from product_metrics.metrics.types import MetricHandle, TagSet

if TYPE_CHECKING:
    from product_metrics.metrics.registry import Registry

F = TypeVar("F", bound=Callable[..., Any])


class _ExceptionCounter:
    """Context manager and decorator that counts escaping exceptions.

    The exception is always re-raised unchanged; counting is a side effect.
    """

    def __init__(
        self,
        child: BoundCounter,
        exc_types: tuple[type[BaseException], ...],
    ) -> None:
        self._child = child
        self._exc_types = exc_types

    def __enter__(self) -> None:
        return None

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None and issubclass(exc_type, self._exc_types):
            self._child.inc()
        return False

    def __call__(self, func: F) -> F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self:
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with self:
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]


class BoundCounter:
    """A counter already resolved to one series."""

    def __init__(self, registry: Registry, handle: MetricHandle, tags: TagSet) -> None:
        self._registry = registry
        self._handle = handle
        self._tags = tags
        # Resolve (and validate) the series up front.
        registry.get_or_create_series(handle, tags)

    def inc(self, delta: float = 1) -> None:
        self._registry.increment(self._handle, self._tags, delta)

    def count_exceptions(
        self, *exc_types: type[BaseException]
    ) -> _ExceptionCounter:
        return _ExceptionCounter(self, exc_types or (Exception,))


class BoundHistogram:
    """A histogram already resolved to one series."""

    def __init__(self, registry: Registry, handle: MetricHandle, tags: TagSet) -> None:
        self._registry = registry
        self._handle = handle
        self._tags = tags
        registry.get_or_create_series(handle, tags)

    def observe(self, value: float) -> None:
        self._registry.observe(self._handle, self._tags, value)

    @contextmanager
    def time(self, clock: Callable[[], float] = time.monotonic) -> Iterator[None]:
        """Observe the elapsed seconds of the block, even if it raises."""
        start = clock()
        try:
            yield
        finally:
            self.observe(max(clock() - start, 0.0))


class Counter:
    """Recorder for a registered counter."""

    def __init__(self, registry: Registry, handle: MetricHandle) -> None:
        self.registry = registry
        self.handle = handle

    @property
    def name(self) -> str:
        return self.handle.name

    def labels(self, **tags: object) -> BoundCounter:
        return BoundCounter(self.registry, self.handle, TagSet.of(tags))

    def inc(self, delta: float = 1, /, **tags: object) -> None:
        self.registry.increment(self.handle, tags, delta)

    def count_exceptions(
        self, *exc_types: type[BaseException], **tags: object
    ) -> _ExceptionCounter:
        """Count exceptions of exc_types (default: Exception) escaping a block.

            with ERRORS.count_exceptions(stage="fill_prices"):
                await fill_prices(products)
        """
        return self.labels(**tags).count_exceptions(*exc_types)


class Histogram:
    """Recorder for a registered histogram."""

    def __init__(self, registry: Registry, handle: MetricHandle) -> None:
        self.registry = registry
        self.handle = handle

    @property
    def name(self) -> str:
        return self.handle.name

    def labels(self, **tags: object) -> BoundHistogram:
        return BoundHistogram(self.registry, self.handle, TagSet.of(tags))

    def observe(self, value: float, /, **tags: object) -> None:
        self.registry.observe(self.handle, tags, value)

    def time(
        self, clock: Callable[[], float] = time.monotonic, /, **tags: object
    ) -> AbstractContextManager[None]:
        return self.labels(**tags).time(clock)
