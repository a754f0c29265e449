"""
Batching queues for outbound telemetry events.
"""

import asyncio
import inspect
from typing import Any, Callable, Generic, List, Optional, Protocol, Set, TypeVar

from shared.config import RuntimeConfig
from shared.logging import get_logger
from shared.metrics import RuntimeMetrics

T = TypeVar("T")

Sink = Callable[[List[Any]], Any]
BatchComparator = Callable[[Any, Any], bool]
DeliveryErrorHook = Callable[[BaseException, List[Any]], None]


class EventQueue(Protocol):
    """Common surface of the queue variants."""

    def start(self) -> None:
        ...

    async def stop(self) -> Any:
        ...

    def enqueue(self, event: Any) -> None:
        ...


def _always_compatible(first: Any, second: Any) -> bool:
    return True


class _Deliveries:
    """Fire-and-forget sink invocations and their outcomes."""

    def __init__(self, logger, on_delivery_error: Optional[DeliveryErrorHook], metrics: Optional[RuntimeMetrics]):
        self.logger = logger
        self.on_delivery_error = on_delivery_error
        self.metrics = metrics
        # Held until settled so pending deliveries are not garbage collected
        self._in_flight: Set["asyncio.Future"] = set()

    def dispatch(self, sink: Sink, batch: List[Any]) -> Any:
        """Hand a batch to a sink without waiting on it."""
        result = sink(batch)
        if not inspect.isawaitable(result):
            return result

        future = asyncio.ensure_future(result)
        self._in_flight.add(future)
        future.add_done_callback(lambda done: self._settled(done, batch))
        return future

    def _settled(self, future: "asyncio.Future", batch: List[Any]) -> None:
        self._in_flight.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            return

        self.logger.warning("Event delivery failed", batch_size=len(batch), error=str(exc))
        if self.metrics:
            self.metrics.record_delivery_failure()
        if self.on_delivery_error is not None:
            self.on_delivery_error(exc, batch)


class PassThroughQueue(Generic[T]):
    """Delivers every event immediately as a batch of one."""

    def __init__(
        self,
        sink: Sink,
        *,
        on_delivery_error: Optional[DeliveryErrorHook] = None,
        metrics: Optional[RuntimeMetrics] = None
    ):
        self.sink = sink
        self.metrics = metrics
        self.logger = get_logger("flags.events.pass_through")
        self._deliveries = _Deliveries(self.logger, on_delivery_error, metrics)

    def start(self) -> None:
        pass

    async def stop(self) -> Any:
        return None

    def enqueue(self, event: T) -> None:
        if self.metrics:
            self.metrics.record_flush("single", 1)
        self._deliveries.dispatch(self.sink, [event])


class _FlushTimer:
    """One-shot, restartable timer on the running event loop."""

    def __init__(self, timeout: float, callback: Callable[[], None]):
        self.timeout = max(timeout, 0)
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout, self._fire)

    def refresh(self) -> None:
        self.stop()
        self.start()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def _fire(self) -> None:
        self._handle = None
        self.callback()


class BatchQueue(Generic[T]):
    """
    Groups events into batches flushed by size, age and compatibility.

    A batch is flushed when it reaches `max_size` events, when
    `flush_interval` seconds have passed since its first event, or when an
    incoming event is not compatible with the batch's first event (the
    incoming event then starts the next batch). Deliveries from `enqueue`
    and `flush` are fire-and-forget; only `stop` hands back the sink's
    result.
    """

    def __init__(
        self,
        sink: Sink,
        *,
        max_size: int,
        flush_interval: float,
        batch_comparator: BatchComparator = _always_compatible,
        closing_sink: Optional[Sink] = None,
        on_delivery_error: Optional[DeliveryErrorHook] = None,
        metrics: Optional[RuntimeMetrics] = None
    ):
        self.sink = sink
        self.closing_sink = closing_sink
        self.batch_comparator = batch_comparator
        self.max_size = max(max_size, 1)
        self.flush_interval = max(flush_interval, 0)
        self.metrics = metrics
        self.logger = get_logger("flags.events.batch_queue")

        self.timer = _FlushTimer(self.flush_interval, self._on_timer)
        self._buffer: List[T] = []
        self._started = False
        self._deliveries = _Deliveries(self.logger, on_delivery_error, metrics)

    @property
    def started(self) -> bool:
        return self._started

    @property
    def buffer(self) -> List[T]:
        """A copy of the events waiting in the current batch."""
        return list(self._buffer)

    def start(self) -> None:
        # The timer is armed by the first event of each batch, not here
        self._started = True
        self.logger.info("Batch queue started", max_size=self.max_size, flush_interval=self.flush_interval)

    async def stop(self) -> Any:
        """
        Stop accepting events and deliver what is buffered.

        Uses the closing sink when one is configured. Returns the sink's
        result, awaited if it is awaitable.
        """
        self._started = False
        batch, self._buffer = self._buffer, []
        sink = self.closing_sink or self.sink
        self._record_flush("shutdown", batch)

        self.timer.stop()
        result = sink(batch)
        if inspect.isawaitable(result):
            result = await result

        self.logger.info("Batch queue stopped", flushed=len(batch))
        return result

    def enqueue(self, event: T) -> None:
        if not self._started:
            self.logger.warning("Queue is stopped, not accepting event")
            if self.metrics:
                self.metrics.record_dropped_event()
            return

        if self._buffer and not self.batch_comparator(self._buffer[0], event):
            self._flush("incompatible")

        if not self._buffer:
            self.timer.refresh()
        self._buffer.append(event)

        if len(self._buffer) >= self.max_size:
            self._flush("size")

    def flush(self) -> None:
        """Deliver the current batch without waiting on the sink."""
        self._flush("manual")

    def _on_timer(self) -> None:
        self._flush("interval")

    def _flush(self, reason: str) -> None:
        batch, self._buffer = self._buffer, []
        self._record_flush(reason, batch)
        self.logger.debug("Flushing event batch", reason=reason, batch_size=len(batch))
        self.timer.stop()
        self._deliveries.dispatch(self.sink, batch)

    def _record_flush(self, reason: str, batch: List[T]) -> None:
        if self.metrics:
            self.metrics.record_flush(reason, len(batch))


def create_event_queue(
    sink: Sink,
    *,
    batch_size: int,
    flush_interval: float,
    batch_comparator: BatchComparator = _always_compatible,
    closing_sink: Optional[Sink] = None,
    on_delivery_error: Optional[DeliveryErrorHook] = None,
    metrics: Optional[RuntimeMetrics] = None
) -> EventQueue:
    """Pick the pass-through queue when batching is disabled, else a batch queue."""
    if batch_size <= 1:
        return PassThroughQueue(sink, on_delivery_error=on_delivery_error, metrics=metrics)

    return BatchQueue(
        sink,
        max_size=batch_size,
        flush_interval=flush_interval,
        batch_comparator=batch_comparator,
        closing_sink=closing_sink,
        on_delivery_error=on_delivery_error,
        metrics=metrics
    )


def create_event_queue_from_config(config: RuntimeConfig, sink: Sink, **kwargs) -> EventQueue:
    """Build the event queue described by runtime configuration."""
    return create_event_queue(
        sink,
        batch_size=config.event_batch_size,
        flush_interval=config.event_flush_interval_seconds,
        **kwargs
    )
