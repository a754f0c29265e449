"""
Event batching package.

Queues that group outbound telemetry before it reaches a delivery sink.
Batching must never block decisioning, so deliveries are fire-and-forget
except for the final one performed on shutdown.
"""

from .batch_queue import (
    BatchQueue, EventQueue, PassThroughQueue, create_event_queue, create_event_queue_from_config
)

__all__ = [
    "BatchQueue",
    "EventQueue",
    "PassThroughQueue",
    "create_event_queue",
    "create_event_queue_from_config",
]
