"""
Metrics tracker.

Forwards analytics events to a metrics sink once one is attached, queues the
most recent events while none is, and mirrors every event onto the bus as
``TELEMETRY_LOGGED``.
"""

# Standard library imports
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, Optional

# Local imports
from pixolink.core.codex import EventType, now_ms
from pixolink.orchestrator.event_bus import EventBus
from pixolink.telemetry.sinks import MetricsSink
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

MAX_QUEUE_SIZE = 100


@dataclass
class TelemetryEvent:
    name: str
    properties: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class MetricsTracker:
    """Analytics event tracker with a bounded pre-initialization queue."""

    def __init__(self, event_bus: EventBus, max_queue_size: int = MAX_QUEUE_SIZE):
        self.event_bus = event_bus
        self._sink: Optional[MetricsSink] = None
        self._queue: Deque[TelemetryEvent] = deque(maxlen=max_queue_size)

    def initialize(self, sink: Optional[MetricsSink] = None) -> None:
        """Attach a sink and flush queued events. Without one the tracker stays local."""
        if self._sink is not None:
            return
        if sink is None:
            logger.warning("No metrics sink configured, running in local mode")
            return
        self._sink = sink
        self._flush_queue()
        logger.info("Metrics tracker initialized")

    async def track(self, name: str, properties: Optional[Dict[str, Any]] = None,
                    user_id: Optional[str] = None, session_id: Optional[str] = None) -> TelemetryEvent:
        event = TelemetryEvent(
            name=name,
            properties=dict(properties or {}),
            user_id=user_id,
            session_id=session_id
        )
        if self._sink is not None:
            try:
                self._sink.capture(name, event.properties)
            except Exception as e:
                logger.error(f"Failed to track event {name}: {str(e)}")
        else:
            self._queue.append(event)

        await self.event_bus.publish(EventType.TELEMETRY_LOGGED, {
            'source': 'metrics',
            'event': asdict(event),
        }, user_id=user_id, session_id=session_id)
        return event

    def identify(self, user_id: str, properties: Optional[Dict[str, Any]] = None) -> None:
        if self._sink is None:
            return
        try:
            self._sink.identify(user_id, properties)
        except Exception as e:
            logger.error(f"Failed to identify user: {str(e)}")

    async def page_view(self, page_name: Optional[str] = None,
                        properties: Optional[Dict[str, Any]] = None) -> TelemetryEvent:
        return await self.track('$pageview', {**(properties or {}), 'page_name': page_name})

    async def action(self, action: str, properties: Optional[Dict[str, Any]] = None,
                     user_id: Optional[str] = None) -> TelemetryEvent:
        return await self.track(f"action_{action}", properties, user_id)

    async def performance(self, metric: str, value: float, unit: str = 'ms',
                          user_id: Optional[str] = None) -> TelemetryEvent:
        return await self.track('performance_metric', {'metric': metric, 'value': value, 'unit': unit}, user_id)

    def _flush_queue(self) -> None:
        while self._queue:
            event = self._queue.popleft()
            try:
                self._sink.capture(event.name, event.properties)
            except Exception as e:
                logger.error(f"Failed to flush queued event {event.name}: {str(e)}")

    def reset(self) -> None:
        if self._sink is not None:
            try:
                self._sink.reset()
            except Exception as e:
                logger.error(f"Failed to reset metrics sink: {str(e)}")
        self._queue.clear()

    def is_initialized(self) -> bool:
        return self._sink is not None

    def get_queue_size(self) -> int:
        return len(self._queue)
