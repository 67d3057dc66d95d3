"""
Usage event aggregation.

Counts each product event type, keeps a running average of durations and
forwards every event to the metrics tracker and the bus.
"""

# Standard library imports
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

# Local imports
from pixolink.core.codex import EventType, now_ms
from pixolink.orchestrator.event_bus import EventBus
from pixolink.telemetry.metrics import MetricsTracker
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

HOUR_MS = 60 * 60 * 1000
TOP_EVENTS = 10


@dataclass
class UsageMetrics:
    event_type: str
    count: int = 0
    avg_duration: Optional[float] = None
    last_occurrence: int = field(default_factory=now_ms)


class UsageEvents:
    """Per-event-type usage counters fed by the orchestrator."""

    def __init__(self, event_bus: EventBus, metrics: MetricsTracker):
        self.event_bus = event_bus
        self.metrics = metrics
        self._events: Dict[str, UsageMetrics] = {}

    async def prompt_generated(self, user_id: str, prompt: str, enhanced: Optional[bool] = None) -> None:
        await self._track_event('prompt_generated', {
            'userId': user_id, 'promptLength': len(prompt), 'enhanced': enhanced
        })

    async def image_generated(self, user_id: str, generation_id: str, duration: float) -> None:
        await self._track_event('image_generated', {
            'userId': user_id, 'generationId': generation_id, 'duration': duration
        })

    async def quality_assessed(self, user_id: str, score: float, image_url: str) -> None:
        await self._track_event('quality_assessed', {'userId': user_id, 'score': score, 'imageUrl': image_url})

    async def feedback_given(self, user_id: str, prompt_id: str, feedback: str) -> None:
        await self._track_event('feedback_given', {'userId': user_id, 'promptId': prompt_id, 'feedback': feedback})

    async def sync_performed(self, user_id: str, uploaded: int, downloaded: int, duration: float) -> None:
        await self._track_event('sync_performed', {
            'userId': user_id, 'uploaded': uploaded, 'downloaded': downloaded, 'duration': duration
        })

    async def session_started(self, user_id: str, session_id: str) -> None:
        await self._track_event('session_started', {'userId': user_id, 'sessionId': session_id})

    async def session_ended(self, user_id: str, session_id: str, duration: float) -> None:
        await self._track_event('session_ended', {
            'userId': user_id, 'sessionId': session_id, 'duration': duration
        })

    async def feature_used(self, user_id: str, feature: str, context: Optional[Dict[str, Any]] = None) -> None:
        await self._track_event('feature_used', {'userId': user_id, 'feature': feature, **(context or {})})

    async def error_encountered(self, user_id: str, error: str, context: Optional[Dict[str, Any]] = None) -> None:
        await self._track_event('error_encountered', {'userId': user_id, 'error': error, **(context or {})})

    async def network_status_changed(self, user_id: str, status: str, quality: str) -> None:
        await self._track_event('network_status_changed', {'userId': user_id, 'status': status, 'quality': quality})

    async def _track_event(self, event_type: str, properties: Dict[str, Any]) -> None:
        duration = properties.get('duration')
        timed = isinstance(duration, (int, float)) and not isinstance(duration, bool) and duration

        existing = self._events.get(event_type)
        if existing is None:
            self._events[event_type] = UsageMetrics(
                event_type=event_type,
                count=1,
                avg_duration=float(duration) if timed else None
            )
        else:
            existing.count += 1
            existing.last_occurrence = now_ms()
            if timed:
                if existing.avg_duration is None:
                    existing.avg_duration = float(duration)
                else:
                    existing.avg_duration = (
                        existing.avg_duration * (existing.count - 1) + duration
                    ) / existing.count

        await self.metrics.track(event_type, properties, properties.get('userId'))
        await self.event_bus.publish(EventType.TELEMETRY_LOGGED, {
            'source': 'usage',
            'eventType': event_type,
            'properties': properties,
        }, user_id=properties.get('userId'))

    def get_metrics(self, event_type: str) -> Optional[UsageMetrics]:
        return self._events.get(event_type)

    def get_all_metrics(self) -> Dict[str, UsageMetrics]:
        return dict(self._events)

    def get_summary(self) -> Dict[str, Any]:
        one_hour_ago = now_ms() - HOUR_MS
        ranked = sorted(self._events.values(), key=lambda m: m.count, reverse=True)
        return {
            'total_events': sum(m.count for m in self._events.values()),
            'unique_event_types': len(self._events),
            'top_events': [{'event_type': m.event_type, 'count': m.count} for m in ranked[:TOP_EVENTS]],
            'recent_activity': sum(m.count for m in self._events.values() if m.last_occurrence > one_hour_ago),
        }

    def reset(self) -> None:
        self._events.clear()

    def export(self) -> str:
        return json.dumps({
            'metrics': [asdict(m) for m in self._events.values()],
            'summary': self.get_summary(),
            'exported_at': now_ms(),
        }, indent=2)
