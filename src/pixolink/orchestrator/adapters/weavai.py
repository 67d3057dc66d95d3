"""
WeavAI adapter.

Runs prompt insight analysis for one user/session and forwards the insight
service's telemetry onto the bus.
"""

# Standard library imports
import time
from typing import Any, Callable, Dict, Optional

# Local imports
from pixolink.core.codex import ConnectorResult, EventType
from pixolink.libs.insight import InsightService
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)


class WeavAIAdapter:
    """Prompt intelligence adapter bound to a user and session."""

    def __init__(self, event_bus: EventBus, service: Optional[InsightService] = None,
                 user_id: Optional[str] = None, session_id: Optional[str] = None):
        self.event_bus = event_bus
        self.service = service or InsightService()
        self.user_id = user_id
        self.session_id = session_id
        self._initialized = False
        self._telemetry_unsubscribe: Optional[Callable[[], None]] = None

    def initialize(self) -> None:
        if self._initialized:
            return
        self.service.initialize()
        self._telemetry_unsubscribe = self.service.subscribe_telemetry(self._handle_telemetry)
        self._initialized = True

    async def _handle_telemetry(self, event: Dict[str, Any]) -> None:
        await self.event_bus.publish(EventType.TELEMETRY_LOGGED, {
            'source': 'weavai',
            'event': event,
        }, user_id=self.user_id, session_id=self.session_id)

    async def analyze_prompt(self, prompt: str, metadata: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        started = time.perf_counter()
        try:
            self.initialize()
            result = await self.service.analyze_prompt(prompt, self.user_id, self.session_id, metadata)

            if result.available:
                await self.event_bus.publish(EventType.PROMPT_GENERATED, {
                    'userId': self.user_id,
                    'prompt': prompt,
                    'source': 'weavai',
                    'insight': result.insight.to_payload() if result.insight else None,
                }, user_id=self.user_id, session_id=self.session_id)
                return ConnectorResult.ok(result, started)

            return ConnectorResult.fail(result.error or result.reason or 'Insight unavailable', started,
                                        data=result)
        except Exception as e:
            logger.error(f"Error analyzing prompt: {str(e)}")
            return ConnectorResult.fail(e, started)

    def get_status(self) -> Dict[str, Any]:
        return self.service.get_status()

    def destroy(self) -> None:
        if self._telemetry_unsubscribe is not None:
            self._telemetry_unsubscribe()
            self._telemetry_unsubscribe = None
        self.service.shutdown()
        self._initialized = False
