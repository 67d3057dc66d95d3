"""
LCM (Lumina Context Memory) adapter.

Bridges prompt memory, feedback learning and cloud prompt sync onto the bus.
"""

# Standard library imports
import time
from typing import Any, Dict, Optional, Union

# Local imports
from pixolink.core.codex import ConnectorResult, EventType, Feedback
from pixolink.libs.cloud_sync import CloudPromptSync
from pixolink.libs.data_store import DataStoreClient
from pixolink.libs.feedback import FeedbackEngine
from pixolink.libs.prompt_memory import PromptEntry, PromptMemoryStore
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)


class LCMAdapter:
    """
    Context memory adapter.

    Features:
    1. Prompt history with feedback
    2. Suggestions and scores learned from that feedback
    3. Optional upload of unsynced prompts to the data store
    """

    def __init__(self, event_bus: EventBus, store: Optional[PromptMemoryStore] = None,
                 feedback: Optional[FeedbackEngine] = None,
                 data_store_client: Optional[DataStoreClient] = None):
        self.event_bus = event_bus
        self.store = store or PromptMemoryStore()
        self.feedback = feedback or FeedbackEngine(self.store)
        self.cloud_sync: Optional[CloudPromptSync] = None
        if data_store_client is not None:
            self.cloud_sync = CloudPromptSync(data_store_client, self.store)

    async def save_prompt(self, user_id: str, prompt: str, response: str = "",
                          feedback: Optional[Union[Feedback, str]] = None,
                          metadata: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        started = time.perf_counter()
        try:
            entry = PromptEntry(
                user_id=user_id,
                prompt=prompt,
                result=response,
                feedback=feedback or Feedback.NEUTRAL,
                metadata=dict(metadata or {})
            )
            prompt_id = self.store.save_prompt(entry)

            await self.event_bus.publish(EventType.LEARNING_UPDATED, {
                'userId': user_id,
                'action': 'save_prompt',
                'feedback': entry.feedback.value if entry.feedback else None,
            }, user_id=user_id)
            return ConnectorResult.ok(prompt_id, started)
        except Exception as e:
            logger.error(f"Error saving prompt: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def get_history(self, user_id: str, feedback: Optional[Union[Feedback, str]] = None,
                          limit: int = 50) -> ConnectorResult:
        started = time.perf_counter()
        try:
            if feedback:
                prompts = self.store.get_prompts_by_feedback(user_id, feedback)
            else:
                prompts = self.store.get_history(user_id, limit)
            return ConnectorResult.ok(prompts, started)
        except Exception as e:
            logger.error(f"Error getting prompt history: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def update_feedback(self, prompt_id: int, feedback: Union[Feedback, str]) -> ConnectorResult:
        started = time.perf_counter()
        try:
            entry = self.store.update_feedback(prompt_id, feedback)
            await self.event_bus.publish(EventType.FEEDBACK_RECEIVED, {
                'promptId': prompt_id,
                'feedback': entry.feedback.value,
                'userId': entry.user_id,
            }, user_id=entry.user_id)
            return ConnectorResult.ok(entry, started)
        except Exception as e:
            logger.error(f"Error updating feedback: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def get_suggestions(self, user_id: str, prompt: str = "") -> ConnectorResult:
        started = time.perf_counter()
        try:
            return ConnectorResult.ok(self.feedback.get_suggestions(user_id, prompt), started)
        except Exception as e:
            logger.error(f"Error getting suggestions: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def calculate_score(self, user_id: str, prompt: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            return ConnectorResult.ok(self.feedback.calculate_prompt_score(user_id, prompt), started)
        except Exception as e:
            logger.error(f"Error calculating prompt score: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def sync_to_cloud(self, user_id: str) -> ConnectorResult:
        if self.cloud_sync is None:
            return ConnectorResult.fail("Sync not initialized (data store client missing)")

        started = time.perf_counter()
        try:
            await self.event_bus.publish(EventType.SYNC_STARTED, {'userId': user_id, 'source': 'lcm'},
                                         user_id=user_id)
            result = await self.cloud_sync.sync_prompts(user_id)
            await self.event_bus.publish(EventType.SYNC_COMPLETE, {'userId': user_id, 'source': 'lcm'},
                                         user_id=user_id)
            return ConnectorResult.ok(result, started)
        except Exception as e:
            logger.error(f"Error syncing prompts to cloud: {str(e)}")
            await self.event_bus.publish(EventType.SYNC_FAILED, {
                'userId': user_id,
                'source': 'lcm',
                'error': str(e),
            }, user_id=user_id)
            return ConnectorResult.fail(e, started)

    async def get_stats(self, user_id: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            return ConnectorResult.ok(self.store.get_stats(user_id), started)
        except Exception as e:
            logger.error(f"Error getting memory stats: {str(e)}")
            return ConnectorResult.fail(e, started)
