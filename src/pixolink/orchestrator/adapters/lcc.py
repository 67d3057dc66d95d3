"""
LCC (Lumina Cognitive Chain) adapter.

Keeps one cognitive chain per user in a bounded LRU cache and publishes the
outcome of enhancement, validation and chain sessions.
"""

# Standard library imports
import time
from dataclasses import asdict
from typing import Any, Dict, Optional, Sequence

# Third-party imports
from cachetools import LRUCache

# Local imports
from pixolink.core.codex import ConnectorResult, EventType
from pixolink.core.config import config_manager
from pixolink.core.exceptions import SessionError
from pixolink.libs.cognitive_chain import ChainSession, CognitiveChain
from pixolink.libs.feedback import FeedbackEngine
from pixolink.libs.prompt_memory import PromptMemoryStore
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)


class LCCAdapter:
    """Cognitive chain adapter with per-user chains."""

    def __init__(self, event_bus: EventBus, store: Optional[PromptMemoryStore] = None,
                 feedback: Optional[FeedbackEngine] = None,
                 enhancement_terms: Optional[Sequence[str]] = None,
                 max_chains: Optional[int] = None):
        pipeline_config = config_manager.get_pipeline_config()
        self.event_bus = event_bus
        self.store = store or PromptMemoryStore()
        self.feedback = feedback or FeedbackEngine(self.store)
        self.enhancement_terms = list(
            enhancement_terms if enhancement_terms is not None else pipeline_config.enhancement_terms
        )
        self._chains: LRUCache = LRUCache(maxsize=max_chains or pipeline_config.chain_cache_size)

    def _get_chain(self, user_id: str) -> CognitiveChain:
        chain = self._chains.get(user_id)
        if chain is None:
            chain = CognitiveChain(user_id, self.store, self.feedback, self.enhancement_terms)
            self._chains[user_id] = chain
            logger.debug(f"Created cognitive chain for {user_id}")
        return chain

    async def enhance_prompt(self, user_id: str, prompt: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            result = await self._get_chain(user_id).enhance_prompt(prompt)
            await self.event_bus.publish(EventType.PROMPT_ENHANCED, {
                'userId': user_id,
                'original': prompt,
                'enhanced': result.enhanced,
                'improvements': list(result.improvements),
            }, user_id=user_id)
            return ConnectorResult.ok(result, started)
        except Exception as e:
            logger.error(f"Error enhancing prompt: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def validate_prompt(self, user_id: str, prompt: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            result = await self._get_chain(user_id).validate_prompt(prompt)
            if not result.is_valid:
                await self.event_bus.publish(EventType.VALIDATION_ERROR, {
                    'userId': user_id,
                    'prompt': prompt,
                    'issues': list(result.issues),
                }, user_id=user_id)
            return ConnectorResult.ok(result, started)
        except Exception as e:
            logger.error(f"Error validating prompt: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def start_session(self, user_id: str, context: str = "",
                            metadata: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        started = time.perf_counter()
        try:
            session_id = self._get_chain(user_id).start_session(context, metadata)
            await self.event_bus.publish(EventType.SESSION_STARTED, {
                'userId': user_id,
                'context': context,
                'source': 'lcc',
            }, user_id=user_id)
            return ConnectorResult.ok(session_id, started)
        except Exception as e:
            logger.error(f"Error starting chain session: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def complete_session(self, user_id: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            chain = self._chains.get(user_id)
            if chain is None:
                raise SessionError("No active session for user")
            result = await chain.complete_session()
            await self.event_bus.publish(EventType.SESSION_ENDED, {
                'userId': user_id,
                'session': asdict(result),
                'source': 'lcc',
            }, user_id=user_id)
            return ConnectorResult.ok(result, started)
        except Exception as e:
            logger.error(f"Error completing chain session: {str(e)}")
            return ConnectorResult.fail(e, started)

    def get_current_session(self, user_id: str) -> Optional[ChainSession]:
        chain = self._chains.get(user_id)
        return chain.get_current_session() if chain is not None else None

    def clear_chain(self, user_id: str) -> None:
        self._chains.pop(user_id, None)

    def clear_all(self) -> None:
        self._chains.clear()

    @property
    def chain_count(self) -> int:
        return len(self._chains)
