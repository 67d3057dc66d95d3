"""
Local prompt memory for the context memory adapter.

Stores every prompt a user ran together with its result and feedback, plus
per-user preferences such as the last sync time. Entries are kept in memory
and flagged for upload until a cloud sync marks them as synced.
"""

# Standard library imports
import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

# Local imports
from pixolink.core.codex import Feedback, now_ms
from pixolink.core.exceptions import PromptNotFoundError
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PromptEntry:
    """A prompt run and everything learned from it."""
    user_id: str
    prompt: str
    result: str = ""
    result_url: Optional[str] = None
    feedback: Optional[Feedback] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)
    synced: bool = False
    id: Optional[int] = None

    def __post_init__(self):
        self.feedback = Feedback.normalize(self.feedback)


class PromptMemoryStore:
    """In-memory prompt history and preference store keyed by user."""

    def __init__(self):
        self._prompts: Dict[int, PromptEntry] = {}
        self._preferences: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def save_prompt(self, entry: PromptEntry) -> int:
        """Store an entry and return its new id."""
        entry.id = next(self._ids)
        self._prompts[entry.id] = entry
        logger.debug(f"Saved prompt {entry.id} for user {entry.user_id}")
        return entry.id

    def get_prompt(self, prompt_id: int) -> Optional[PromptEntry]:
        return self._prompts.get(prompt_id)

    def get_history(self, user_id: str, limit: int = 50) -> List[PromptEntry]:
        """User's prompts, newest first."""
        entries = [e for e in self._prompts.values() if e.user_id == user_id]
        entries.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        return entries[:limit]

    def get_prompts_by_feedback(self, user_id: str, feedback: Union[Feedback, str]) -> List[PromptEntry]:
        wanted = Feedback.normalize(feedback)
        return [e for e in self._prompts.values() if e.user_id == user_id and e.feedback is wanted]

    def update_feedback(self, prompt_id: int, feedback: Union[Feedback, str]) -> PromptEntry:
        """Set feedback on an entry; the entry needs uploading again."""
        entry = self._prompts.get(prompt_id)
        if entry is None:
            raise PromptNotFoundError(f"Prompt {prompt_id} not found")
        entry.feedback = Feedback.normalize(feedback)
        entry.synced = False
        return entry

    def get_unsynced_prompts(self, user_id: Optional[str] = None) -> List[PromptEntry]:
        return [
            e for e in self._prompts.values()
            if not e.synced and (user_id is None or e.user_id == user_id)
        ]

    def mark_as_synced(self, prompt_ids: Iterable[int]) -> None:
        for prompt_id in prompt_ids:
            entry = self._prompts.get(prompt_id)
            if entry is not None:
                entry.synced = True

    def save_preference(self, user_id: str, key: str, value: Any) -> None:
        self._preferences.setdefault(user_id, {})[key] = value

    def get_preference(self, user_id: str, key: str, default: Any = None) -> Any:
        return self._preferences.get(user_id, {}).get(key, default)

    def clear_user_data(self, user_id: str) -> None:
        """Delete every prompt and preference belonging to a user."""
        for prompt_id in [pid for pid, e in self._prompts.items() if e.user_id == user_id]:
            del self._prompts[prompt_id]
        self._preferences.pop(user_id, None)
        logger.info(f"Cleared stored data for user {user_id}")

    def get_stats(self, user_id: Optional[str] = None) -> Dict[str, int]:
        entries = [e for e in self._prompts.values() if user_id is None or e.user_id == user_id]
        return {
            'total_prompts': len(entries),
            'likes': sum(1 for e in entries if e.feedback is Feedback.LIKED),
            'dislikes': sum(1 for e in entries if e.feedback is Feedback.DISLIKED),
            'unsynced': sum(1 for e in entries if not e.synced),
        }
