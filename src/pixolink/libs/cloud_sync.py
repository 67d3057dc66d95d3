"""
Cloud synchronisation of the local prompt memory.

Uploads unsynced prompt entries to the ``prompt_history`` table and pulls
back entries recorded elsewhere since the last sync.
"""

# Standard library imports
from datetime import datetime, timezone
from typing import Dict, Optional

# Local imports
from pixolink.core.codex import now_ms
from pixolink.libs.data_store import DataStoreClient
from pixolink.libs.prompt_memory import PromptEntry, PromptMemoryStore
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

PROMPT_HISTORY_TABLE = 'prompt_history'
LAST_SYNC_PREFERENCE = 'last_sync'
PULL_LIMIT = 100


def _iso(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


def _epoch_ms(value) -> int:
    if isinstance(value, (int, float)):
        return int(value)
    return int(datetime.fromisoformat(str(value).replace('Z', '+00:00')).timestamp() * 1000)


class CloudPromptSync:
    """Moves prompt entries between a PromptMemoryStore and a DataStoreClient."""

    def __init__(self, client: DataStoreClient, store: PromptMemoryStore):
        self.client = client
        self.store = store

    async def sync_prompts(self, user_id: str) -> Dict[str, int]:
        """Upload a user's unsynced prompts one by one, marking each on success."""
        synced = 0
        errors = 0
        for entry in self.store.get_unsynced_prompts(user_id):
            try:
                await self.client.insert(PROMPT_HISTORY_TABLE, {
                    'user_id': entry.user_id,
                    'prompt': entry.prompt,
                    'result': entry.result,
                    'result_url': entry.result_url,
                    'feedback': entry.feedback.value if entry.feedback else None,
                    'metadata': dict(entry.metadata),
                    'created_at': _iso(entry.timestamp),
                })
                self.store.mark_as_synced([entry.id])
                synced += 1
            except Exception as e:
                logger.error(f"Error syncing prompt {entry.id}: {str(e)}")
                errors += 1
        return {'synced': synced, 'errors': errors}

    async def pull_from_store(self, user_id: str, since: Optional[int] = None) -> int:
        """Import up to 100 of the user's remote entries created at or after ``since``."""
        try:
            rows = await self.client.select(PROMPT_HISTORY_TABLE, {'user_id': user_id})
        except Exception as e:
            logger.error(f"Error pulling prompt history: {str(e)}")
            return 0

        since = since or 0
        rows = [row for row in rows if _epoch_ms(row.get('created_at', 0)) >= since]
        rows.sort(key=lambda row: _epoch_ms(row.get('created_at', 0)), reverse=True)

        imported = 0
        for row in rows[:PULL_LIMIT]:
            self.store.save_prompt(PromptEntry(
                user_id=row['user_id'],
                prompt=row.get('prompt', ''),
                result=row.get('result') or '',
                result_url=row.get('result_url'),
                feedback=row.get('feedback'),
                metadata=dict(row.get('metadata') or {}),
                timestamp=_epoch_ms(row.get('created_at', now_ms())),
                synced=True,
            ))
            imported += 1
        return imported

    async def full_sync(self, user_id: str) -> Dict[str, int]:
        """Upload, then download everything new since the last full sync."""
        upload = await self.sync_prompts(user_id)
        last_sync = self.store.get_preference(user_id, LAST_SYNC_PREFERENCE)
        downloaded = await self.pull_from_store(user_id, last_sync)
        self.store.save_preference(user_id, LAST_SYNC_PREFERENCE, now_ms())
        return {'uploaded': upload['synced'], 'downloaded': downloaded, 'errors': upload['errors']}
