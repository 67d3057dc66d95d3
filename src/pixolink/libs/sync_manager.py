"""
Queue-then-flush synchronisation engine.

Local changes are queued per table and flushed to the data store on demand
or on a periodic auto-sync loop. Entries that fail three times are left in
the queue and skipped by later runs.
"""

# Standard library imports
import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

# Local imports
from pixolink.core.codex import now_ms
from pixolink.libs.data_store import DataStoreClient
from pixolink.libs.network import NetworkMonitor, NetworkStatus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 3
CONFLICT_STRATEGIES = ('local-wins', 'remote-wins', 'latest-wins', 'manual')
UPSERT_ACTIONS = ('insert', 'create', 'update')


@dataclass
class TableSyncConfig:
    table: str
    id_field: str = 'id'
    timestamp_field: str = 'updated_at'
    conflict_resolution: str = 'latest-wins'

    def __post_init__(self):
        if self.conflict_resolution not in CONFLICT_STRATEGIES:
            raise ValueError(f"Unknown conflict resolution: {self.conflict_resolution}")


@dataclass
class SyncEntry:
    """A queued local change awaiting upload."""
    table: str
    action: str
    data: Dict[str, Any]
    local_id: str
    id: int = 0
    timestamp: int = field(default_factory=now_ms)
    synced: bool = False
    retries: int = 0


@dataclass
class SyncResult:
    success: bool = True
    uploaded: int = 0
    downloaded: int = 0
    conflicts: int = 0
    errors: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'uploaded': self.uploaded,
            'downloaded': self.downloaded,
            'conflicts': self.conflicts,
            'errors': list(self.errors),
        }


class SyncManager:
    """
    Flushes queued table changes to a DataStoreClient.

    Features:
    1. Per-table configuration with id field and conflict strategy
    2. Retry accounting per queued entry
    3. Offline and re-entrancy guards
    4. Optional periodic auto-sync task, also triggered on reconnect
    """

    def __init__(self, client: DataStoreClient, network: Optional[NetworkMonitor] = None):
        self.client = client
        self.network = network or NetworkMonitor()
        self._tables: Dict[str, TableSyncConfig] = {}
        self._queue: Dict[int, SyncEntry] = {}
        self._ids = itertools.count(1)
        self._is_syncing = False
        self._auto_sync_enabled = False
        self._auto_sync_interval = 60.0
        self._auto_sync_task: Optional[asyncio.Task] = None
        self._unsubscribe_network = self.network.subscribe(self._on_network_change)

    @property
    def auto_sync_enabled(self) -> bool:
        return self._auto_sync_enabled

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    def register_table(self, table: str, id_field: str = 'id', timestamp_field: str = 'updated_at',
                       conflict_resolution: str = 'latest-wins') -> TableSyncConfig:
        config = TableSyncConfig(
            table=table,
            id_field=id_field,
            timestamp_field=timestamp_field,
            conflict_resolution=conflict_resolution
        )
        self._tables[table] = config
        logger.debug(f"Registered sync table: {table} ({conflict_resolution})")
        return config

    def get_table_config(self, table: str) -> Optional[TableSyncConfig]:
        return self._tables.get(table)

    def queue_action(self, table: str, action: str, data: Dict[str, Any],
                     local_id: Optional[str] = None) -> SyncEntry:
        """Queue a change; nothing is sent until the next sync."""
        entry_id = next(self._ids)
        entry = SyncEntry(
            table=table,
            action=action,
            data=dict(data),
            local_id=local_id or f"{table}-{entry_id}",
            id=entry_id
        )
        self._queue[entry_id] = entry
        return entry

    def get_pending_count(self, table: Optional[str] = None) -> int:
        return sum(
            1 for entry in self._queue.values()
            if not entry.synced and (table is None or entry.table == table)
        )

    def get_pending(self, table: Optional[str] = None) -> List[SyncEntry]:
        return [
            entry for entry in self._queue.values()
            if not entry.synced and (table is None or entry.table == table)
        ]

    def clear_sync_queue(self) -> None:
        self._queue.clear()

    async def sync(self, tables: Optional[Iterable[str]] = None) -> SyncResult:
        """Upload pending changes for the given tables, or all registered tables."""
        if self._auto_sync_enabled and self._auto_sync_task is None:
            self.enable_auto_sync(self._auto_sync_interval)
        if self._is_syncing:
            return SyncResult(success=False, errors=['Sync already in progress'])
        if not self.network.is_online():
            return SyncResult(success=False, errors=['Device is offline'])

        self._is_syncing = True
        result = SyncResult()
        try:
            for table in list(tables) if tables is not None else list(self._tables):
                upload = await self._upload_changes(table)
                result.uploaded += upload.uploaded
                result.conflicts += upload.conflicts
                result.errors.extend(upload.errors)

                download = await self._download_changes(table)
                result.downloaded += download.downloaded
                result.conflicts += download.conflicts
                result.errors.extend(download.errors)

            result.success = not result.errors
        except Exception as e:
            logger.error(f"Error during sync: {str(e)}")
            result.success = False
            result.errors.append(str(e))
        finally:
            self._is_syncing = False

        return result

    async def _upload_changes(self, table: str) -> SyncResult:
        config = self._tables.get(table)
        if config is None:
            return SyncResult(success=False, errors=[f"Table {table} not configured"])

        result = SyncResult()
        pending = [e for e in self.get_pending(table) if e.retries < MAX_RETRIES]
        for entry in pending:
            try:
                if entry.action in UPSERT_ACTIONS:
                    await self.client.upsert(table, entry.data, id_field=config.id_field)
                elif entry.action == 'delete':
                    await self.client.delete(table, entry.data.get(config.id_field))
                else:
                    raise ValueError(f"Unknown sync action: {entry.action}")
                entry.synced = True
                result.uploaded += 1
            except Exception as e:
                logger.warning(f"Upload of {table} entry {entry.local_id} failed: {str(e)}")
                result.errors.append(f"Upload error: {str(e)}")
                entry.retries += 1
        return result

    async def _download_changes(self, table: str) -> SyncResult:
        if table not in self._tables:
            return SyncResult(success=False, errors=[f"Table {table} not configured"])
        # Remote changes are applied by the owning application per table
        return SyncResult()

    def enable_auto_sync(self, interval: float = 60.0) -> None:
        """
        Start syncing every ``interval`` seconds. Calling again replaces the
        running loop. Outside a running event loop the loop starts on the
        next call to ``sync`` made from async code.
        """
        self.disable_auto_sync()
        self._auto_sync_enabled = True
        self._auto_sync_interval = interval
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; auto-sync loop deferred")
            return
        self._auto_sync_task = loop.create_task(self._auto_sync_loop())
        logger.info(f"Auto-sync enabled every {interval}s")

    def disable_auto_sync(self) -> None:
        self._auto_sync_enabled = False
        if self._auto_sync_task is not None and not self._auto_sync_task.done():
            self._auto_sync_task.cancel()
        self._auto_sync_task = None

    async def _auto_sync_loop(self) -> None:
        while self._auto_sync_enabled:
            await asyncio.sleep(self._auto_sync_interval)
            try:
                result = await self.sync()
                if not result.success:
                    logger.warning(f"Auto-sync finished with errors: {result.errors}")
            except Exception as e:
                logger.error(f"Error in auto-sync loop: {str(e)}")

    async def _on_network_change(self, status: NetworkStatus) -> None:
        if status.is_online and self._auto_sync_enabled:
            await self.sync()

    def close(self) -> None:
        self.disable_auto_sync()
        self._unsubscribe_network()
