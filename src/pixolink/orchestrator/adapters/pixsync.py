"""
PixSync adapter.

Queues table changes for the sync manager and flushes them on demand or on
the auto-sync timer. Connectivity changes are mirrored onto the bus.
"""

# Standard library imports
import time
from typing import Any, Dict, Optional

# Local imports
from pixolink.core.codex import ConnectorResult, EventType
from pixolink.core.exceptions import SyncError
from pixolink.libs.data_store import DataStoreClient
from pixolink.libs.network import NetworkMonitor, NetworkStatus
from pixolink.libs.sync_manager import SyncManager
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

NOT_INITIALIZED = "Sync manager not initialized"


class PixSyncAdapter:
    """
    Offline-first sync adapter.

    Features:
    1. Queue-then-flush table changes
    2. Idempotent auto-sync scheduling
    3. Network change telemetry
    """

    def __init__(self, event_bus: EventBus, data_store_client: Optional[DataStoreClient] = None,
                 network: Optional[NetworkMonitor] = None):
        self.event_bus = event_bus
        self.network = network or NetworkMonitor()
        self.sync_manager: Optional[SyncManager] = None
        self._unsubscribe_network = self.network.subscribe(self._handle_network_change)
        if data_store_client is not None:
            self.initialize(data_store_client)

    def initialize(self, data_store_client: DataStoreClient) -> None:
        if self.sync_manager is not None:
            self.sync_manager.close()
        self.sync_manager = SyncManager(data_store_client, self.network)

    async def _handle_network_change(self, status: NetworkStatus) -> None:
        await self.event_bus.publish(EventType.TELEMETRY_LOGGED, {
            'source': 'pixsync',
            'event': 'network_change',
            'status': status.to_payload(),
        })

    def register_table(self, table: str, conflict_resolution: str = 'latest-wins') -> None:
        if self.sync_manager is None:
            raise SyncError(NOT_INITIALIZED)
        self.sync_manager.register_table(table, conflict_resolution=conflict_resolution)

    async def queue_action(self, table: str, action: str, data: Dict[str, Any]) -> ConnectorResult:
        if self.sync_manager is None:
            return ConnectorResult.fail(SyncError(NOT_INITIALIZED))

        started = time.perf_counter()
        try:
            return ConnectorResult.ok(self.sync_manager.queue_action(table, action, data), started)
        except Exception as e:
            logger.error(f"Error queueing sync action: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def sync(self, user_id: Optional[str] = None) -> ConnectorResult:
        if self.sync_manager is None:
            return ConnectorResult.fail(SyncError(NOT_INITIALIZED))

        started = time.perf_counter()
        try:
            await self.event_bus.publish(EventType.SYNC_STARTED, {'userId': user_id, 'source': 'pixsync'},
                                         user_id=user_id)
            result = await self.sync_manager.sync()
            if not result.success:
                raise SyncError('; '.join(result.errors) or 'Sync failed')

            await self.event_bus.publish(EventType.SYNC_COMPLETE, {
                'userId': user_id,
                'source': 'pixsync',
                'result': result.to_payload(),
            }, user_id=user_id)
            return ConnectorResult.ok(result, started)

        except Exception as e:
            logger.error(f"Error syncing queued changes: {str(e)}")
            await self.event_bus.publish(EventType.SYNC_FAILED, {
                'userId': user_id,
                'source': 'pixsync',
                'error': str(e),
            }, user_id=user_id)
            return ConnectorResult.fail(e, started)

    def enable_auto_sync(self, interval: float = 60.0) -> None:
        if self.sync_manager is None:
            raise SyncError(NOT_INITIALIZED)
        # SyncManager cancels any running timer before starting a new one
        self.sync_manager.enable_auto_sync(interval)

    def disable_auto_sync(self) -> None:
        if self.sync_manager is not None:
            self.sync_manager.disable_auto_sync()

    @property
    def auto_sync_enabled(self) -> bool:
        return self.sync_manager is not None and self.sync_manager.auto_sync_enabled

    def get_pending_count(self) -> int:
        if self.sync_manager is None:
            return 0
        return self.sync_manager.get_pending_count()

    def get_network_status(self) -> NetworkStatus:
        return self.network.get_status()

    async def clear_queue(self) -> ConnectorResult:
        if self.sync_manager is None:
            return ConnectorResult.fail(SyncError(NOT_INITIALIZED))

        started = time.perf_counter()
        try:
            self.sync_manager.clear_sync_queue()
            return ConnectorResult.ok(None, started)
        except Exception as e:
            logger.error(f"Error clearing sync queue: {str(e)}")
            return ConnectorResult.fail(e, started)

    def close(self) -> None:
        self.disable_auto_sync()
        self._unsubscribe_network()
        if self.sync_manager is not None:
            self.sync_manager.close()
