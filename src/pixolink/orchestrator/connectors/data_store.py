"""
Data store connector.

Persists generations, prompt history and preferences through a
``DataStoreClient``. Writes are announced on the bus as ``SYNC_COMPLETE`` or
``SYNC_FAILED``. Without a client every operation fails fast.
"""

# Standard library imports
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

# Local imports
from pixolink.core.codex import ConnectorResult, EventType
from pixolink.core.exceptions import ClientNotInitializedError
from pixolink.libs.data_store import DataStoreClient
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TABLES = ('generations', 'prompt_history', 'user_preferences')


class DataStoreConnector:
    """
    Connector between the orchestrator and a remote data store.

    This class follows the Single Responsibility Principle by only handling
    data store calls and the bus events describing their outcome.
    """

    def __init__(self, event_bus: EventBus, client: Optional[DataStoreClient] = None,
                 tables: Sequence[str] = DEFAULT_TABLES):
        self.event_bus = event_bus
        self.client = client
        self.tables = list(tables)

    def set_client(self, client: DataStoreClient) -> None:
        self.client = client
        logger.debug("Data store client attached")

    @property
    def has_client(self) -> bool:
        return self.client is not None

    async def save(self, table: str, data: Union[Mapping[str, Any], List[Mapping[str, Any]]],
                   upsert: bool = False) -> ConnectorResult:
        if self.client is None:
            return ConnectorResult.fail(ClientNotInitializedError())

        started = time.perf_counter()
        try:
            if upsert:
                rows = await self.client.upsert(table, data)
            else:
                rows = await self.client.insert(table, data)

            await self.event_bus.publish(EventType.SYNC_COMPLETE, {
                'table': table,
                'operation': 'save',
                'success': True,
            })
            return ConnectorResult.ok(rows, started)

        except Exception as e:
            logger.error(f"Error saving to {table}: {str(e)}")
            await self.event_bus.publish(EventType.SYNC_FAILED, {
                'table': table,
                'operation': 'save',
                'error': str(e),
            })
            return ConnectorResult.fail(e, started)

    async def query(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> ConnectorResult:
        if self.client is None:
            return ConnectorResult.fail(ClientNotInitializedError())

        started = time.perf_counter()
        try:
            return ConnectorResult.ok(await self.client.select(table, filters), started)
        except Exception as e:
            logger.error(f"Error querying {table}: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def update(self, table: str, record_id: Any, updates: Mapping[str, Any]) -> ConnectorResult:
        if self.client is None:
            return ConnectorResult.fail(ClientNotInitializedError())

        started = time.perf_counter()
        try:
            rows = await self.client.update(table, record_id, updates)
            await self.event_bus.publish(EventType.SYNC_COMPLETE, {
                'table': table,
                'operation': 'update',
                'success': True,
            })
            return ConnectorResult.ok(rows, started)
        except Exception as e:
            logger.error(f"Error updating {table}/{record_id}: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def delete(self, table: str, record_id: Any) -> ConnectorResult:
        if self.client is None:
            return ConnectorResult.fail(ClientNotInitializedError())

        started = time.perf_counter()
        try:
            await self.client.delete(table, record_id)
            return ConnectorResult.ok(None, started)
        except Exception as e:
            logger.error(f"Error deleting {table}/{record_id}: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def upload_file(self, bucket: str, path: str, blob: bytes) -> ConnectorResult:
        if self.client is None:
            return ConnectorResult.fail(ClientNotInitializedError())

        started = time.perf_counter()
        try:
            stored: Dict[str, str] = await self.client.upload(bucket, path, blob)
            return ConnectorResult.ok({'path': stored['path'], 'url': stored['url']}, started)
        except Exception as e:
            logger.error(f"Error uploading {bucket}/{path}: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def health_check(self) -> bool:
        if self.client is None or not self.tables:
            return False
        try:
            await self.client.select(self.tables[0])
            return True
        except Exception as e:
            logger.warning(f"Data store health check failed: {str(e)}")
            return False
