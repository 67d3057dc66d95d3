"""
Module registry for the PixoLink orchestration layer.

This module keeps a keyed directory of the library engines that back the
adapters, together with their lifecycle metadata. The registry is seeded
with a fixed catalog at construction; callers may pass live instances for
catalog slots, otherwise the slot's class is registered as its handle.
"""

# Standard library imports
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Type, Union

# Local imports
from pixolink.core.codex import ModuleMetadata, ModuleStatus, now_ms
from pixolink.libs.cloud_sync import CloudPromptSync
from pixolink.libs.cognitive_chain import CognitiveChain
from pixolink.libs.feedback import FeedbackEngine
from pixolink.libs.insight import InsightService
from pixolink.libs.logic_simulator import LogicSimulator
from pixolink.libs.network import NetworkMonitor
from pixolink.libs.prompt_memory import PromptMemoryStore
from pixolink.libs.sync_manager import SyncManager
from pixolink.libs.vision import VisionAnalyzer
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

ModuleHandle = Union[
    PromptMemoryStore, FeedbackEngine, CloudPromptSync, NetworkMonitor, SyncManager,
    CognitiveChain, LogicSimulator, VisionAnalyzer, InsightService, Type[Any], Any
]


class CatalogSlot(NamedTuple):
    """Fixed registry slot: key, display name, version and expected handle type."""
    key: str
    name: str
    version: str
    kind: type


DEFAULT_CATALOG: List[CatalogSlot] = [
    CatalogSlot('lcm.storage', 'Prompt Memory Storage', '1.0.0', PromptMemoryStore),
    CatalogSlot('lcm.feedback', 'Feedback Engine', '1.0.0', FeedbackEngine),
    CatalogSlot('lcm.sync', 'Cloud Prompt Sync', '1.0.0', CloudPromptSync),
    CatalogSlot('pixsync.network', 'Network Monitor', '1.0.0', NetworkMonitor),
    CatalogSlot('pixsync.manager', 'Sync Manager', '1.0.0', SyncManager),
    CatalogSlot('lcc.chain', 'Cognitive Chain', '1.0.0', CognitiveChain),
    CatalogSlot('logicsim.simulator', 'Logic Simulator', '1.0.0', LogicSimulator),
    CatalogSlot('visionpulse.analyzer', 'Vision Analyzer', '1.0.0', VisionAnalyzer),
    CatalogSlot('weavai.core', 'WeavAI Core', '0.6.0-beta', InsightService),
]


@dataclass
class RegistryEntry:
    """A registered module handle with its metadata and expected kind."""
    module: ModuleHandle
    metadata: ModuleMetadata
    kind: Optional[type] = None


class ModuleRegistry:
    """
    Registry of the modules that back the orchestrator's adapters.

    This class follows the Single Responsibility Principle by focusing solely
    on registration, lookup and status tracking of modules.
    """

    def __init__(self, modules: Optional[Mapping[str, Any]] = None):
        self._modules: Dict[str, RegistryEntry] = {}
        self._register_default_modules(modules or {})

    def _register_default_modules(self, modules: Mapping[str, Any]) -> None:
        for slot in DEFAULT_CATALOG:
            handle = modules.get(slot.key, slot.kind)
            self.register(
                slot.key,
                handle,
                ModuleMetadata(name=slot.name, version=slot.version, status=ModuleStatus.ACTIVE),
                kind=slot.kind
            )

    def register(self, key: str, module: Any, metadata: ModuleMetadata, kind: Optional[type] = None) -> None:
        """
        Register or replace a module.

        Args:
            key: Registry key, conventionally '<category>.<name>'
            module: Module handle (instance or class)
            metadata: Module metadata; last_active is stamped on registration
            kind: Expected handle type for this slot
        """
        if kind is not None and module is not kind and not isinstance(module, kind):
            logger.warning(f"Module registered under {key} is not a {kind.__name__}")
        self._modules[key] = RegistryEntry(
            module=module,
            metadata=replace(metadata, last_active=now_ms()),
            kind=kind
        )
        logger.debug(f"Registered module: {key}")

    def get(self, key: str) -> Optional[Any]:
        """Get a module handle, refreshing its last_active stamp."""
        entry = self._modules.get(key)
        if entry is None:
            return None
        entry.metadata.last_active = now_ms()
        return entry.module

    def get_metadata(self, key: str) -> Optional[ModuleMetadata]:
        entry = self._modules.get(key)
        return entry.metadata if entry else None

    def has(self, key: str) -> bool:
        return key in self._modules

    def unregister(self, key: str) -> bool:
        """Remove a module. Returns whether anything was removed."""
        removed = self._modules.pop(key, None) is not None
        if removed:
            logger.debug(f"Unregistered module: {key}")
        return removed

    def get_keys(self) -> List[str]:
        return list(self._modules.keys())

    def get_all(self) -> List[Dict[str, Any]]:
        return [{'key': key, 'entry': entry} for key, entry in self._modules.items()]

    def update_status(self, key: str, status: Union[ModuleStatus, str]) -> bool:
        """
        Set a module's status. Any transition is allowed.

        Returns:
            False if the key is not registered
        """
        entry = self._modules.get(key)
        if entry is None:
            return False
        entry.metadata.status = ModuleStatus(status)
        entry.metadata.last_active = now_ms()
        logger.debug(f"Module {key} status set to {entry.metadata.status.value}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Counts by status and by key category (the part before the first dot)."""
        by_category: Dict[str, int] = {}
        stats = {'total': len(self._modules), 'active': 0, 'inactive': 0, 'error': 0}
        for key, entry in self._modules.items():
            stats[entry.metadata.status.value] += 1
            category = key.split('.', 1)[0]
            by_category[category] = by_category.get(category, 0) + 1
        stats['by_category'] = by_category
        return stats

    def health_check(self) -> Dict[str, bool]:
        """Map of key to whether the module is active."""
        return {
            key: entry.metadata.status is ModuleStatus.ACTIVE
            for key, entry in self._modules.items()
        }

    def clear(self) -> None:
        self._modules.clear()
