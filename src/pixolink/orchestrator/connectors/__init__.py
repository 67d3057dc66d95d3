"""
Connectors to external capabilities: image generation, data store,
guard reporting and rule validation.
"""

from pixolink.orchestrator.connectors.data_store import DataStoreConnector
from pixolink.orchestrator.connectors.logic_guardian import (
    LogicGuardianConnector, ValidationIssue, ValidationReport
)
from pixolink.orchestrator.connectors.lumina import (
    HttpImageBackend, ImageBackend, LuminaConnector, MockImageBackend, build_image_backend
)
from pixolink.orchestrator.connectors.pixoguard import GuardReport, PixoGuardConnector

__all__ = [
    'DataStoreConnector',
    'GuardReport',
    'HttpImageBackend',
    'ImageBackend',
    'LogicGuardianConnector',
    'LuminaConnector',
    'MockImageBackend',
    'PixoGuardConnector',
    'ValidationIssue',
    'ValidationReport',
    'build_image_backend',
]
