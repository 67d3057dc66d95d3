"""
PixoLink

Intelligence orchestration layer for AI image-generation pipelines.
"""

__version__ = "0.6.0"

# Import only what's needed for initialization
from pixolink.utils.logger import get_logger

# Initialize logger first
logger = get_logger(__name__)

from pixolink.core.codex import EventType, GenerationOptions, PipelineResult
from pixolink.orchestrator.event_bus import EventBus
from pixolink.orchestrator.orchestrator import Orchestrator, OrchestratorConfig, create_orchestrator
from pixolink.orchestrator.registry import ModuleRegistry
from pixolink.predictive import PMAL, HealthLog, PredictiveSummary
from pixolink.tuning import AdaptiveTuner

__all__ = [
    'AdaptiveTuner',
    'EventBus',
    'EventType',
    'GenerationOptions',
    'HealthLog',
    'ModuleRegistry',
    'Orchestrator',
    'OrchestratorConfig',
    'PMAL',
    'PipelineResult',
    'PredictiveSummary',
    'create_orchestrator',
    'get_logger',
    'logger',
    '__version__',
]
