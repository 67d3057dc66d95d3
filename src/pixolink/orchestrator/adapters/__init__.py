"""
Adapters binding the library engines to the event bus.
"""

from pixolink.orchestrator.adapters.lcc import LCCAdapter
from pixolink.orchestrator.adapters.lcm import LCMAdapter
from pixolink.orchestrator.adapters.logicsim import LogicSimAdapter
from pixolink.orchestrator.adapters.pixsync import PixSyncAdapter
from pixolink.orchestrator.adapters.visionpulse import (
    VisionAssessment, VisionInsights, VisionPulseAdapter, score_category
)
from pixolink.orchestrator.adapters.weavai import WeavAIAdapter

__all__ = [
    'LCCAdapter',
    'LCMAdapter',
    'LogicSimAdapter',
    'PixSyncAdapter',
    'VisionAssessment',
    'VisionInsights',
    'VisionPulseAdapter',
    'WeavAIAdapter',
    'score_category',
]
