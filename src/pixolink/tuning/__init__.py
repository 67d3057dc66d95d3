"""
Adaptive tuning of module runtime settings.
"""

from pixolink.tuning.adaptive_tuner import (
    CONFIG_CACHE_KEY,
    AdaptiveTuner,
    ModuleConfig,
    TuningAction,
    TuningAdjustments,
    TuningRecord,
)

__all__ = [
    'CONFIG_CACHE_KEY',
    'AdaptiveTuner',
    'ModuleConfig',
    'TuningAction',
    'TuningAdjustments',
    'TuningRecord',
]
