"""
Adaptive tuner for module runtime settings.

When a risk assessment crosses the auto-tune line the tuner swaps a more
conservative configuration in for that module, records the change and
persists the active configurations to a disk cache.
"""

# Standard library imports
from copy import deepcopy
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

# Third-party imports
import diskcache

# Local imports
from pixolink.core.codex import now_ms
from pixolink.core.config import config_manager
from pixolink.utils.logger import get_logger

if TYPE_CHECKING:
    from pixolink.predictive.models import RiskAssessment

logger = get_logger(__name__)

CONFIG_CACHE_KEY = "pmal_module_configs"
DAY_MS = 24 * 60 * 60 * 1000
RESET_REASON = 'Manual reset to defaults'


@dataclass
class TuningAdjustments:
    concurrency_limit: Optional[int] = None
    timeout: Optional[int] = None
    cache_size: Optional[int] = None
    retry_strategy: Optional[str] = None
    rate_limit: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ModuleConfig:
    mode: str = 'balanced'
    enabled: bool = True
    adjustments: TuningAdjustments = field(default_factory=lambda: TuningAdjustments(
        concurrency_limit=20, timeout=3000, retry_strategy='linear', rate_limit=50
    ))

    def to_dict(self) -> Dict[str, Any]:
        return {'mode': self.mode, 'enabled': self.enabled, 'adjustments': self.adjustments.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ModuleConfig':
        return cls(
            mode=data.get('mode', 'balanced'),
            enabled=data.get('enabled', True),
            adjustments=TuningAdjustments(**data.get('adjustments', {}))
        )


@dataclass
class TuningRecord:
    module: str
    before: ModuleConfig
    after: ModuleConfig
    reason: str
    timestamp: int = field(default_factory=now_ms)


@dataclass
class TuningAction:
    module: str
    config: ModuleConfig
    reason: str


def tuning_reason(assessment: 'RiskAssessment') -> str:
    return (
        f"Auto-tune triggered: {assessment.risk_level} risk with "
        f"{assessment.probability * 100:.0f}% probability"
    )


def optimal_config(assessment: 'RiskAssessment') -> ModuleConfig:
    if assessment.risk_level == 'Critical' or assessment.probability > 0.9:
        return ModuleConfig(mode='safe', adjustments=TuningAdjustments(
            concurrency_limit=5, timeout=10000, retry_strategy='exponential', rate_limit=10
        ))
    if assessment.risk_level == 'High' or assessment.probability > 0.8:
        return ModuleConfig(mode='safe', adjustments=TuningAdjustments(
            concurrency_limit=10, timeout=5000, retry_strategy='exponential', rate_limit=20
        ))
    return ModuleConfig()


class AdaptiveTuner:
    """
    Per-module configuration tuning driven by risk assessments.

    Features:
    1. Conservative configurations for high-probability or critical risk
    2. Full before/after history of every change
    3. Best-effort persistence of active configurations in a diskcache store
    """

    def __init__(self, cache_dir: Optional[str] = None, size_limit: Optional[int] = None):
        tuner_config = config_manager.get_tuner_config()
        cache_dir = cache_dir or tuner_config.cache_dir
        size_limit = size_limit or tuner_config.size_limit

        self._active: Dict[str, ModuleConfig] = {}
        self._history: List[TuningRecord] = []
        self._cache: Optional[diskcache.Cache] = None

        if cache_dir:
            try:
                self._cache = diskcache.Cache(directory=cache_dir, size_limit=size_limit)
                self._load()
            except Exception as e:
                logger.warning(f"Tuner persistence disabled: {str(e)}")
                self._cache = None

    def _load(self) -> None:
        stored = self._cache.get(CONFIG_CACHE_KEY) or {}
        for module, data in stored.items():
            self._active[module] = ModuleConfig.from_dict(data)
        if stored:
            logger.debug(f"Loaded tuned configs for {len(stored)} module(s)")

    def _persist(self) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(CONFIG_CACHE_KEY, {m: c.to_dict() for m, c in self._active.items()})
        except Exception as e:
            logger.warning(f"Failed to persist tuned configs: {str(e)}")

    def _apply(self, module: str, config: ModuleConfig, reason: str) -> None:
        before = self._active.get(module) or ModuleConfig()
        self._history.append(TuningRecord(
            module=module, before=deepcopy(before), after=deepcopy(config), reason=reason
        ))
        self._active[module] = config
        logger.info(f"Applying {config.mode} config to {module}: {config.adjustments.to_dict()}")
        self._persist()

    def adapt(self, module: str, assessment: 'RiskAssessment') -> Optional[ModuleConfig]:
        if assessment.probability <= 0.8 and assessment.risk_level != 'Critical':
            return None
        config = optimal_config(assessment)
        self._apply(module, config, tuning_reason(assessment))
        return config

    def reset(self, module: str) -> None:
        if module not in self._active:
            return
        self._apply(module, ModuleConfig(), RESET_REASON)

    def reset_all(self) -> None:
        for module in list(self._active):
            self.reset(module)

    def get_config(self, module: str) -> ModuleConfig:
        return self._active.get(module) or ModuleConfig()

    def get_history(self, module: Optional[str] = None) -> List[TuningRecord]:
        if module:
            return [r for r in self._history if r.module == module]
        return list(self._history)

    def get_stats(self) -> Dict[str, Any]:
        last_day = now_ms() - DAY_MS
        modules = {r.module for r in self._history}
        total = len(self._history)
        return {
            'total_adjustments': total,
            'modules_covered': len(modules),
            'recent_adjustments': sum(1 for r in self._history if r.timestamp > last_day),
            'average_frequency': total / max(len(modules), 1) if total else 0,
        }

    def apply_auto_tuning(self, assessments: Sequence['RiskAssessment']) -> List[TuningAction]:
        actions: List[TuningAction] = []
        for assessment in assessments:
            config = self.adapt(assessment.module, assessment)
            if config:
                actions.append(TuningAction(
                    module=assessment.module, config=config, reason=tuning_reason(assessment)
                ))
        return actions

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()
            self._cache = None
