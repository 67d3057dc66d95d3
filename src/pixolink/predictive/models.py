"""
Value objects for the predictive maintenance layer.

Health logs go in; trends, anomaly predictions, risk assessments,
correlations, recurring patterns, advisories and forecasts come out,
folded together into a single ``PredictiveSummary``.
"""

# Standard library imports
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

# Local imports
from pixolink.core.codex import now_ms

RiskLevel = Literal['Low', 'Medium', 'High', 'Critical']
ActionType = Literal['monitor', 'optimize', 'restart', 'scale', 'urgent']
Timeframe = Literal['1h', '6h', '24h', '7d']
HealthLabel = Literal['Healthy', 'Warning', 'Critical']

RISK_TIERS: List[str] = ['Low', 'Medium', 'High', 'Critical']


def escalate_risk(current: str) -> str:
    """Raise a risk tier by one step, stopping at Critical."""
    index = RISK_TIERS.index(current)
    return RISK_TIERS[min(index + 1, len(RISK_TIERS) - 1)]


@dataclass
class HealthLog:
    """A single health sample reported by a module."""
    module: str
    timestamp: int = field(default_factory=now_ms)
    latency: Optional[float] = None
    error_rate: Optional[float] = None
    memory_usage: Optional[float] = None
    cpu_usage: Optional[float] = None
    request_count: Optional[int] = None
    severity: Optional[Literal['info', 'warning', 'error', 'critical']] = None
    message: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> 'HealthLog':
        """Build a log from a dict using either camelCase or snake_case keys."""
        def pick(snake: str, camel: str) -> Any:
            return data.get(snake, data.get(camel))

        return cls(
            module=data['module'],
            timestamp=data.get('timestamp') or now_ms(),
            latency=data.get('latency'),
            error_rate=pick('error_rate', 'errorRate'),
            memory_usage=pick('memory_usage', 'memoryUsage'),
            cpu_usage=pick('cpu_usage', 'cpuUsage'),
            request_count=pick('request_count', 'requestCount'),
            severity=data.get('severity'),
            message=data.get('message'),
        )


@dataclass
class TrendData:
    module: str
    avg_latency: float
    avg_error_rate: float
    avg_memory_usage: float
    trend: List[float]
    timestamp: int = field(default_factory=now_ms)


@dataclass
class AnomalyPrediction:
    module: str
    metric: Literal['latency', 'errorRate', 'memory', 'cpu']
    avg: float
    slope: float
    risk: RiskLevel
    confidence: float
    timestamp: int = field(default_factory=now_ms)


@dataclass
class RiskAssessment:
    module: str
    risk_level: RiskLevel
    probability: float
    impact_score: float
    confidence: float
    predicted_failure_window: Optional[str] = None
    timestamp: int = field(default_factory=now_ms)


@dataclass
class CorrelationPattern:
    modules: List[str]
    correlation_type: Literal['positive', 'negative', 'cascading']
    strength: float
    description: str


@dataclass
class RecurringPattern:
    module: str
    pattern_type: Literal['spike', 'drift', 'oscillation', 'degradation']
    frequency: float
    description: str
    first_seen: int
    last_seen: int
    occurrences: int


@dataclass
class PredictiveAdvisory:
    module: str
    risk: RiskLevel
    probability: float
    suggestion: str
    action_type: ActionType
    auto_applicable: bool
    timestamp: int = field(default_factory=now_ms)


@dataclass
class PredictedMetrics:
    latency: float
    error_rate: float
    memory_usage: float


@dataclass
class ForecastResult:
    module: str
    timeframe: Timeframe
    predicted_metrics: PredictedMetrics
    confidence: float
    warnings: List[str] = field(default_factory=list)


@dataclass
class AutoTuningAction:
    module: str
    mode: Literal['safe', 'balanced', 'aggressive']
    adjustments: Dict[str, Any]
    reason: str
    applied_at: int = field(default_factory=now_ms)


@dataclass
class PredictiveSummary:
    """Everything one forecast run produced."""
    overall_health: HealthLabel
    advisories: List[PredictiveAdvisory] = field(default_factory=list)
    risk_assessments: List[RiskAssessment] = field(default_factory=list)
    correlations: List[CorrelationPattern] = field(default_factory=list)
    forecasts: List[ForecastResult] = field(default_factory=list)
    auto_tuning_actions: List[AutoTuningAction] = field(default_factory=list)
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
