"""
Predictive maintenance layer.

Forecasts module failures from health logs and proposes advisories and
tuning actions. ``PMAL`` is the entry point used by the orchestrator.
"""

# Standard library imports
from typing import Any, Dict, Optional, Sequence

# Local imports
from pixolink.libs.insight import InsightProvider
from pixolink.predictive.advisor import AdvisoryContext, AIAdvisor, rule_based_suggestion
from pixolink.predictive.anomaly import AnomalyPredictor
from pixolink.predictive.correlation import CorrelationMap
from pixolink.predictive.models import (
    AnomalyPrediction,
    AutoTuningAction,
    CorrelationPattern,
    ForecastResult,
    HealthLog,
    PredictedMetrics,
    PredictiveAdvisory,
    PredictiveSummary,
    RecurringPattern,
    RiskAssessment,
    TrendData,
)
from pixolink.predictive.patterns import PatternEngine
from pixolink.predictive.risk import RiskModel
from pixolink.predictive.summary import PredictiveSummaryGenerator
from pixolink.predictive.trends import TrendAnalyzer
from pixolink.predictive.visualizer import ForecastVisualizer
from pixolink.tuning import AdaptiveTuner


class PMAL:
    """Facade over forecast generation and visualization."""

    def __init__(self, tuner: Optional[AdaptiveTuner] = None,
                 advisory_provider: Optional[InsightProvider] = None):
        self.tuner = tuner or AdaptiveTuner()
        self.generator = PredictiveSummaryGenerator(self.tuner, AIAdvisor(advisory_provider))

    async def analyze(self, logs: Sequence[HealthLog], window: Optional[int] = None,
                      use_ai: Optional[bool] = None) -> PredictiveSummary:
        return await self.generator.get_forecast(logs, window, use_ai)

    @staticmethod
    def visualize(summary: PredictiveSummary) -> Dict[str, Any]:
        return {
            'table': ForecastVisualizer.format_for_table(summary),
            'chart': ForecastVisualizer.format_for_chart(summary),
            'advisories': ForecastVisualizer.format_advisories(summary.advisories),
        }


__all__ = [
    'PMAL',
    'AIAdvisor',
    'AdvisoryContext',
    'AnomalyPrediction',
    'AnomalyPredictor',
    'AutoTuningAction',
    'CorrelationMap',
    'CorrelationPattern',
    'ForecastResult',
    'ForecastVisualizer',
    'HealthLog',
    'PatternEngine',
    'PredictedMetrics',
    'PredictiveAdvisory',
    'PredictiveSummary',
    'PredictiveSummaryGenerator',
    'RecurringPattern',
    'RiskAssessment',
    'RiskModel',
    'TrendAnalyzer',
    'TrendData',
    'rule_based_suggestion',
]
