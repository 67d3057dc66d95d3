"""
Predictive summary generation.

Runs trends, anomaly prediction, correlation, risk, pattern detection,
advisory and auto-tuning in order and folds the results into one
``PredictiveSummary``.
"""

# Standard library imports
from typing import Dict, List, Optional, Sequence

# Local imports
from pixolink.predictive.advisor import AdvisoryContext, AIAdvisor
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
from pixolink.predictive.trends import TrendAnalyzer
from pixolink.tuning import AdaptiveTuner
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ANALYSIS_WINDOW = 100


def determine_timeframe(failure_window: Optional[str]) -> str:
    if not failure_window:
        return '24h'
    if '1 hour' in failure_window:
        return '1h'
    if '6 hours' in failure_window:
        return '6h'
    if '24 hours' in failure_window:
        return '24h'
    return '7d'


def health_label(score: float) -> str:
    if score > 80:
        return 'Healthy'
    if score > 50:
        return 'Warning'
    return 'Critical'


def generate_warnings(assessment: RiskAssessment, patterns: Sequence[RecurringPattern]) -> List[str]:
    warnings: List[str] = []
    if assessment.risk_level == 'Critical':
        warnings.append('Critical risk level - immediate attention required')
    if assessment.probability > 0.8:
        warnings.append('High failure probability detected')
    module_patterns = [p for p in patterns if p.module == assessment.module]
    if module_patterns:
        warnings.append(f"{len(module_patterns)} recurring pattern(s) detected")
    return warnings


def build_context(module: str, patterns: Sequence[RecurringPattern],
                  correlations: Sequence[CorrelationPattern]) -> AdvisoryContext:
    correlated: List[str] = []
    for correlation in correlations:
        if module in correlation.modules:
            correlated.extend(m for m in correlation.modules if m != module)
    return AdvisoryContext(
        recent_patterns=[p.description for p in patterns if p.module == module],
        correlated_modules=correlated
    )


class PredictiveSummaryGenerator:
    """Runs every predictive stage on each call; nothing is cached between runs."""

    def __init__(self, tuner: Optional[AdaptiveTuner] = None, advisor: Optional[AIAdvisor] = None):
        self.tuner = tuner or AdaptiveTuner()
        self.advisor = advisor or AIAdvisor()

    async def get_forecast(self, logs: Sequence[HealthLog], analysis_window: Optional[int] = None,
                           include_ai_advisory: Optional[bool] = None) -> PredictiveSummary:
        window = analysis_window or DEFAULT_ANALYSIS_WINDOW
        use_ai = True if include_ai_advisory is None else include_ai_advisory
        recent = [
            log if isinstance(log, HealthLog) else HealthLog.from_mapping(log)
            for log in list(logs)[-window:]
        ]

        trends = TrendAnalyzer.get_trends(recent, window)
        predictions = AnomalyPredictor.detect(trends)
        correlations = CorrelationMap.map_correlations(trends, predictions)
        assessments = RiskModel.evaluate(predictions)
        patterns = PatternEngine.detect_patterns(recent)

        advisories: List[PredictiveAdvisory] = []
        for assessment in assessments:
            if use_ai:
                context = build_context(assessment.module, patterns, correlations)
                advisories.append(await self.advisor.suggest(assessment, context))
            else:
                advisories.append(PredictiveAdvisory(
                    module=assessment.module,
                    risk=assessment.risk_level,
                    probability=assessment.probability,
                    suggestion=f"{assessment.risk_level} risk detected. Monitor closely.",
                    action_type='urgent' if assessment.risk_level == 'Critical' else 'monitor',
                    auto_applicable=False,
                ))

        forecasts = self._forecasts(assessments, predictions, trends, patterns)
        overall = health_label(RiskModel.calculate_overall_health(assessments))

        tuning_actions = [
            AutoTuningAction(
                module=action.module,
                mode=action.config.mode,
                adjustments=action.config.adjustments.to_dict(),
                reason=action.reason,
            )
            for action in self.tuner.apply_auto_tuning(assessments)
        ]

        logger.debug(
            f"Forecast over {len(recent)} log(s): {len(assessments)} module(s), "
            f"health {overall}, {len(tuning_actions)} tuning action(s)"
        )

        return PredictiveSummary(
            overall_health=overall,
            advisories=advisories,
            risk_assessments=assessments,
            correlations=correlations,
            forecasts=forecasts,
            auto_tuning_actions=tuning_actions,
        )

    @staticmethod
    def _forecasts(assessments: Sequence[RiskAssessment], predictions: Sequence[AnomalyPrediction],
                   trends: Sequence[TrendData], patterns: Sequence[RecurringPattern]) -> List[ForecastResult]:
        by_prediction: Dict[str, AnomalyPrediction] = {p.module: p for p in predictions}
        by_trend: Dict[str, TrendData] = {t.module: t for t in trends}

        forecasts: List[ForecastResult] = []
        for assessment in assessments:
            prediction = by_prediction.get(assessment.module)
            trend = by_trend.get(assessment.module)
            forecasts.append(ForecastResult(
                module=assessment.module,
                timeframe=determine_timeframe(assessment.predicted_failure_window),
                predicted_metrics=PredictedMetrics(
                    latency=prediction.avg if prediction else 0.0,
                    error_rate=trend.avg_error_rate if trend else 0.0,
                    memory_usage=trend.avg_memory_usage if trend else 0.0,
                ),
                confidence=assessment.confidence,
                warnings=generate_warnings(assessment, patterns),
            ))
        return forecasts
