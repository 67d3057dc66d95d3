"""
Anomaly prediction from latency trends.
"""

# Standard library imports
from typing import List, Sequence

# Local imports
from pixolink.predictive.models import AnomalyPrediction, TrendData, escalate_risk
from pixolink.predictive.trends import TrendAnalyzer

ERROR_RATE_LIMIT = 0.05
MEMORY_LIMIT = 0.8
ANOMALY_BASE_SCORES = {'Low': 25, 'Medium': 50, 'High': 75, 'Critical': 100}


def tier_for_slope(slope: float):
    magnitude = abs(slope)
    if magnitude > 50:
        return 'Critical', 0.9
    if magnitude > 20:
        return 'High', 0.75
    if magnitude > 10:
        return 'Medium', 0.6
    return 'Low', 0.5


class AnomalyPredictor:
    """
    Turns trends into risk-tiered latency predictions.

    The slope of the recent latency series picks the base tier. A high
    average error rate and high memory usage each escalate it once more.
    """

    @staticmethod
    def detect(trends: Sequence[TrendData]) -> List[AnomalyPrediction]:
        predictions: List[AnomalyPrediction] = []
        for trend in trends:
            slope = TrendAnalyzer.calculate_slope(trend.trend)
            risk, confidence = tier_for_slope(slope)

            if trend.avg_error_rate > ERROR_RATE_LIMIT:
                risk = escalate_risk(risk)
                confidence = min(confidence + 0.1, 1.0)

            if trend.avg_memory_usage > MEMORY_LIMIT:
                risk = escalate_risk(risk)
                confidence = min(confidence + 0.1, 1.0)

            predictions.append(AnomalyPrediction(
                module=trend.module,
                metric='latency',
                avg=trend.avg_latency,
                slope=slope,
                risk=risk,
                confidence=confidence,
            ))
        return predictions

    @staticmethod
    def calculate_anomaly_score(prediction: AnomalyPrediction) -> float:
        base = ANOMALY_BASE_SCORES[prediction.risk]
        slope_influence = min(abs(prediction.slope) / 100, 1) * 20
        return min(base * prediction.confidence + slope_influence, 100)
