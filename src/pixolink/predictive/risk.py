"""
Risk model: failure probability, impact and failure window per module.
"""

# Standard library imports
from typing import List, Optional, Sequence

# Local imports
from pixolink.predictive.models import AnomalyPrediction, RiskAssessment

RISK_MULTIPLIERS = {'Low': 0.5, 'Medium': 1.0, 'High': 1.5, 'Critical': 2.0}
IMPACT_BASE_SCORES = {'Low': 20, 'Medium': 50, 'High': 75, 'Critical': 95}


class RiskModel:

    @staticmethod
    def evaluate(predictions: Sequence[AnomalyPrediction]) -> List[RiskAssessment]:
        assessments: List[RiskAssessment] = []
        for prediction in predictions:
            base_probability = min(abs(prediction.slope) / 100, 1)
            probability = min(base_probability * RISK_MULTIPLIERS[prediction.risk], 1.0)
            assessments.append(RiskAssessment(
                module=prediction.module,
                risk_level=prediction.risk,
                probability=probability,
                impact_score=RiskModel.calculate_impact_score(prediction),
                confidence=prediction.confidence,
                predicted_failure_window=RiskModel.predict_failure_window(prediction.slope),
            ))
        return assessments

    @staticmethod
    def calculate_impact_score(prediction: AnomalyPrediction) -> float:
        base = IMPACT_BASE_SCORES[prediction.risk]
        slope_influence = min(abs(prediction.slope) / 2, 20)
        return min(base + slope_influence + prediction.confidence * 10, 100)

    @staticmethod
    def predict_failure_window(slope: float) -> Optional[str]:
        magnitude = abs(slope)
        if magnitude > 50:
            return 'within 1 hour'
        if magnitude > 20:
            return 'within 6 hours'
        if magnitude > 10:
            return 'within 24 hours'
        if magnitude > 5:
            return 'within 7 days'
        return None

    @staticmethod
    def should_auto_tune(assessment: RiskAssessment) -> bool:
        return assessment.probability > 0.8 and assessment.risk_level in ('High', 'Critical')

    @staticmethod
    def calculate_overall_health(assessments: Sequence[RiskAssessment]) -> float:
        """Health score in [0, 100]; 100 when nothing was assessed."""
        if not assessments:
            return 100.0
        total_risk = sum(a.probability * a.impact_score for a in assessments)
        max_risk = len(assessments) * 100
        score = 100 - (total_risk / max_risk) * 100
        return max(0.0, min(100.0, score))
