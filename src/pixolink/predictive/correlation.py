"""
Cross-module correlation mapping.
"""

# Standard library imports
from typing import List, Optional, Sequence

# Third-party imports
import numpy as np

# Local imports
from pixolink.predictive.models import AnomalyPrediction, CorrelationPattern, TrendData

CORRELATION_THRESHOLD = 0.7
CASCADE_STRENGTH = 0.8


class CorrelationMap:
    """Finds cascading failures and positively correlated latency trends."""

    @staticmethod
    def map_correlations(trends: Sequence[TrendData],
                         predictions: Sequence[AnomalyPrediction]) -> List[CorrelationPattern]:
        patterns: List[CorrelationPattern] = []

        risky = [p for p in predictions if p.risk in ('High', 'Critical')]
        if len(risky) > 1:
            cascading = CorrelationMap.detect_cascading_failures(risky)
            if cascading:
                patterns.append(cascading)

        patterns.extend(CorrelationMap.find_positive_correlations(trends))
        return patterns

    @staticmethod
    def detect_cascading_failures(predictions: Sequence[AnomalyPrediction]) -> Optional[CorrelationPattern]:
        ranked = sorted(
            predictions,
            key=lambda p: p.avg * (2 if p.risk == 'Critical' else 1),
            reverse=True
        )
        if len(ranked) < 2:
            return None
        return CorrelationPattern(
            modules=[p.module for p in ranked],
            correlation_type='cascading',
            strength=CASCADE_STRENGTH,
            description=f"Cascading failure detected: {ranked[0].module} may be impacting downstream modules"
        )

    @staticmethod
    def find_positive_correlations(trends: Sequence[TrendData]) -> List[CorrelationPattern]:
        patterns: List[CorrelationPattern] = []
        for i, first in enumerate(trends):
            for second in trends[i + 1:]:
                correlation = CorrelationMap.calculate_correlation(first.trend, second.trend)
                if correlation > CORRELATION_THRESHOLD:
                    patterns.append(CorrelationPattern(
                        modules=[first.module, second.module],
                        correlation_type='positive',
                        strength=correlation,
                        description=(
                            f"Strong positive correlation detected between "
                            f"{first.module} and {second.module}"
                        )
                    ))
        return patterns

    @staticmethod
    def calculate_correlation(x: Sequence[float], y: Sequence[float]) -> float:
        """Pearson correlation over the trailing equal-length windows."""
        n = min(len(x), len(y))
        if n < 2:
            return 0.0
        xs = np.asarray(list(x)[-n:], dtype=float)
        ys = np.asarray(list(y)[-n:], dtype=float)

        # A flat series has no defined correlation
        if np.ptp(xs) == 0 or np.ptp(ys) == 0:
            return 0.0

        dx = xs - xs.mean()
        dy = ys - ys.mean()
        denominator = np.sqrt((dx * dx).sum() * (dy * dy).sum())
        if denominator == 0:
            return 0.0
        return float(np.clip((dx * dy).sum() / denominator, -1.0, 1.0))
