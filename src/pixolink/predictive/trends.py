"""
Trend analysis over module health logs.
"""

# Standard library imports
from collections import OrderedDict
from typing import Dict, List, Sequence

# Third-party imports
import numpy as np

# Local imports
from pixolink.predictive.models import HealthLog, TrendData

TREND_WINDOW = 10


def group_by_module(logs: Sequence[HealthLog]) -> Dict[str, List[HealthLog]]:
    """Group logs by module, keeping first-seen module order."""
    groups: Dict[str, List[HealthLog]] = OrderedDict()
    for log in logs:
        groups.setdefault(log.module, []).append(log)
    return groups


def latencies_of(logs: Sequence[HealthLog]) -> List[float]:
    return [float(log.latency) for log in logs if log.latency and log.latency > 0]


class TrendAnalyzer:
    """Per-module averages and recent latency series."""

    @staticmethod
    def get_trends(logs: Sequence[HealthLog], period: int = 100) -> List[TrendData]:
        recent = list(logs)[-period:] if period > 0 else []
        trends: List[TrendData] = []

        for module, module_logs in group_by_module(recent).items():
            latencies = latencies_of(module_logs)
            if not latencies:
                continue

            error_rates = [float(log.error_rate or 0) for log in module_logs]
            error_rates = [e for e in error_rates if e >= 0]
            memory = [float(log.memory_usage) for log in module_logs
                      if log.memory_usage and log.memory_usage > 0]

            window = min(TREND_WINDOW, len(latencies))
            trends.append(TrendData(
                module=module,
                avg_latency=float(np.mean(latencies)),
                avg_error_rate=float(np.mean(error_rates)) if error_rates else 0.0,
                avg_memory_usage=float(np.mean(memory)) if memory else 0.0,
                trend=latencies[-window:],
            ))

        return trends

    @staticmethod
    def calculate_std_dev(values: Sequence[float]) -> float:
        """Population standard deviation, 0 for an empty series."""
        if not values:
            return 0.0
        return float(np.std(values))

    @staticmethod
    def is_increasing(trend: Sequence[float]) -> bool:
        if len(trend) < 2:
            return False
        return TrendAnalyzer.calculate_slope(trend) > 0

    @staticmethod
    def calculate_slope(values: Sequence[float]) -> float:
        """Least-squares slope over x = 0..n-1."""
        n = len(values)
        if n < 2:
            return 0.0
        y = np.asarray(values, dtype=float)
        x = np.arange(n, dtype=float)
        sum_x = x.sum()
        sum_x2 = (x * x).sum()
        return float((n * (x * y).sum() - sum_x * y.sum()) / (n * sum_x2 - sum_x * sum_x))
