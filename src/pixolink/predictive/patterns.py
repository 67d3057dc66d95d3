"""
Recurring pattern detection: latency spikes, drift and oscillation.
"""

# Standard library imports
from typing import List, Optional, Sequence

# Third-party imports
import numpy as np

# Local imports
from pixolink.core.codex import now_ms
from pixolink.predictive.models import HealthLog, RecurringPattern
from pixolink.predictive.trends import group_by_module, latencies_of

MIN_SPIKE_SAMPLES = 10
MIN_DRIFT_SAMPLES = 20
MIN_OSCILLATION_SAMPLES = 10
SPIKE_FACTOR = 2
MIN_SPIKES = 3
DRIFT_PERCENT = 20
OSCILLATION_FREQUENCY = 0.3


class PatternEngine:

    @staticmethod
    def detect_patterns(logs: Sequence[HealthLog]) -> List[RecurringPattern]:
        patterns: List[RecurringPattern] = []
        for module, module_logs in group_by_module(logs).items():
            for detector in (PatternEngine.detect_spikes,
                             PatternEngine.detect_drift,
                             PatternEngine.detect_oscillations):
                pattern = detector(module, module_logs)
                if pattern:
                    patterns.append(pattern)
        return patterns

    @staticmethod
    def detect_spikes(module: str, logs: Sequence[HealthLog]) -> Optional[RecurringPattern]:
        latencies = latencies_of(logs)
        if len(latencies) < MIN_SPIKE_SAMPLES:
            return None

        threshold = float(np.mean(latencies)) * SPIKE_FACTOR
        spikes = [l for l in latencies if l > threshold]
        if len(spikes) <= MIN_SPIKES:
            return None

        return RecurringPattern(
            module=module,
            pattern_type='spike',
            frequency=len(spikes) / len(logs),
            description=f"{len(spikes)} latency spikes detected (>{threshold:.0f}ms)",
            first_seen=logs[0].timestamp,
            last_seen=logs[-1].timestamp,
            occurrences=len(spikes)
        )

    @staticmethod
    def detect_drift(module: str, logs: Sequence[HealthLog]) -> Optional[RecurringPattern]:
        latencies = latencies_of(logs)
        if len(latencies) < MIN_DRIFT_SAMPLES:
            return None

        half = len(latencies) // 2
        avg_first = float(np.mean(latencies[:half]))
        avg_second = float(np.mean(latencies[half:]))
        drift = (avg_second - avg_first) / avg_first * 100
        if abs(drift) <= DRIFT_PERCENT:
            return None

        direction = 'Upward' if drift > 0 else 'Downward'
        return RecurringPattern(
            module=module,
            pattern_type='drift',
            frequency=1,
            description=f"{direction} drift of {abs(drift):.1f}% detected",
            first_seen=logs[0].timestamp,
            last_seen=logs[-1].timestamp,
            occurrences=1
        )

    @staticmethod
    def detect_oscillations(module: str, logs: Sequence[HealthLog]) -> Optional[RecurringPattern]:
        latencies = latencies_of(logs)
        if len(latencies) < MIN_OSCILLATION_SAMPLES:
            return None

        # Count local peaks and valleys
        oscillations = 0
        for prev, curr, nxt in zip(latencies, latencies[1:], latencies[2:]):
            if (curr > prev and curr > nxt) or (curr < prev and curr < nxt):
                oscillations += 1

        frequency = oscillations / len(latencies)
        if frequency <= OSCILLATION_FREQUENCY:
            return None

        return RecurringPattern(
            module=module,
            pattern_type='oscillation',
            frequency=frequency,
            description=f"High oscillation detected ({oscillations} peaks/valleys)",
            first_seen=logs[0].timestamp,
            last_seen=logs[-1].timestamp,
            occurrences=oscillations
        )

    @staticmethod
    def predict_continuation(pattern: RecurringPattern) -> bool:
        if pattern.frequency > 0.5:
            return True
        since_last_seen = now_ms() - pattern.last_seen
        duration = pattern.last_seen - pattern.first_seen
        return since_last_seen < duration * 0.2
