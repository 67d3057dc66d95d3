"""
Telemetry trackers: metrics, error reporting and usage aggregation.
"""

from pixolink.telemetry.errors import ErrorReport, ErrorReporter, map_severity
from pixolink.telemetry.metrics import MetricsTracker, TelemetryEvent
from pixolink.telemetry.sinks import ErrorSink, MetricsSink
from pixolink.telemetry.usage import UsageEvents, UsageMetrics

__all__ = [
    'ErrorReport',
    'ErrorReporter',
    'ErrorSink',
    'MetricsSink',
    'MetricsTracker',
    'TelemetryEvent',
    'UsageEvents',
    'UsageMetrics',
    'map_severity',
]
