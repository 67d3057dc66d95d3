"""
PixoGuard connector.

Collects anomaly, performance, security and quality reports raised by the
orchestrator and mirrors each one onto the bus as ``TELEMETRY_LOGGED``.
"""

# Standard library imports
import json
import time
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Optional

# Local imports
from pixolink.core.codex import ConnectorResult, EventType, now_ms
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

MAX_REPORTS = 1000
HOUR_MS = 60 * 60 * 1000
REPORT_TYPES = ('anomaly', 'performance', 'security', 'quality')
SEVERITIES = ('low', 'medium', 'high', 'critical')


@dataclass
class GuardReport:
    type: str
    severity: str
    message: str
    data: Optional[Dict[str, Any]] = None
    timestamp: int = field(default_factory=now_ms)


class PixoGuardConnector:
    """Bounded in-memory report log."""

    def __init__(self, event_bus: EventBus, max_reports: int = MAX_REPORTS):
        self.event_bus = event_bus
        self._reports: Deque[GuardReport] = deque(maxlen=max_reports)

    async def report(self, type: str, severity: str, message: str,
                     data: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        started = time.perf_counter()
        try:
            if type not in REPORT_TYPES:
                raise ValueError(f"Unknown report type: {type}")
            if severity not in SEVERITIES:
                raise ValueError(f"Unknown report severity: {severity}")

            entry = GuardReport(type=type, severity=severity, message=message, data=data)
            self._reports.append(entry)

            await self.event_bus.publish(EventType.TELEMETRY_LOGGED, {
                'source': 'pixoguard',
                'report': asdict(entry),
            })
            logger.info(f"[{severity.upper()}] {type}: {message}")
            return ConnectorResult.ok(entry, started)
        except Exception as e:
            logger.error(f"Error recording guard report: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def report_anomaly(self, message: str, severity: str,
                             data: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        return await self.report('anomaly', severity, message, data)

    async def report_performance(self, message: str, severity: str,
                                 data: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        return await self.report('performance', severity, message, data)

    async def report_security(self, message: str, severity: str,
                              data: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        return await self.report('security', severity, message, data)

    async def report_quality(self, message: str, severity: str,
                             data: Optional[Dict[str, Any]] = None) -> ConnectorResult:
        return await self.report('quality', severity, message, data)

    def get_reports(self, type: Optional[str] = None, severity: Optional[str] = None,
                    limit: Optional[int] = None) -> List[GuardReport]:
        reports = list(self._reports)
        if type:
            reports = [r for r in reports if r.type == type]
        if severity:
            reports = [r for r in reports if r.severity == severity]
        if limit:
            reports = reports[-limit:]
        return reports

    def get_stats(self) -> Dict[str, Any]:
        one_hour_ago = now_ms() - HOUR_MS
        return {
            'total': len(self._reports),
            'by_type': dict(Counter(r.type for r in self._reports)),
            'by_severity': dict(Counter(r.severity for r in self._reports)),
            'recent_count': sum(1 for r in self._reports if r.timestamp > one_hour_ago),
        }

    def clear_reports(self) -> None:
        self._reports.clear()

    def export_reports(self) -> str:
        return json.dumps([asdict(r) for r in self._reports], indent=2, default=str)
