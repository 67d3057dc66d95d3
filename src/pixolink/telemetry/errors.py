"""
Error reporter.

Keeps a bounded history of reported errors, forwards them to an optional
error sink and publishes each one on the bus as ``ERROR_OCCURRED``.
"""

# Standard library imports
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Union

# Local imports
from pixolink.core.codex import EventType, now_ms
from pixolink.orchestrator.event_bus import EventBus
from pixolink.telemetry.sinks import ErrorSink
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

MAX_HISTORY_SIZE = 100
HOUR_MS = 60 * 60 * 1000
REPORTER_SOURCE = 'error_reporter'

SEVERITY_LEVELS = {
    'low': 'info',
    'medium': 'warning',
    'high': 'error',
    'critical': 'fatal',
}


def map_severity(severity: str) -> str:
    return SEVERITY_LEVELS.get(severity, 'error')


@dataclass
class ErrorReport:
    error: BaseException
    context: Optional[Dict[str, Any]] = None
    severity: str = 'medium'
    user_id: Optional[str] = None
    timestamp: int = field(default_factory=now_ms)


class ErrorReporter:
    """
    Centralized error reporting.

    Features:
    1. Bounded in-memory history with severity and user filters
    2. Optional forwarding to an error sink
    3. ERROR_OCCURRED publication tagged with the reporter as source
    """

    def __init__(self, event_bus: EventBus, max_history: int = MAX_HISTORY_SIZE):
        self.event_bus = event_bus
        self._sink: Optional[ErrorSink] = None
        self._history: Deque[ErrorReport] = deque(maxlen=max_history)

    def initialize(self, sink: Optional[ErrorSink] = None) -> None:
        if self._sink is not None:
            return
        if sink is None:
            logger.warning("No error sink configured, errors will be logged only")
            return
        self._sink = sink
        logger.info("Error reporter initialized")

    async def report(self, error: Union[BaseException, str], context: Optional[Dict[str, Any]] = None,
                     severity: str = 'medium', user_id: Optional[str] = None) -> ErrorReport:
        if not isinstance(error, BaseException):
            error = Exception(str(error))
        entry = ErrorReport(error=error, context=context, severity=severity, user_id=user_id)
        self._history.append(entry)

        if self._sink is not None:
            try:
                self._sink.capture_exception(error, map_severity(severity), context, user_id)
            except Exception as e:
                logger.error(f"Failed to forward error to sink: {str(e)}")

        logger.debug(f"{severity.upper()} error reported: {str(error)}")

        await self.event_bus.publish(EventType.ERROR_OCCURRED, {
            'error': str(error),
            'context': context,
            'severity': severity,
            'userId': user_id,
            'source': REPORTER_SOURCE,
        }, user_id=user_id)
        return entry

    async def critical(self, error, context=None, user_id=None) -> ErrorReport:
        return await self.report(error, context, 'critical', user_id)

    async def high(self, error, context=None, user_id=None) -> ErrorReport:
        return await self.report(error, context, 'high', user_id)

    async def medium(self, error, context=None, user_id=None) -> ErrorReport:
        return await self.report(error, context, 'medium', user_id)

    async def low(self, error, context=None, user_id=None) -> ErrorReport:
        return await self.report(error, context, 'low', user_id)

    def log(self, message: str, context: Optional[Dict[str, Any]] = None, level: str = 'info') -> None:
        if self._sink is not None:
            try:
                self._sink.capture_message(message, level, context)
            except Exception as e:
                logger.error(f"Failed to log message: {str(e)}")
        if level == 'error':
            logger.error(message)
        elif level == 'warning':
            logger.warning(message)
        else:
            logger.debug(message)

    def set_user(self, user_id: str, email: Optional[str] = None, username: Optional[str] = None) -> None:
        if self._sink is None:
            return
        try:
            self._sink.set_user(user_id, email, username)
        except Exception as e:
            logger.error(f"Failed to set user: {str(e)}")

    def add_breadcrumb(self, message: str, category: str = 'default',
                       data: Optional[Dict[str, Any]] = None) -> None:
        if self._sink is None:
            return
        try:
            self._sink.add_breadcrumb(message, category, data)
        except Exception as e:
            logger.error(f"Failed to add breadcrumb: {str(e)}")

    def get_history(self, severity: Optional[str] = None, user_id: Optional[str] = None,
                    limit: Optional[int] = None) -> List[ErrorReport]:
        history = list(self._history)
        if severity:
            history = [e for e in history if e.severity == severity]
        if user_id:
            history = [e for e in history if e.user_id == user_id]
        if limit:
            history = history[-limit:]
        return history

    def get_stats(self) -> Dict[str, Any]:
        one_hour_ago = now_ms() - HOUR_MS
        return {
            'total': len(self._history),
            'by_severity': dict(Counter(e.severity for e in self._history)),
            'recent_count': sum(1 for e in self._history if e.timestamp > one_hour_ago),
        }

    def clear_history(self) -> None:
        self._history.clear()

    def is_initialized(self) -> bool:
        return self._sink is not None
