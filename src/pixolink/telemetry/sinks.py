"""
Outbound telemetry sink contracts.

A metrics sink receives product analytics events; an error sink receives
exceptions and messages at a severity level. Both are optional: without a
sink the trackers keep working locally.
"""

# Standard library imports
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class MetricsSink(Protocol):

    def capture(self, name: str, properties: Optional[Dict[str, Any]] = None) -> None:
        ...

    def identify(self, user_id: str, properties: Optional[Dict[str, Any]] = None) -> None:
        ...

    def reset(self) -> None:
        ...


@runtime_checkable
class ErrorSink(Protocol):

    def capture_exception(self, error: BaseException, level: str,
                          context: Optional[Dict[str, Any]] = None,
                          user_id: Optional[str] = None) -> None:
        ...

    def capture_message(self, message: str, level: str,
                        context: Optional[Dict[str, Any]] = None) -> None:
        ...

    def set_user(self, user_id: str, email: Optional[str] = None,
                 username: Optional[str] = None) -> None:
        ...

    def add_breadcrumb(self, message: str, category: str = 'default',
                       data: Optional[Dict[str, Any]] = None) -> None:
        ...
