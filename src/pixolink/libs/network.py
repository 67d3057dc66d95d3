"""
Network status monitor.

Holds the current connectivity state and its quality class, and notifies
subscribers whenever the host application reports a change.
"""

# Standard library imports
import inspect
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, List, Optional, Union

# Local imports
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

NetworkCallback = Callable[['NetworkStatus'], Union[None, Awaitable[None]]]


@dataclass
class NetworkStatus:
    is_online: bool = True
    quality: str = 'good'
    effective_type: Optional[str] = None
    downlink: Optional[float] = None
    rtt: Optional[float] = None

    def to_payload(self) -> dict:
        return {
            'isOnline': self.is_online,
            'quality': self.quality,
            'effectiveType': self.effective_type,
            'downlink': self.downlink,
            'rtt': self.rtt,
        }


def classify_quality(is_online: bool, effective_type: Optional[str], downlink: Optional[float]) -> str:
    """offline, poor (2g), excellent (4g above 5 Mbps) or good."""
    if not is_online:
        return 'offline'
    if effective_type in ('slow-2g', '2g'):
        return 'poor'
    if effective_type == '4g' and (downlink or 0) > 5:
        return 'excellent'
    return 'good'


class NetworkMonitor:
    """Connectivity state with change subscriptions; starts online."""

    def __init__(self, status: Optional[NetworkStatus] = None):
        self._status = status or NetworkStatus()
        self._listeners: List[NetworkCallback] = []

    def get_status(self) -> NetworkStatus:
        return replace(self._status)

    def is_online(self) -> bool:
        return self._status.is_online

    def get_quality(self) -> str:
        return self._status.quality

    def subscribe(self, callback: NetworkCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def update_status(
        self,
        is_online: bool,
        effective_type: Optional[str] = None,
        downlink: Optional[float] = None,
        rtt: Optional[float] = None
    ) -> NetworkStatus:
        """Record a connectivity change and notify every subscriber."""
        self._status = NetworkStatus(
            is_online=is_online,
            quality=classify_quality(is_online, effective_type, downlink),
            effective_type=effective_type if is_online else None,
            downlink=downlink if is_online else None,
            rtt=rtt if is_online else None,
        )
        logger.info(f"Network status changed: {self._status.quality}")

        for callback in list(self._listeners):
            try:
                result: Any = callback(self.get_status())
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Network listener error: {str(e)}")
        return self.get_status()
