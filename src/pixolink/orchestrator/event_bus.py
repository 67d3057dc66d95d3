"""
Event bus for the PixoLink orchestration layer.

This module provides the in-process publish/subscribe hub that connects
adapters, connectors, telemetry and the orchestrator. Listeners for one
event run concurrently; a failing listener is isolated from its siblings
and reported back onto the bus as ``ERROR_OCCURRED``.
"""

# Standard library imports
import asyncio
import itertools
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Union

# Local imports
from pixolink.core.codex import Event, EventCallback, EventType, ListenerHandle
from pixolink.core.config import config_manager
from pixolink.core.exceptions import EventTimeoutError
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Typed publish/subscribe hub with a bounded history.

    Features:
    1. Independent registrations with per-registration unsubscribe
    2. Concurrent, failure-isolated listener dispatch
    3. Bounded FIFO event history with filtering
    4. One-shot awaiting of the next event of a type
    """

    def __init__(self, max_history: Optional[int] = None, wait_timeout: Optional[float] = None):
        bus_config = config_manager.get_bus_config()
        self._max_history = max_history if max_history is not None else bus_config.history_size
        self._wait_timeout = wait_timeout if wait_timeout is not None else bus_config.wait_timeout
        self._listeners: Dict[EventType, Dict[int, ListenerHandle]] = defaultdict(dict)
        self._history: Deque[Event] = deque(maxlen=self._max_history)
        self._tokens = itertools.count()

    @property
    def max_history(self) -> int:
        return self._max_history

    def subscribe(self, event_type: Union[EventType, str], callback: EventCallback) -> Callable[[], None]:
        """
        Register a listener for an event type.

        Args:
            event_type: Type of event to listen for
            callback: Sync or async callable receiving the Event

        Returns:
            A function removing exactly this registration; calling it twice is a no-op
        """
        event_type = EventType.coerce(event_type)
        token = next(self._tokens)
        self._listeners[event_type][token] = ListenerHandle(callback)
        logger.debug(f"Registered listener for {event_type.value}")

        def unsubscribe() -> None:
            listeners = self._listeners.get(event_type)
            if listeners is not None:
                listeners.pop(token, None)

        return unsubscribe

    async def publish(
        self,
        event_type: Union[EventType, str],
        data: Optional[Mapping[str, Any]] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None
    ) -> Event:
        """
        Record an event and deliver it to every current listener.

        Listener failures are logged and republished as ERROR_OCCURRED; they
        never propagate to the publisher.

        Returns:
            The published event
        """
        event = Event(
            type=event_type,
            data=data or {},
            user_id=user_id,
            session_id=session_id,
            metadata=metadata
        )
        self._history.append(event)

        handlers = list(self._listeners.get(event.type, {}).values())
        if not handlers:
            return event

        await asyncio.gather(
            *(self._dispatch(handler, event) for handler in handlers),
            return_exceptions=True
        )
        return event

    async def _dispatch(self, handler: ListenerHandle, event: Event) -> None:
        try:
            await handler(event)
        except Exception as e:
            logger.error(f"Listener error for event {event.type.value}: {str(e)}")
            # Failures inside ERROR_OCCURRED listeners stop here
            if event.type is EventType.ERROR_OCCURRED:
                return
            await self.publish(EventType.ERROR_OCCURRED, {
                'originalEvent': event.type.value,
                'error': str(e),
                'payload': dict(event.data),
            }, user_id=event.user_id, session_id=event.session_id)

    def get_listeners(self, event_type: Union[EventType, str]) -> int:
        """Number of registrations for an event type."""
        return len(self._listeners.get(EventType.coerce(event_type), {}))

    def get_registered_events(self) -> List[EventType]:
        """Event types that currently have at least one listener."""
        return [event_type for event_type, listeners in self._listeners.items() if listeners]

    def clear_listeners(self, event_type: Optional[Union[EventType, str]] = None) -> None:
        """Remove listeners for one event type, or for all types."""
        if event_type is None:
            self._listeners.clear()
        else:
            self._listeners.pop(EventType.coerce(event_type), None)

    def get_history(
        self,
        event_type: Optional[Union[EventType, str]] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Event]:
        """
        Filtered view of the event history, oldest first.

        Args:
            event_type: Only events of this type
            user_id: Only events published for this user
            session_id: Only events published for this session
            limit: Keep only the most recent N matches
        """
        events = list(self._history)
        if event_type is not None:
            wanted = EventType.coerce(event_type)
            events = [e for e in events if e.type is wanted]
        if user_id is not None:
            events = [e for e in events if e.user_id == user_id]
        if session_id is not None:
            events = [e for e in events if e.session_id == session_id]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def clear_history(self) -> None:
        self._history.clear()

    async def wait_for(self, event_type: Union[EventType, str], timeout: Optional[float] = None) -> Event:
        """
        Wait for the next event of a type.

        Args:
            event_type: Type of event to wait for
            timeout: Seconds to wait before giving up

        Raises:
            EventTimeoutError: If no matching event arrives in time
        """
        event_type = EventType.coerce(event_type)
        timeout = self._wait_timeout if timeout is None else timeout
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def resolve(event: Event) -> None:
            if not future.done():
                future.set_result(event)

        unsubscribe = self.subscribe(event_type, resolve)
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise EventTimeoutError(f"Timeout waiting for event: {event_type.value}")
        finally:
            unsubscribe()

    def get_stats(self) -> Dict[str, Any]:
        """Counts of recorded events and registrations, keyed by type name."""
        events_by_type: Dict[str, int] = defaultdict(int)
        for event in self._history:
            events_by_type[event.type.value] += 1
        listeners_by_type = {
            event_type.value: len(listeners)
            for event_type, listeners in self._listeners.items()
            if listeners
        }
        return {
            'total_events': len(self._history),
            'events_by_type': dict(events_by_type),
            'listeners_by_type': listeners_by_type,
        }
