"""
Shared enumerations and type definitions for PixoLink.

This module contains the event taxonomy, the uniform connector result
envelope and the value objects exchanged between the orchestrator, its
adapters and the library engines behind them.
"""

# Standard library imports
import inspect
import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Coroutine, Dict, List, Mapping, Optional, Union

# Local imports
from pixolink.core.exceptions import PixoLinkError

# Listener callbacks may be plain functions or coroutine functions
EventCallback = Union[Callable[['Event'], None], Callable[['Event'], Coroutine[Any, Any, None]]]

QUALITY_ALERT_THRESHOLD = 70
NO_SESSION_ID = "no-session"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def elapsed_ms(started: float) -> float:
    """Milliseconds elapsed since a ``time.perf_counter()`` reading."""
    return (time.perf_counter() - started) * 1000


def random_suffix(length: int) -> str:
    """Random lowercase base36 suffix used in generated identifiers."""
    return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))


class EventType(Enum):
    """Closed set of event types carried by the event bus."""
    PROMPT_GENERATED = "PROMPT_GENERATED"
    PROMPT_ENHANCED = "PROMPT_ENHANCED"
    IMAGE_GENERATED = "IMAGE_GENERATED"
    IMAGE_ASSESSED = "IMAGE_ASSESSED"
    QUALITY_CHECK_COMPLETE = "QUALITY_CHECK_COMPLETE"
    SYNC_STARTED = "SYNC_STARTED"
    SYNC_COMPLETE = "SYNC_COMPLETE"
    SYNC_FAILED = "SYNC_FAILED"
    RULE_CONFLICT = "RULE_CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_ENDED = "SESSION_ENDED"
    FEEDBACK_RECEIVED = "FEEDBACK_RECEIVED"
    LEARNING_UPDATED = "LEARNING_UPDATED"
    TELEMETRY_LOGGED = "TELEMETRY_LOGGED"
    ERROR_OCCURRED = "ERROR_OCCURRED"

    @classmethod
    def coerce(cls, value: Union['EventType', str]) -> 'EventType':
        """Accept either an EventType or its string name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown event type: {value!r}")


@dataclass(frozen=True)
class Event:
    """Immutable record of something that happened in the pipeline."""
    type: EventType
    data: Mapping[str, Any]
    timestamp: int = field(default_factory=now_ms)
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        object.__setattr__(self, 'type', EventType.coerce(self.type))
        if not isinstance(self.data, Mapping):
            raise ValueError(f"Event data must be a mapping, got {type(self.data)}")
        object.__setattr__(self, 'data', MappingProxyType(dict(self.data)))
        if self.metadata is not None:
            object.__setattr__(self, 'metadata', MappingProxyType(dict(self.metadata)))


class ListenerHandle:
    """Callback wrapper that awaits coroutine listeners and calls plain ones."""

    def __init__(self, func: EventCallback):
        self.func = func

    async def __call__(self, event: Event) -> Any:
        result = self.func(event)
        if inspect.isawaitable(result):
            return await result
        return result


@dataclass
class ConnectorResult:
    """Uniform result envelope returned by every connector and adapter call."""
    success: bool
    data: Any = None
    error: Optional[BaseException] = None
    duration: float = 0.0
    timestamp: int = field(default_factory=now_ms)

    @classmethod
    def ok(cls, data: Any = None, started: Optional[float] = None) -> 'ConnectorResult':
        return cls(success=True, data=data, duration=elapsed_ms(started) if started is not None else 0.0)

    @classmethod
    def fail(cls, error: Union[BaseException, str], started: Optional[float] = None,
             data: Any = None) -> 'ConnectorResult':
        if isinstance(error, str):
            error = PixoLinkError(error)
        return cls(success=False, data=data, error=error,
                   duration=elapsed_ms(started) if started is not None else 0.0)

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class ModuleStatus(str, Enum):
    """Lifecycle state of a registered module."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class Feedback(str, Enum):
    """User feedback on a generated result."""
    LIKED = "liked"
    DISLIKED = "disliked"
    NEUTRAL = "neutral"

    @classmethod
    def normalize(cls, value: Optional[Union['Feedback', str]]) -> Optional['Feedback']:
        """Map loose feedback spellings ('like', 'dislike') onto the enum."""
        if value is None or isinstance(value, cls):
            return value
        lowered = str(value).lower()
        aliases = {'like': cls.LIKED, 'dislike': cls.DISLIKED}
        if lowered in aliases:
            return aliases[lowered]
        return cls(lowered)


@dataclass
class ModuleMetadata:
    """Descriptive metadata for a registry entry."""
    name: str
    version: str
    status: ModuleStatus = ModuleStatus.ACTIVE
    last_active: int = field(default_factory=now_ms)


@dataclass
class SessionMetrics:
    """Counters accumulated over an orchestrator session."""
    prompts_generated: int = 0
    images_generated: int = 0
    quality_checks: int = 0
    sync_operations: int = 0


@dataclass
class OrchestratorSession:
    """A user's working session on the orchestrator."""
    session_id: str
    user_id: str
    start_time: int = field(default_factory=now_ms)
    end_time: Optional[int] = None
    events: List[Event] = field(default_factory=list)
    metrics: SessionMetrics = field(default_factory=SessionMetrics)

    @property
    def duration(self) -> Optional[int]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


@dataclass
class GenerationOptions:
    """Inputs for a single image generation request."""
    prompt: str
    user_id: str
    session_id: Optional[str] = None
    enhanced_prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    steps: Optional[int] = None
    guidance_scale: Optional[float] = None
    seed: Optional[int] = None
    style: Optional[str] = None
    source: str = "lumina"


@dataclass
class GenerationResult:
    """Outcome of an image generation request."""
    image_url: str
    prompt: str
    generation_id: str
    timestamp: int = field(default_factory=now_ms)
    enhanced_prompt: Optional[str] = None
    image_data: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Event payload form using the published key names."""
        return {
            'imageUrl': self.image_url,
            'imageData': self.image_data,
            'prompt': self.prompt,
            'enhancedPrompt': self.enhanced_prompt,
            'generationId': self.generation_id,
            'timestamp': self.timestamp,
            'metadata': dict(self.metadata),
        }


@dataclass
class PipelineStepResults:
    """Per-step results of one pipeline run; untouched steps keep their default."""
    intelligence: ConnectorResult = field(default_factory=lambda: ConnectorResult(success=False))
    enhance: ConnectorResult = field(default_factory=lambda: ConnectorResult(success=False))
    validate: ConnectorResult = field(default_factory=lambda: ConnectorResult(success=False))
    generate: ConnectorResult = field(default_factory=lambda: ConnectorResult(success=False))
    assess: ConnectorResult = field(default_factory=lambda: ConnectorResult(success=False))
    save: ConnectorResult = field(default_factory=lambda: ConnectorResult(success=False))
    sync: ConnectorResult = field(default_factory=lambda: ConnectorResult(success=False))

    def as_dict(self) -> Dict[str, ConnectorResult]:
        return {
            'intelligence': self.intelligence,
            'enhance': self.enhance,
            'validate': self.validate,
            'generate': self.generate,
            'assess': self.assess,
            'save': self.save,
            'sync': self.sync,
        }


@dataclass
class GenerationPipeline:
    """Mutable state accumulated across one pipeline run."""
    user_id: str
    session_id: str
    original_prompt: str
    enhanced_prompt: Optional[str] = None
    generation_result: Optional[GenerationResult] = None
    quality_assessment: Optional[Any] = None
    feedback: Optional[Feedback] = None
    saved: bool = False
    synced: bool = False
    errors: List[BaseException] = field(default_factory=list)
    weav_ai: Optional[Any] = None


@dataclass
class PipelineResult:
    """Final outcome of a pipeline run."""
    success: bool
    pipeline: GenerationPipeline
    duration: float
    steps: PipelineStepResults
