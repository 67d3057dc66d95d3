"""
Exception hierarchy for PixoLink.

Connectors and adapters convert these into failed ``ConnectorResult``
envelopes; the pipeline raises ``PromptValidationError`` to abort a run.
"""


class PixoLinkError(Exception):
    """Base class for all PixoLink errors."""


class ConfigurationError(PixoLinkError):
    """Raised when a component is constructed with an unusable configuration."""


class EventTimeoutError(PixoLinkError, TimeoutError):
    """Raised by ``EventBus.wait_for`` when no matching event arrives in time."""


class DataStoreError(PixoLinkError):
    """Raised when a data store operation fails."""


class ClientNotInitializedError(DataStoreError):
    """Raised when a data store operation is attempted without a client."""

    def __init__(self, message: str = "Data store client not initialized"):
        super().__init__(message)


class SyncError(PixoLinkError):
    """Raised when a synchronization run cannot proceed."""


class PromptValidationError(PixoLinkError):
    """Raised when a prompt fails validation and the pipeline must stop."""


class PromptNotFoundError(PixoLinkError, KeyError):
    """Raised when a stored prompt id does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Prompt not found"


class ScenarioNotFoundError(PixoLinkError, KeyError):
    """Raised when a simulation scenario id does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Scenario not found"


class SessionError(PixoLinkError):
    """Raised when a session operation needs an active session."""


class GenerationError(PixoLinkError):
    """Raised by image backends when generation fails."""


class AssessmentError(PixoLinkError):
    """Raised by vision analyzers when an image cannot be assessed."""
