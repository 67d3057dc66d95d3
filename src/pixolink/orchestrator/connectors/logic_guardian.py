"""
Logic Guardian connector.

Rule-based validation of prompts, configuration dicts and numeric
constraints. Only the generic ``validate`` call publishes its outcome.
"""

# Standard library imports
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

# Local imports
from pixolink.core.codex import ConnectorResult, EventType
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

MIN_PROMPT_LENGTH = 3
MAX_PROMPT_LENGTH = 500
HARMFUL_PATTERNS = ('<script', 'javascript:', 'onerror=')


@dataclass
class ValidationIssue:
    field: str
    message: str
    severity: str = 'error'


@dataclass
class ValidationReport:
    is_valid: bool = True
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, field_name: str, message: str) -> None:
        self.is_valid = False
        self.errors.append(ValidationIssue(field=field_name, message=message))

    def to_payload(self) -> Dict[str, Any]:
        return {
            'isValid': self.is_valid,
            'errors': [{'field': e.field, 'message': e.message, 'severity': e.severity} for e in self.errors],
            'warnings': list(self.warnings),
        }


class LogicGuardianConnector:
    """Validation connector."""

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus

    async def validate(self, data: Any, schema: Any = None) -> ConnectorResult:
        started = time.perf_counter()
        try:
            report = ValidationReport()
            if data is None:
                report.add_error('root', 'Data cannot be null or undefined')

            await self.event_bus.publish(
                EventType.PROMPT_ENHANCED if report.is_valid else EventType.VALIDATION_ERROR,
                {'validation': report.to_payload(), 'data': data}
            )
            return ConnectorResult.ok(report, started)
        except Exception as e:
            logger.error(f"Error validating data: {str(e)}")
            await self.event_bus.publish(EventType.ERROR_OCCURRED, {
                'error': str(e),
                'context': 'logicguardian-validate',
            })
            return ConnectorResult.fail(e, started)

    async def validate_prompt(self, prompt: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            report = ValidationReport()
            if len(prompt) < MIN_PROMPT_LENGTH:
                report.add_error('prompt', f"Prompt is too short (minimum {MIN_PROMPT_LENGTH} characters)")
            if len(prompt) > MAX_PROMPT_LENGTH:
                report.warnings.append('Prompt is very long, consider shortening')

            lowered = prompt.lower()
            for pattern in HARMFUL_PATTERNS:
                if pattern in lowered:
                    report.add_error('prompt', 'Prompt contains potentially harmful content')

            return ConnectorResult.ok(report, started)
        except Exception as e:
            logger.error(f"Error validating prompt: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def validate_config(self, config: Mapping[str, Any]) -> ConnectorResult:
        started = time.perf_counter()
        try:
            report = ValidationReport()
            if not (config.get('userId') or config.get('user_id')):
                report.add_error('userId', 'userId is required')
            return ConnectorResult.ok(report, started)
        except Exception as e:
            logger.error(f"Error validating config: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def check_constraints(self, constraints: Mapping[str, Mapping[str, Any]],
                                values: Mapping[str, Any]) -> ConnectorResult:
        """
        Check required/min/max constraints.

        Args:
            constraints: Per-key dicts with optional ``required``, ``min`` and ``max``
            values: Values to check; min/max apply to numeric values only
        """
        started = time.perf_counter()
        try:
            report = ValidationReport()
            for key, constraint in constraints.items():
                value = values.get(key)
                if constraint.get('required') and value is None:
                    report.add_error(key, f"{key} is required")
                    continue

                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    minimum = constraint.get('min')
                    maximum = constraint.get('max')
                    if minimum is not None and value < minimum:
                        report.add_error(key, f"{key} must be at least {minimum}")
                    if maximum is not None and value > maximum:
                        report.add_error(key, f"{key} must be at most {maximum}")

            return ConnectorResult.ok(report, started)
        except Exception as e:
            logger.error(f"Error checking constraints: {str(e)}")
            return ConnectorResult.fail(e, started)
