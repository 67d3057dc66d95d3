"""
Behavioural scenario simulator.

Runs named input scenarios through an executor and compares the outputs
with the expected values, flagging mismatches and slow executions.
"""

# Standard library imports
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

# Local imports
from pixolink.core.codex import elapsed_ms
from pixolink.core.exceptions import ScenarioNotFoundError
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

SLOW_EXECUTION_MS = 5000

Executor = Callable[[Dict[str, Any]], Union[Dict[str, Any], Awaitable[Dict[str, Any]]]]


@dataclass
class SimulationScenario:
    id: str
    name: str
    inputs: Dict[str, Any] = field(default_factory=dict)
    expected_outputs: Optional[Dict[str, Any]] = None
    category: str = 'uncategorized'
    description: Optional[str] = None


@dataclass
class SimulationResult:
    scenario_id: str
    passed: bool
    outputs: Dict[str, Any]
    duration: float
    insights: List[str] = field(default_factory=list)


async def echo_executor(inputs: Dict[str, Any]) -> Dict[str, Any]:
    """Default executor: returns the inputs unchanged."""
    return dict(inputs)


class LogicSimulator:
    """Keyed collection of scenarios with sequential execution."""

    def __init__(self):
        self._scenarios: Dict[str, SimulationScenario] = {}

    def add_scenario(self, scenario: SimulationScenario) -> None:
        self._scenarios[scenario.id] = scenario

    def get_scenario(self, scenario_id: str) -> Optional[SimulationScenario]:
        return self._scenarios.get(scenario_id)

    def get_scenarios(self) -> List[SimulationScenario]:
        return list(self._scenarios.values())

    def remove_scenario(self, scenario_id: str) -> bool:
        return self._scenarios.pop(scenario_id, None) is not None

    def clear_scenarios(self) -> None:
        self._scenarios.clear()

    async def run_scenario(self, scenario_id: str, executor: Executor = echo_executor) -> SimulationResult:
        """
        Execute one scenario and compare its outputs.

        Raises:
            ScenarioNotFoundError: If the scenario id is unknown
        """
        scenario = self._scenarios.get(scenario_id)
        if scenario is None:
            raise ScenarioNotFoundError(f"Scenario {scenario_id} not found")

        started = time.perf_counter()
        outputs = executor(dict(scenario.inputs))
        if inspect.isawaitable(outputs):
            outputs = await outputs
        duration = elapsed_ms(started)

        insights: List[str] = []
        passed = True
        for key, expected in (scenario.expected_outputs or {}).items():
            actual = outputs.get(key)
            if actual != expected:
                passed = False
                insights.append(f"Mismatch: {key} expected {expected}, got {actual}")

        if duration > SLOW_EXECUTION_MS:
            insights.append('Performance: Slow execution detected')

        if not passed:
            logger.debug(f"Scenario {scenario_id} failed: {insights}")
        return SimulationResult(
            scenario_id=scenario_id,
            passed=passed,
            outputs=dict(outputs),
            duration=duration,
            insights=insights
        )

    async def run_all(self, executor: Executor = echo_executor) -> List[SimulationResult]:
        return [await self.run_scenario(scenario_id, executor) for scenario_id in list(self._scenarios)]
