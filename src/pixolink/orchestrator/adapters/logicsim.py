"""
LogicSim adapter.

Runs behavioural scenarios and reports failing ones as ``RULE_CONFLICT``.
"""

# Standard library imports
import time
from collections import Counter
from typing import Any, Dict, List, Optional

# Local imports
from pixolink.core.codex import ConnectorResult, EventType
from pixolink.libs.logic_simulator import (
    Executor, LogicSimulator, SimulationScenario, echo_executor
)
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)


class LogicSimAdapter:
    """Scenario simulation adapter."""

    def __init__(self, event_bus: EventBus, simulator: Optional[LogicSimulator] = None,
                 executor: Executor = echo_executor):
        self.event_bus = event_bus
        self.simulator = simulator or LogicSimulator()
        self.executor = executor

    def set_executor(self, executor: Executor) -> None:
        self.executor = executor

    def add_scenario(self, scenario: SimulationScenario) -> None:
        self.simulator.add_scenario(scenario)

    async def run_scenario(self, scenario_id: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            result = await self.simulator.run_scenario(scenario_id, self.executor)
            if not result.passed:
                await self.event_bus.publish(EventType.RULE_CONFLICT, {
                    'scenarioId': scenario_id,
                    'insights': list(result.insights),
                    'outputs': result.outputs,
                })
            return ConnectorResult.ok(result, started)
        except Exception as e:
            logger.error(f"Error running scenario {scenario_id}: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def run_all(self) -> ConnectorResult:
        started = time.perf_counter()
        try:
            results = await self.simulator.run_all(self.executor)
            failed = [r for r in results if not r.passed]
            if failed:
                await self.event_bus.publish(EventType.RULE_CONFLICT, {
                    'total': len(results),
                    'failed': len(failed),
                    'failedScenarios': [r.scenario_id for r in failed],
                })
            return ConnectorResult.ok(results, started)
        except Exception as e:
            logger.error(f"Error running scenarios: {str(e)}")
            return ConnectorResult.fail(e, started)

    def get_scenarios(self) -> List[SimulationScenario]:
        return self.simulator.get_scenarios()

    def get_scenario(self, scenario_id: str) -> Optional[SimulationScenario]:
        return self.simulator.get_scenario(scenario_id)

    def remove_scenario(self, scenario_id: str) -> bool:
        return self.simulator.remove_scenario(scenario_id)

    def clear_scenarios(self) -> None:
        self.simulator.clear_scenarios()

    def get_stats(self) -> Dict[str, Any]:
        scenarios = self.simulator.get_scenarios()
        return {
            'total': len(scenarios),
            'categories': dict(Counter(s.category or 'uncategorized' for s in scenarios)),
        }
