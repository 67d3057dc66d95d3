"""Shared fixtures for the PixoLink test suite."""

from typing import List

import pytest

from pixolink.core.codex import GenerationOptions, GenerationResult
from pixolink.libs.data_store import InMemoryDataStore
from pixolink.libs.vision import QualityMetrics, QualityReport, VisionAnalyzer
from pixolink.orchestrator.event_bus import EventBus
from pixolink.orchestrator.orchestrator import Orchestrator, OrchestratorConfig
from pixolink.orchestrator.registry import ModuleRegistry
from pixolink.tuning import AdaptiveTuner


class FakeImageBackend:
    """Image backend returning a fixed result and recording every request."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[GenerationOptions] = []

    async def generate(self, options: GenerationOptions) -> GenerationResult:
        self.calls.append(options)
        if self.fail:
            raise RuntimeError("backend unavailable")
        return GenerationResult(
            image_url="test.png",
            prompt=options.prompt,
            generation_id="gen_1",
            enhanced_prompt=options.enhanced_prompt,
        )

    async def health_check(self) -> bool:
        return not self.fail


class FakeVisionAnalyzer(VisionAnalyzer):
    """Analyzer returning a fixed score, or raising when ``fail`` is set."""

    def __init__(self, score: int = 85, fail: bool = False):
        super().__init__()
        self.score = score
        self.fail = fail
        self.analyzed: List[str] = []

    async def analyze_image(self, image_url: str) -> QualityReport:
        self.analyzed.append(image_url)
        if self.fail:
            raise RuntimeError("analysis failed")
        return QualityReport(
            url=image_url,
            metrics=QualityMetrics(sharpness=80, brightness=70, contrast=75,
                                   colorfulness=65, composition=80, overall=self.score),
            score=self.score,
            issues=[] if self.score >= 70 else ['Low sharpness'],
            suggestions=[] if self.score >= 70 else ['Increase steps for finer detail'],
        )


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(max_history=1000, wait_timeout=5.0)


@pytest.fixture
def registry() -> ModuleRegistry:
    return ModuleRegistry()


@pytest.fixture
def image_backend() -> FakeImageBackend:
    return FakeImageBackend()


@pytest.fixture
def vision_analyzer() -> FakeVisionAnalyzer:
    return FakeVisionAnalyzer(score=85)


@pytest.fixture
def data_store() -> InMemoryDataStore:
    return InMemoryDataStore()


@pytest.fixture
def tuner() -> AdaptiveTuner:
    return AdaptiveTuner()


def build_orchestrator(event_bus, image_backend, vision_analyzer, tuner, **config) -> Orchestrator:
    settings = {'user_id': 'user-1', 'enable_telemetry': False, 'enable_auto_sync': False}
    settings.update(config)
    return Orchestrator(
        OrchestratorConfig(**settings),
        event_bus=event_bus,
        image_backend=image_backend,
        vision_analyzer=vision_analyzer,
        tuner=tuner,
    )


@pytest.fixture
async def orchestrator(event_bus, image_backend, vision_analyzer, tuner):
    orchestrator = build_orchestrator(event_bus, image_backend, vision_analyzer, tuner)
    yield orchestrator
    await orchestrator.shutdown()
