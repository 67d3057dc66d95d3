"""End-to-end tests for the orchestrator and its generation pipeline."""

import json

import pytest

from pixolink import create_orchestrator
from pixolink.core.codex import NO_SESSION_ID, EventType, GenerationOptions
from pixolink.core.exceptions import ConfigurationError, PromptValidationError
from pixolink.orchestrator.orchestrator import Orchestrator, OrchestratorConfig
from pixolink.predictive import HealthLog
from pixolink.utils.logger import current_log_context

from conftest import FakeImageBackend, FakeVisionAnalyzer, build_orchestrator


class FakeInsightProvider:
    name = 'fake'

    async def complete(self, prompt, system_prompt=None, temperature=0.2, max_tokens=700):
        return json.dumps({'optimizedPrompt': 'an optimized castle', 'tags': ['castle']})


def _types(bus):
    return [event.type for event in bus.get_history()]


# =============================================================================
# Tests: pipeline happy path
# =============================================================================


class TestPipeline:

    async def test_full_run_with_good_image(self, orchestrator, event_bus, image_backend, vision_analyzer):
        result = await orchestrator.run_pipeline('a stone castle on a hill', {'width': 768, 'steps': 30})

        assert result.success
        steps = result.steps
        assert steps.enhance.success
        assert steps.validate.success
        assert steps.generate.success
        assert steps.assess.success
        assert steps.save.success
        assert not steps.sync.success and steps.sync.error is None

        pipeline = result.pipeline
        assert pipeline.enhanced_prompt == 'a stone castle on a hill, highly detailed, sharp focus, balanced lighting'
        assert pipeline.generation_result.image_url == 'test.png'
        assert pipeline.quality_assessment.score == 85
        assert pipeline.saved
        assert pipeline.session_id == NO_SESSION_ID

        request = image_backend.calls[0]
        assert request.enhanced_prompt == pipeline.enhanced_prompt
        assert request.width == 768
        assert request.source == 'pipeline'

        # The pipeline's own IMAGE_GENERATED must not trigger a second assessment
        assert vision_analyzer.analyzed == ['test.png']
        assert EventType.QUALITY_CHECK_COMPLETE not in _types(event_bus)

        saved = orchestrator.adapters.lcm.store.get_history('user-1')
        assert any(e.metadata.get('qualityScore') == 85 for e in saved)

    async def test_low_quality_is_reported_to_pixoguard(self, event_bus, image_backend, tuner):
        orchestrator = build_orchestrator(event_bus, image_backend, FakeVisionAnalyzer(score=50), tuner)
        try:
            result = await orchestrator.run_pipeline('a foggy harbor at dawn')
        finally:
            await orchestrator.shutdown()

        assert result.success
        assert EventType.QUALITY_CHECK_COMPLETE in _types(event_bus)
        messages = [r.message for r in orchestrator.connectors.pixoguard.get_reports(type='quality')]
        assert 'Low quality image detected (score: 50)' in messages

    async def test_insight_step_records_weavai_result(self, event_bus, image_backend, vision_analyzer, tuner):
        orchestrator = Orchestrator(
            OrchestratorConfig(user_id='user-1', enable_telemetry=False, enable_auto_sync=False),
            event_bus=event_bus,
            image_backend=image_backend,
            vision_analyzer=vision_analyzer,
            insight_provider=FakeInsightProvider(),
            tuner=tuner,
        )
        try:
            result = await orchestrator.run_pipeline('a castle')
        finally:
            await orchestrator.shutdown()

        assert result.steps.intelligence.success
        assert result.pipeline.weav_ai.insight.optimized_prompt == 'an optimized castle'
        generated = [e.data.get('source') for e in event_bus.get_history(EventType.PROMPT_GENERATED)]
        assert 'weavai' in generated

    async def test_listeners_log_with_run_fields(self, orchestrator, event_bus):
        seen = []
        event_bus.subscribe(EventType.IMAGE_GENERATED, lambda e: seen.append(current_log_context()))

        await orchestrator.run_pipeline('a lighthouse in a storm')

        assert seen == [{'user': 'user-1'}]
        assert current_log_context() == {}

    async def test_default_analyzer_assesses_generated_image(self, event_bus, image_backend, tuner):
        orchestrator = Orchestrator(
            OrchestratorConfig(user_id='user-1', enable_telemetry=False, enable_auto_sync=False),
            event_bus=event_bus,
            image_backend=image_backend,
            tuner=tuner,
        )
        try:
            result = await orchestrator.run_pipeline('A beautiful sunset over mountains')
        finally:
            await orchestrator.shutdown()

        assert result.steps.assess.success, result.steps.assess.error
        assert 0 <= result.pipeline.quality_assessment.score <= 100


# =============================================================================
# Tests: pipeline failures
# =============================================================================


class TestPipelineFailures:

    async def test_script_injection_stops_before_generation(self, orchestrator, event_bus, image_backend):
        result = await orchestrator.run_pipeline('<script>alert(1)</script> a castle')

        assert not result.success
        assert image_backend.calls == []
        assert result.steps.validate.success
        assert not result.steps.validate.data.is_valid
        assert not result.steps.generate.success
        assert result.steps.generate.error is None
        assert isinstance(result.pipeline.errors[-1], PromptValidationError)

        reported = event_bus.get_history(EventType.ERROR_OCCURRED)[-1]
        assert reported.data['source'] == 'error_reporter'
        assert reported.data['severity'] == 'high'

    async def test_empty_prompt_fails(self, orchestrator, image_backend):
        result = await orchestrator.run_pipeline('')

        assert not result.success
        assert not result.steps.enhance.success
        assert result.pipeline.enhanced_prompt is None
        assert image_backend.calls == []

    async def test_generation_failure_skips_assess_and_save(self, event_bus, vision_analyzer, tuner):
        orchestrator = build_orchestrator(event_bus, FakeImageBackend(fail=True), vision_analyzer, tuner)
        try:
            result = await orchestrator.run_pipeline('a quiet lake')
        finally:
            await orchestrator.shutdown()

        assert result.success
        assert result.steps.generate.error_message == 'backend unavailable'
        assert result.steps.assess.error is None
        assert not result.steps.save.success
        assert vision_analyzer.analyzed == []

    async def test_assess_failure_still_saves(self, event_bus, image_backend, tuner):
        orchestrator = build_orchestrator(event_bus, image_backend, FakeVisionAnalyzer(fail=True), tuner)
        try:
            result = await orchestrator.run_pipeline('a red bicycle')
        finally:
            await orchestrator.shutdown()

        assert result.success
        assert not result.steps.assess.success
        assert result.steps.save.success
        assert result.pipeline.quality_assessment is None

        history = orchestrator.telemetry.errors.get_history()
        assert any(e.context == {'context': 'visionpulse-assess'} for e in history)

    async def test_sync_step_fails_without_data_store(self, event_bus, image_backend, vision_analyzer, tuner):
        orchestrator = build_orchestrator(event_bus, image_backend, vision_analyzer, tuner,
                                          enable_auto_sync=None)
        try:
            result = await orchestrator.run_pipeline('a paper boat')
        finally:
            await orchestrator.shutdown()

        assert result.success
        assert result.steps.sync.error_message == 'Sync manager not initialized'
        assert not result.pipeline.synced


# =============================================================================
# Tests: sessions and sync
# =============================================================================


class TestSessions:

    async def test_session_metrics_and_events(self, orchestrator, event_bus):
        session = await orchestrator.start_session()
        assert session.session_id.startswith('session_')
        assert orchestrator.get_current_session() is session

        result = await orchestrator.run_pipeline('a lantern in the snow')
        assert result.pipeline.session_id == session.session_id

        completed = await orchestrator.end_session()

        assert completed.metrics.prompts_generated == 1
        assert completed.metrics.images_generated == 1
        assert completed.metrics.quality_checks == 1
        assert completed.metrics.sync_operations == 0
        assert completed.duration is not None and completed.duration >= 0
        assert completed.events
        assert all(e.session_id == session.session_id for e in completed.events)

        ended = event_bus.get_history(EventType.SESSION_ENDED)[-1]
        assert ended.data['sessionId'] == session.session_id
        assert orchestrator.get_current_session() is None
        assert await orchestrator.end_session() is None

    async def test_configured_session_id_is_used(self, event_bus, image_backend, vision_analyzer, tuner):
        orchestrator = build_orchestrator(event_bus, image_backend, vision_analyzer, tuner, session_id='fixed')
        try:
            session = await orchestrator.start_session()
        finally:
            await orchestrator.shutdown()
        assert session.session_id == 'fixed'

    async def test_auto_sync_with_data_store(self, event_bus, image_backend, vision_analyzer, tuner, data_store):
        orchestrator = build_orchestrator(
            event_bus, image_backend, vision_analyzer, tuner,
            enable_auto_sync=True, sync_interval=3600, data_store_client=data_store
        )
        try:
            assert orchestrator.adapters.pixsync.auto_sync_enabled
            assert orchestrator.registry.has('pixsync.manager')
            assert orchestrator.registry.has('lcm.sync')

            await orchestrator.start_session()
            result = await orchestrator.run_pipeline('a windmill at sunset')
            completed = await orchestrator.end_session()
        finally:
            await orchestrator.shutdown()

        assert result.steps.sync.success
        assert result.pipeline.synced
        assert completed.metrics.sync_operations == 1
        assert not orchestrator.adapters.pixsync.auto_sync_enabled


# =============================================================================
# Tests: listener graph
# =============================================================================


class TestListeners:

    async def test_external_generation_is_assessed(self, orchestrator, vision_analyzer):
        await orchestrator.connectors.lumina.generate(GenerationOptions(prompt='a fox', user_id='user-1'))
        assert vision_analyzer.analyzed == ['test.png']

    async def test_rule_conflict_becomes_anomaly_report(self, orchestrator, event_bus):
        await event_bus.publish(EventType.RULE_CONFLICT, {'scenarioId': 's1'})
        reports = orchestrator.connectors.pixoguard.get_reports(type='anomaly')
        assert [r.message for r in reports] == ['Logic rule conflict detected']
        assert reports[0].severity == 'high'

    async def test_sync_failure_becomes_anomaly_report(self, orchestrator, event_bus):
        await event_bus.publish(EventType.SYNC_FAILED, {'userId': 'user-1', 'error': 'offline'})
        reports = orchestrator.connectors.pixoguard.get_reports(type='anomaly')
        assert [r.message for r in reports] == ['Sync operation failed']

    async def test_listener_errors_are_reported_once(self, orchestrator, event_bus):
        def broken(event):
            raise RuntimeError("listener failed")

        event_bus.subscribe(EventType.FEEDBACK_RECEIVED, broken)
        await event_bus.publish(EventType.FEEDBACK_RECEIVED, {'userId': 'user-1', 'promptId': 1,
                                                              'feedback': 'liked'})

        history = orchestrator.telemetry.errors.get_history()
        assert len(history) == 1
        assert history[0].context == {'originalEvent': 'FEEDBACK_RECEIVED'}

    async def test_shutdown_detaches_listeners(self, orchestrator, event_bus):
        assert event_bus.get_listeners(EventType.IMAGE_ASSESSED) == 1
        await orchestrator.shutdown()
        assert event_bus.get_listeners(EventType.IMAGE_ASSESSED) == 0
        assert orchestrator.get_status()['initialized'] is False


# =============================================================================
# Tests: configuration, status and forecast
# =============================================================================


class TestOrchestratorConfig:

    def test_from_mapping_accepts_camel_case(self):
        config = OrchestratorConfig.from_mapping({'userId': 'u1', 'enableAutoSync': True, 'syncInterval': 30})
        assert config.user_id == 'u1'
        assert config.enable_auto_sync is True
        assert config.sync_interval == 30

    def test_unknown_setting_is_rejected(self):
        with pytest.raises(ConfigurationError):
            OrchestratorConfig.from_mapping({'userId': 'u1', 'colour': 'blue'})

    def test_user_id_is_required(self):
        with pytest.raises(ConfigurationError):
            OrchestratorConfig.from_mapping({'sessionId': 's1'})

    async def test_status_snapshot(self, image_backend, vision_analyzer):
        orchestrator = create_orchestrator(
            {'userId': 'u9', 'enableTelemetry': False, 'enableAutoSync': False},
            image_backend=image_backend,
            vision_analyzer=vision_analyzer,
        )
        try:
            status = orchestrator.get_status()
        finally:
            await orchestrator.shutdown()

        assert status['initialized'] is True
        assert status['config']['user_id'] == 'u9'
        assert status['config']['has_data_store'] is False
        assert status['adapters']['pixsync'] == 'active'
        assert status['adapters']['weavai'] == 'active'
        assert status['telemetry'] == {'metrics': False, 'errors': False}
        assert status['event_bus']['listeners']['IMAGE_GENERATED'] == 1


class TestForecast:

    async def test_forecast_tunes_risky_modules(self, orchestrator, tuner):
        logs = [HealthLog(module='lumina', latency=100 + 60 * i, error_rate=0.1) for i in range(10)]
        logs += [HealthLog(module='vision', latency=120) for _ in range(10)]

        summary = await orchestrator.get_forecast(logs, include_ai_advisory=False)

        assert [a.module for a in summary.risk_assessments] == ['lumina', 'vision']
        lumina = summary.risk_assessments[0]
        assert lumina.risk_level == 'Critical'
        assert lumina.probability == 1.0
        assert [a.module for a in summary.auto_tuning_actions] == ['lumina']
        assert tuner.get_config('lumina').mode == 'safe'
        assert summary.advisories[0].suggestion == 'Critical risk detected. Monitor closely.'
