"""Tests for the Lumina, data store, PixoGuard and Logic Guardian connectors."""

import json

import httpx
import pytest

from pixolink.core.codex import EventType, GenerationOptions
from pixolink.core.config import GenerationConfig
from pixolink.core.exceptions import ClientNotInitializedError, GenerationError
from pixolink.orchestrator.connectors import (
    DataStoreConnector,
    HttpImageBackend,
    LogicGuardianConnector,
    LuminaConnector,
    MockImageBackend,
    PixoGuardConnector,
    build_image_backend,
)

from conftest import FakeImageBackend


def _types(bus):
    return [event.type for event in bus.get_history()]


# =============================================================================
# Tests: Lumina
# =============================================================================


class TestLuminaConnector:

    async def test_generate_publishes_prompt_then_image(self, event_bus, image_backend):
        connector = LuminaConnector(event_bus, image_backend)
        options = GenerationOptions(prompt='a red fox', user_id='u1', session_id='s1')

        result = await connector.generate(options)

        assert result.success
        assert result.data.image_url == 'test.png'
        assert _types(event_bus) == [EventType.PROMPT_GENERATED, EventType.IMAGE_GENERATED]
        image_event = event_bus.get_history(EventType.IMAGE_GENERATED)[0]
        assert image_event.data['result']['generationId'] == 'gen_1'
        assert image_event.data['source'] == 'lumina'
        assert image_event.session_id == 's1'

    async def test_backend_failure_becomes_failed_result(self, event_bus):
        connector = LuminaConnector(event_bus, FakeImageBackend(fail=True))
        result = await connector.generate(GenerationOptions(prompt='a red fox', user_id='u1'))

        assert not result.success
        assert result.error_message == 'backend unavailable'
        error = event_bus.get_history(EventType.ERROR_OCCURRED)[0]
        assert error.data['context'] == 'lumina-connector-generate'

    async def test_mock_backend_result_shape(self):
        result = await MockImageBackend().generate(
            GenerationOptions(prompt='p', user_id='u', style='anime', steps=30)
        )
        assert result.image_url.startswith('https://placeholder.com/generated/')
        assert result.generation_id.startswith('gen_')
        assert result.metadata == {'style': 'anime', 'quality': 30}

    async def test_status_and_health(self, event_bus, image_backend):
        connector = LuminaConnector(event_bus, image_backend)
        assert await connector.health_check() is True
        assert await connector.get_status('gen_1') == {'status': 'completed', 'progress': 100}

    def test_backend_selection(self):
        assert isinstance(build_image_backend(GenerationConfig()), MockImageBackend)
        assert isinstance(build_image_backend(GenerationConfig(base_url='http://gen.local')), HttpImageBackend)


class TestHttpImageBackend:

    @staticmethod
    def _backend(handler):
        config = GenerationConfig(base_url='http://gen.local', api_key='secret')
        client = httpx.AsyncClient(base_url=config.base_url, transport=httpx.MockTransport(handler))
        return HttpImageBackend(config, client)

    async def test_posts_options_as_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['path'] = request.url.path
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={'imageUrl': 'http://img/1.png', 'generationId': 'g-1'})

        backend = self._backend(handler)
        result = await backend.generate(GenerationOptions(prompt='a cat', user_id='u1', width=512))
        await backend.close()

        assert seen['path'] == '/generate'
        assert seen['body'] == {'prompt': 'a cat', 'width': 512, 'userId': 'u1'}
        assert result.image_url == 'http://img/1.png'
        assert result.generation_id == 'g-1'

    async def test_http_error_raises_generation_error(self):
        backend = self._backend(lambda request: httpx.Response(503))
        with pytest.raises(GenerationError):
            await backend.generate(GenerationOptions(prompt='a cat', user_id='u1'))
        await backend.close()

    async def test_incomplete_response_raises(self):
        backend = self._backend(lambda request: httpx.Response(200, json={'imageUrl': 'x'}))
        with pytest.raises(GenerationError):
            await backend.generate(GenerationOptions(prompt='a cat', user_id='u1'))
        await backend.close()


# =============================================================================
# Tests: data store
# =============================================================================


class TestDataStoreConnector:

    async def test_without_client_every_call_fails(self, event_bus):
        connector = DataStoreConnector(event_bus)

        for result in (
            await connector.save('generations', {'a': 1}),
            await connector.query('generations'),
            await connector.update('generations', 1, {}),
            await connector.delete('generations', 1),
            await connector.upload_file('images', 'a.png', b'x'),
        ):
            assert not result.success
            assert isinstance(result.error, ClientNotInitializedError)
        assert await connector.health_check() is False
        assert event_bus.get_history() == []

    async def test_save_query_update_delete(self, event_bus, data_store):
        connector = DataStoreConnector(event_bus, data_store)

        saved = await connector.save('generations', {'id': 'g1', 'prompt': 'a cat'})
        assert saved.success
        complete = event_bus.get_history(EventType.SYNC_COMPLETE)[-1]
        assert complete.data == {'table': 'generations', 'operation': 'save', 'success': True}

        updated = await connector.update('generations', 'g1', {'prompt': 'a dog'})
        assert updated.data[0]['prompt'] == 'a dog'
        assert event_bus.get_history(EventType.SYNC_COMPLETE)[-1].data['operation'] == 'update'

        queried = await connector.query('generations', {'prompt': 'a dog'})
        assert [row['id'] for row in queried.data] == ['g1']

        assert (await connector.delete('generations', 'g1')).success
        assert (await connector.query('generations')).data == []
        assert await connector.health_check() is True

    async def test_duplicate_insert_publishes_sync_failed(self, event_bus, data_store):
        connector = DataStoreConnector(event_bus, data_store)
        await connector.save('generations', {'id': 'g1'})

        result = await connector.save('generations', {'id': 'g1'})

        assert not result.success
        failed = event_bus.get_history(EventType.SYNC_FAILED)[0]
        assert failed.data['table'] == 'generations'
        assert failed.data['operation'] == 'save'

    async def test_upload_file(self, event_bus, data_store):
        connector = DataStoreConnector(event_bus, data_store)
        result = await connector.upload_file('images', 'u1/a.png', b'png-bytes')

        assert result.data == {'path': 'u1/a.png', 'url': 'memory://storage/images/u1/a.png'}
        assert data_store.get_blob('images', 'u1/a.png') == b'png-bytes'


# =============================================================================
# Tests: PixoGuard
# =============================================================================


class TestPixoGuardConnector:

    async def test_reports_are_filtered_and_counted(self, event_bus):
        guard = PixoGuardConnector(event_bus)
        await guard.report_quality('blurry', 'medium', {'score': 40})
        await guard.report_anomaly('sync failed', 'high')
        await guard.report_security('token leaked', 'critical')

        assert [r.message for r in guard.get_reports(type='quality')] == ['blurry']
        assert [r.message for r in guard.get_reports(severity='critical')] == ['token leaked']
        assert len(guard.get_reports(limit=2)) == 2

        stats = guard.get_stats()
        assert stats['total'] == 3
        assert stats['by_type'] == {'quality': 1, 'anomaly': 1, 'security': 1}
        assert stats['recent_count'] == 3

        logged = event_bus.get_history(EventType.TELEMETRY_LOGGED)
        assert len(logged) == 3
        assert logged[0].data['source'] == 'pixoguard'
        assert logged[0].data['report']['message'] == 'blurry'

    async def test_bounded_and_exportable(self, event_bus):
        guard = PixoGuardConnector(event_bus, max_reports=2)
        for index in range(3):
            await guard.report_performance(f"slow {index}", 'low')

        assert [r.message for r in guard.get_reports()] == ['slow 1', 'slow 2']
        exported = json.loads(guard.export_reports())
        assert [r['message'] for r in exported] == ['slow 1', 'slow 2']

        guard.clear_reports()
        assert guard.get_stats()['total'] == 0

    @pytest.mark.parametrize('report_type, severity, message', [
        ('outage', 'high', 'Unknown report type: outage'),
        ('quality', 'urgent', 'Unknown report severity: urgent'),
    ])
    async def test_unknown_type_or_severity_is_rejected(self, event_bus, report_type, severity, message):
        guard = PixoGuardConnector(event_bus)
        result = await guard.report(report_type, severity, 'something happened')

        assert not result.success
        assert result.error_message == message
        assert guard.get_reports() == []
        assert event_bus.get_history(EventType.TELEMETRY_LOGGED) == []


# =============================================================================
# Tests: Logic Guardian
# =============================================================================


class TestLogicGuardianConnector:

    async def test_short_prompt_is_invalid(self, event_bus):
        guardian = LogicGuardianConnector(event_bus)
        report = (await guardian.validate_prompt('hi')).data
        assert not report.is_valid
        assert report.errors[0].field == 'prompt'

    async def test_script_injection_is_invalid(self, event_bus):
        guardian = LogicGuardianConnector(event_bus)
        report = (await guardian.validate_prompt('<script>alert(1)</script> a castle')).data
        assert not report.is_valid
        assert report.errors[0].message == 'Prompt contains potentially harmful content'

    async def test_long_prompt_only_warns(self, event_bus):
        guardian = LogicGuardianConnector(event_bus)
        report = (await guardian.validate_prompt('a' * 501)).data
        assert report.is_valid
        assert report.warnings == ['Prompt is very long, consider shortening']

    async def test_validate_publishes_outcome(self, event_bus):
        guardian = LogicGuardianConnector(event_bus)

        assert (await guardian.validate({'a': 1})).data.is_valid
        assert not (await guardian.validate(None)).data.is_valid

        assert _types(event_bus) == [EventType.PROMPT_ENHANCED, EventType.VALIDATION_ERROR]
        payload = event_bus.get_history(EventType.VALIDATION_ERROR)[0].data
        assert payload['validation']['isValid'] is False

    async def test_validate_config(self, event_bus):
        guardian = LogicGuardianConnector(event_bus)
        assert (await guardian.validate_config({'userId': 'u1'})).data.is_valid
        assert (await guardian.validate_config({'user_id': 'u1'})).data.is_valid
        assert not (await guardian.validate_config({})).data.is_valid

    async def test_check_constraints(self, event_bus):
        guardian = LogicGuardianConnector(event_bus)
        report = (await guardian.check_constraints(
            {'steps': {'min': 1, 'max': 150}, 'seed': {'required': True}, 'width': {'min': 64}},
            {'steps': 200, 'width': 512}
        )).data

        assert not report.is_valid
        assert {e.field for e in report.errors} == {'steps', 'seed'}
