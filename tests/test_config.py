"""Tests for configuration loading and the logger factory."""

import io
import logging

import pytest
import yaml

from pixolink.core.config import Config, ConfigManager, Environment
from pixolink.utils.logger import (
    LogFormatter,
    RunContextFilter,
    console_handler,
    current_log_context,
    get_logger,
    log_context,
    resolve_level,
    set_framework_log_level,
)


class TestConfig:

    def test_defaults(self):
        config = Config()
        assert config.bus.history_size == 1000
        assert config.bus.wait_timeout == 30.0
        assert config.pipeline.quality_threshold == 70
        assert config.pipeline.enhancement_terms == ['highly detailed', 'sharp focus', 'balanced lighting']
        assert config.tuner.cache_dir is None
        assert config.intelligence.provider == 'none'
        assert config.generation.base_url is None

    def test_load_from_env_converts_values(self, monkeypatch):
        monkeypatch.setenv('PIXOLINK_BUS_HISTORY_SIZE', '250')
        monkeypatch.setenv('PIXOLINK_BUS_WAIT_TIMEOUT', '2.5')
        monkeypatch.setenv('PIXOLINK_INTELLIGENCE_API_KEY', 'sk-test')
        monkeypatch.setenv('PIXOLINK_GENERATION_BASE_URL', 'none')
        monkeypatch.setenv('PIXOLINK_DEBUG', 'true')
        monkeypatch.setenv('PIXOLINK_ENVIRONMENT', 'testing')

        config = Config.load_from_env()

        assert config.bus.history_size == 250
        assert config.bus.wait_timeout == 2.5
        assert config.intelligence.api_key == 'sk-test'
        assert config.generation.base_url is None
        assert config.debug is True
        assert config.environment == Environment.TESTING.value

    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / 'nested' / 'pixolink.yaml'
        config = Config(pipeline={'quality_threshold': 60}, tuner={'cache_dir': str(tmp_path)})

        config.save_to_file(path)
        loaded = Config.load_from_file(path)

        assert yaml.safe_load(path.read_text())['pipeline']['quality_threshold'] == 60
        assert loaded.pipeline.quality_threshold == 60
        assert loaded.tuner.cache_dir == str(tmp_path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.load_from_file(tmp_path / 'absent.yaml')


class TestConfigManager:

    def test_creates_file_when_missing(self, tmp_path, monkeypatch):
        monkeypatch.delenv('PIXOLINK_ENVIRONMENT', raising=False)
        path = tmp_path / 'config.yaml'
        manager = ConfigManager()

        manager.initialize(config_file=path)

        assert path.exists()
        assert manager.is_development()
        assert manager.get_bus_config().history_size == 1000

    def test_update_persists_and_reset_reloads(self, tmp_path):
        path = tmp_path / 'config.yaml'
        Config(bus={'history_size': 10}).save_to_file(path)
        manager = ConfigManager()
        manager.initialize(config_file=path)
        assert manager.get_bus_config().history_size == 10

        manager.update_config(debug=True)
        assert yaml.safe_load(path.read_text())['debug'] is True

        manager.reset()
        manager.initialize(config_file=path)
        assert manager.config.debug is True


class TestLogger:

    def test_loggers_are_cached(self):
        assert get_logger('pixolink.tests.sample') is get_logger('pixolink.tests.sample')

    def test_framework_level_applies_to_existing_loggers(self):
        logger = get_logger('pixolink.tests.level')
        set_framework_log_level('warning')
        try:
            assert logger.level == logging.WARNING
        finally:
            set_framework_log_level('info')

    def test_resolve_level(self):
        assert resolve_level('debug') == logging.DEBUG
        assert resolve_level(logging.ERROR) == logging.ERROR
        with pytest.raises(ValueError, match='Unknown log level: loud'):
            resolve_level('loud')


class TestLogContext:

    def test_fields_are_appended_to_formatted_line(self):
        record = logging.LogRecord('pixolink.tests', logging.INFO, __file__, 1, 'started', None, None)
        with log_context(user='u1', session='s1', prompt=None):
            RunContextFilter().filter(record)

        assert LogFormatter('%(message)s', use_color=False).format(record) == 'started [user=u1 session=s1]'

    def test_nested_blocks_extend_and_restore(self):
        assert current_log_context() == {}
        with log_context(user='u1'):
            with log_context(session='s1') as fields:
                assert fields == {'user': 'u1', 'session': 's1'}
            assert current_log_context() == {'user': 'u1'}
        assert current_log_context() == {}

    def test_console_handler_skips_colour_off_terminal(self):
        stream = io.StringIO()
        logger = logging.getLogger('pixolink.tests.console')
        logger.propagate = False
        logger.setLevel(logging.INFO)
        handler = console_handler('%(levelname)s %(message)s', stream=stream)
        logger.addHandler(handler)
        try:
            with log_context(user='u1'):
                logger.info('started')
            logger.info('finished')
        finally:
            logger.removeHandler(handler)

        assert stream.getvalue().splitlines() == ['INFO started [user=u1]', 'INFO finished']
