"""Tests for the adaptive tuner."""

import diskcache

from pixolink.predictive import RiskAssessment
from pixolink.tuning import CONFIG_CACHE_KEY, AdaptiveTuner, ModuleConfig, TuningAdjustments


def _assessment(module='lumina', risk='High', probability=0.85):
    return RiskAssessment(module=module, risk_level=risk, probability=probability,
                          impact_score=80, confidence=0.8)


class TestAdapt:

    def test_below_line_is_ignored(self, tuner):
        assert tuner.adapt('lumina', _assessment(risk='High', probability=0.8)) is None
        assert tuner.get_history() == []
        assert tuner.get_config('lumina').mode == 'balanced'

    def test_high_risk_gets_safe_config(self, tuner):
        config = tuner.adapt('lumina', _assessment(risk='High', probability=0.85))

        assert config.mode == 'safe'
        assert config.adjustments.to_dict() == {
            'concurrency_limit': 10, 'timeout': 5000, 'retry_strategy': 'exponential', 'rate_limit': 20
        }
        record = tuner.get_history('lumina')[0]
        assert record.before.mode == 'balanced'
        assert record.after.mode == 'safe'
        assert record.reason == 'Auto-tune triggered: High risk with 85% probability'

    def test_critical_always_adapts(self, tuner):
        config = tuner.adapt('vision', _assessment(risk='Critical', probability=0.2))
        assert config.adjustments.concurrency_limit == 5
        assert config.adjustments.timeout == 10000

    def test_medium_with_high_probability(self, tuner):
        config = tuner.adapt('vision', _assessment(risk='Medium', probability=0.85))
        assert config.mode == 'safe'
        assert config.adjustments.rate_limit == 20

    def test_history_is_independent_of_later_changes(self, tuner):
        tuner.adapt('lumina', _assessment())
        tuner.get_config('lumina').adjustments.timeout = 1
        assert tuner.get_history()[0].after.adjustments.timeout == 5000


class TestResetAndStats:

    def test_reset_restores_defaults(self, tuner):
        tuner.reset('unknown')
        assert tuner.get_history() == []

        tuner.adapt('lumina', _assessment())
        tuner.adapt('vision', _assessment(module='vision', risk='Critical'))
        tuner.reset_all()

        assert tuner.get_config('lumina').mode == 'balanced'
        assert tuner.get_config('vision').adjustments.concurrency_limit == 20
        assert [r.reason for r in tuner.get_history('lumina')][-1] == 'Manual reset to defaults'

    def test_stats(self, tuner):
        assert tuner.get_stats() == {
            'total_adjustments': 0, 'modules_covered': 0, 'recent_adjustments': 0, 'average_frequency': 0
        }
        tuner.adapt('lumina', _assessment())
        tuner.adapt('lumina', _assessment(risk='Critical'))
        tuner.adapt('vision', _assessment(module='vision'))

        stats = tuner.get_stats()
        assert stats['total_adjustments'] == 3
        assert stats['modules_covered'] == 2
        assert stats['recent_adjustments'] == 3
        assert stats['average_frequency'] == 1.5

    def test_apply_auto_tuning(self, tuner):
        actions = tuner.apply_auto_tuning([
            _assessment(module='a', probability=0.95),
            _assessment(module='b', risk='Low', probability=0.1),
        ])
        assert [a.module for a in actions] == ['a']
        assert actions[0].config.mode == 'safe'


class TestPersistence:

    def test_configs_survive_restart(self, tmp_path):
        tuner = AdaptiveTuner(cache_dir=str(tmp_path))
        tuner.adapt('lumina', _assessment(risk='Critical', probability=0.9))
        tuner.close()

        with diskcache.Cache(str(tmp_path)) as cache:
            assert cache.get(CONFIG_CACHE_KEY)['lumina']['mode'] == 'safe'

        restored = AdaptiveTuner(cache_dir=str(tmp_path))
        try:
            config = restored.get_config('lumina')
            assert config.mode == 'safe'
            assert config.adjustments.retry_strategy == 'exponential'
            assert restored.get_history() == []
        finally:
            restored.close()

    def test_module_config_round_trip(self):
        config = ModuleConfig(mode='aggressive', enabled=False,
                              adjustments=TuningAdjustments(concurrency_limit=40, cache_size=512))
        assert ModuleConfig.from_dict(config.to_dict()) == config
