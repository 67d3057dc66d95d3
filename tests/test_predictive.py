"""Tests for the predictive maintenance layer."""

import pytest

from pixolink.predictive import (
    PMAL,
    AdvisoryContext,
    AIAdvisor,
    AnomalyPrediction,
    AnomalyPredictor,
    CorrelationMap,
    ForecastVisualizer,
    HealthLog,
    PatternEngine,
    PredictiveSummary,
    RiskAssessment,
    RiskModel,
    TrendAnalyzer,
    TrendData,
    rule_based_suggestion,
)
from pixolink.predictive.models import escalate_risk
from pixolink.predictive.summary import determine_timeframe, generate_warnings, health_label


def _logs(module, latencies, **fields):
    return [HealthLog(module=module, latency=latency, timestamp=1000 + i, **fields)
            for i, latency in enumerate(latencies)]


def _assessment(module='lumina', risk='High', probability=0.85, window=None):
    return RiskAssessment(module=module, risk_level=risk, probability=probability,
                          impact_score=80, confidence=0.8, predicted_failure_window=window)


class FakeAdvisoryProvider:
    name = 'fake'

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def complete(self, prompt, system_prompt=None, temperature=0.2, max_tokens=700):
        self.prompts.append((prompt, system_prompt, max_tokens))
        if self.error:
            raise self.error
        return self.reply


# =============================================================================
# Tests: trends and anomalies
# =============================================================================


class TestTrendAnalyzer:

    def test_trends_per_module(self):
        logs = _logs('a', [100, 200, 300], error_rate=0.02, memory_usage=0.5)
        logs += _logs('b', [0, 0])
        logs.append(HealthLog(module='a', latency=None, error_rate=0.08))

        trends = TrendAnalyzer.get_trends(logs)

        assert [t.module for t in trends] == ['a']
        trend = trends[0]
        assert trend.avg_latency == 200
        assert trend.avg_error_rate == pytest.approx(0.035)
        assert trend.avg_memory_usage == 0.5
        assert trend.trend == [100.0, 200.0, 300.0]

    def test_trend_keeps_last_ten_latencies(self):
        trends = TrendAnalyzer.get_trends(_logs('a', range(1, 16)))
        assert trends[0].trend == [float(v) for v in range(6, 16)]

    def test_period_limits_the_window(self):
        trends = TrendAnalyzer.get_trends(_logs('a', [10, 20, 30, 40]), period=2)
        assert trends[0].avg_latency == 35

    def test_slope_and_std_dev(self):
        assert TrendAnalyzer.calculate_slope([5]) == 0.0
        assert TrendAnalyzer.calculate_slope([0, 2, 4, 6]) == pytest.approx(2.0)
        assert TrendAnalyzer.calculate_std_dev([]) == 0.0
        assert TrendAnalyzer.calculate_std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
        assert TrendAnalyzer.is_increasing([1, 2, 3])
        assert not TrendAnalyzer.is_increasing([3])

    def test_health_log_from_camel_case(self):
        log = HealthLog.from_mapping({'module': 'm', 'latency': 12, 'errorRate': 0.1, 'memoryUsage': 0.4})
        assert log.error_rate == 0.1
        assert log.memory_usage == 0.4
        assert log.timestamp > 0


class TestAnomalyPredictor:

    @staticmethod
    def _trend(slope, error_rate=0.0, memory=0.0):
        return TrendData(module='m', avg_latency=100, avg_error_rate=error_rate,
                         avg_memory_usage=memory, trend=[slope * i for i in range(10)])

    @pytest.mark.parametrize('slope, risk, confidence', [
        (5, 'Low', 0.5),
        (15, 'Medium', 0.6),
        (25, 'High', 0.75),
        (60, 'Critical', 0.9),
    ])
    def test_slope_tiers(self, slope, risk, confidence):
        prediction = AnomalyPredictor.detect([self._trend(slope)])[0]
        assert prediction.risk == risk
        assert prediction.confidence == pytest.approx(confidence)

    def test_error_rate_escalates_one_tier(self):
        prediction = AnomalyPredictor.detect([self._trend(15, error_rate=0.06)])[0]
        assert prediction.risk == 'High'
        assert prediction.confidence == pytest.approx(0.7)

    def test_error_rate_and_memory_escalate_twice(self):
        prediction = AnomalyPredictor.detect([self._trend(5, error_rate=0.06, memory=0.9)])[0]
        assert prediction.risk == 'High'
        assert prediction.confidence == pytest.approx(0.7)

    def test_escalation_stops_at_critical(self):
        assert escalate_risk('Critical') == 'Critical'
        prediction = AnomalyPredictor.detect([self._trend(60, error_rate=0.5, memory=0.95)])[0]
        assert prediction.risk == 'Critical'
        assert prediction.confidence == 1.0

    def test_anomaly_score(self):
        prediction = AnomalyPrediction(module='m', metric='latency', avg=100, slope=50,
                                       risk='High', confidence=0.8)
        assert AnomalyPredictor.calculate_anomaly_score(prediction) == pytest.approx(70.0)


# =============================================================================
# Tests: correlations and risk
# =============================================================================


class TestCorrelationMap:

    @staticmethod
    def _trends():
        return [
            TrendData(module='a', avg_latency=1, avg_error_rate=0, avg_memory_usage=0, trend=[1, 2, 3]),
            TrendData(module='b', avg_latency=1, avg_error_rate=0, avg_memory_usage=0, trend=[2, 4, 7]),
        ]

    def test_correlation_just_above_threshold_is_reported(self, monkeypatch):
        monkeypatch.setattr(CorrelationMap, 'calculate_correlation', staticmethod(lambda x, y: 0.71))
        patterns = CorrelationMap.find_positive_correlations(self._trends())

        assert len(patterns) == 1
        assert patterns[0].modules == ['a', 'b']
        assert patterns[0].description == 'Strong positive correlation detected between a and b'

    def test_correlation_just_below_threshold_is_ignored(self, monkeypatch):
        monkeypatch.setattr(CorrelationMap, 'calculate_correlation', staticmethod(lambda x, y: 0.69))
        assert CorrelationMap.find_positive_correlations(self._trends()) == []

    def test_pearson_correlation(self):
        assert CorrelationMap.calculate_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert CorrelationMap.calculate_correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
        assert CorrelationMap.calculate_correlation([1, 1, 1], [1, 2, 3]) == 0.0
        assert CorrelationMap.calculate_correlation([1], [1]) == 0.0

    def test_flat_series_have_no_correlation(self):
        assert CorrelationMap.calculate_correlation([99.9] * 5, [333.3] * 5) == 0.0
        assert CorrelationMap.calculate_correlation([99.9] * 10, [1001.1] * 10) == 0.0
        trends = [
            TrendData(module='a', avg_latency=99.9, avg_error_rate=0, avg_memory_usage=0, trend=[99.9] * 5),
            TrendData(module='b', avg_latency=333.3, avg_error_rate=0, avg_memory_usage=0, trend=[333.3] * 5),
        ]
        assert CorrelationMap.find_positive_correlations(trends) == []

    def test_near_constant_series_stay_in_range(self):
        x = [1000.0 + 1e-6 * i for i in range(8)]
        y = [2000.0 + 1e-6 * i for i in range(8)]
        assert -1.0 <= CorrelationMap.calculate_correlation(x, y) <= 1.0

    @pytest.mark.parametrize('second, reported', [
        ([101.9, 100.2, 103.0, 105.8, 104.1], True),   # r ~= 0.743
        ([102.1, 99.8, 103.0, 106.2, 103.9], False),   # r ~= 0.673
    ])
    def test_threshold_with_computed_correlation(self, second, reported):
        first = [10.0, 20.0, 30.0, 40.0, 50.0]
        trends = [
            TrendData(module='a', avg_latency=30, avg_error_rate=0, avg_memory_usage=0, trend=first),
            TrendData(module='b', avg_latency=103, avg_error_rate=0, avg_memory_usage=0, trend=second),
        ]
        patterns = CorrelationMap.find_positive_correlations(trends)

        assert bool(patterns) is reported
        if reported:
            assert patterns[0].strength == pytest.approx(10 / 181 ** 0.5)

    def test_cascading_failure_ranks_critical_first(self):
        predictions = [
            AnomalyPrediction(module='db', metric='latency', avg=300, slope=30, risk='High', confidence=0.75),
            AnomalyPrediction(module='api', metric='latency', avg=200, slope=60, risk='Critical', confidence=0.9),
            AnomalyPrediction(module='ui', metric='latency', avg=900, slope=1, risk='Low', confidence=0.5),
        ]
        patterns = CorrelationMap.map_correlations([], predictions)

        assert len(patterns) == 1
        assert patterns[0].correlation_type == 'cascading'
        assert patterns[0].modules == ['api', 'db']
        assert patterns[0].strength == 0.8
        assert patterns[0].description == 'Cascading failure detected: api may be impacting downstream modules'


class TestRiskModel:

    def test_probability_impact_and_window(self):
        prediction = AnomalyPrediction(module='m', metric='latency', avg=100, slope=30,
                                       risk='High', confidence=0.75)
        assessment = RiskModel.evaluate([prediction])[0]

        assert assessment.probability == pytest.approx(0.45)
        assert assessment.impact_score == pytest.approx(75 + 15 + 7.5)
        assert assessment.predicted_failure_window == 'within 6 hours'

    @pytest.mark.parametrize('slope, window', [
        (60, 'within 1 hour'), (15, 'within 24 hours'), (6, 'within 7 days'), (5, None)
    ])
    def test_failure_windows(self, slope, window):
        assert RiskModel.predict_failure_window(slope) == window

    def test_auto_tune_line(self):
        assert RiskModel.should_auto_tune(_assessment(risk='High', probability=0.81))
        assert not RiskModel.should_auto_tune(_assessment(risk='High', probability=0.8))
        assert not RiskModel.should_auto_tune(_assessment(risk='Medium', probability=0.95))

    def test_overall_health(self):
        assert RiskModel.calculate_overall_health([]) == 100.0
        assessments = [_assessment(probability=1.0), _assessment(probability=0.0)]
        assert RiskModel.calculate_overall_health(assessments) == pytest.approx(60.0)


# =============================================================================
# Tests: recurring patterns
# =============================================================================


class TestPatternEngine:

    def test_spikes(self):
        latencies = [100] * 12 + [1000] * 4
        pattern = PatternEngine.detect_spikes('m', _logs('m', latencies))

        assert pattern.pattern_type == 'spike'
        assert pattern.occurrences == 4
        assert pattern.frequency == pytest.approx(4 / 16)

    def test_three_spikes_are_not_enough(self):
        latencies = [100] * 12 + [1000] * 3
        assert PatternEngine.detect_spikes('m', _logs('m', latencies)) is None

    def test_upward_drift(self):
        pattern = PatternEngine.detect_drift('m', _logs('m', [100] * 10 + [150] * 10))
        assert pattern.description == 'Upward drift of 50.0% detected'

    def test_drift_needs_twenty_samples(self):
        assert PatternEngine.detect_drift('m', _logs('m', [100] * 9 + [150] * 10)) is None

    def test_oscillation(self):
        pattern = PatternEngine.detect_oscillations('m', _logs('m', [100, 200] * 6))
        assert pattern.occurrences == 10
        assert pattern.frequency == pytest.approx(10 / 12)

    def test_detect_patterns_groups_modules(self):
        logs = _logs('a', [100, 200] * 10) + _logs('b', [100] * 20)
        patterns = PatternEngine.detect_patterns(logs)
        assert {(p.module, p.pattern_type) for p in patterns} == {('a', 'oscillation')}
        assert PatternEngine.predict_continuation(patterns[0])


# =============================================================================
# Tests: advisor and summary
# =============================================================================


class TestAIAdvisor:

    def test_rule_text_includes_window_and_context(self):
        context = AdvisoryContext(recent_patterns=['Upward drift of 30.0% detected'], correlated_modules=['db'])
        text = rule_based_suggestion(_assessment(risk='Medium', probability=0.4, window='within 24 hours'),
                                     context)

        assert text.startswith('lumina: Medium risk detected (40% probability).')
        assert 'Predicted failure within 24 hours.' in text
        assert 'Note: Correlated with db. Check for cascading issues.' in text
        assert text.endswith('Patterns: Upward drift of 30.0% detected.')

    async def test_rule_based_without_provider(self):
        advisory = await AIAdvisor().suggest(_assessment(risk='High', probability=0.85))

        assert advisory.action_type == 'restart'
        assert advisory.auto_applicable
        assert advisory.suggestion.startswith('lumina: High risk detected (85% probability).')

    async def test_critical_is_never_auto_applicable(self):
        advisory = await AIAdvisor().suggest(_assessment(risk='Critical', probability=0.95))
        assert advisory.action_type == 'urgent'
        assert not advisory.auto_applicable

    async def test_provider_reply_is_used(self):
        provider = FakeAdvisoryProvider(reply='  Restart the worker pool.  ')
        advisory = await AIAdvisor(provider).suggest(_assessment(probability=0.6))

        assert advisory.suggestion == 'Restart the worker pool.'
        assert advisory.action_type == 'optimize'
        prompt, system_prompt, max_tokens = provider.prompts[0]
        assert 'Module: lumina' in prompt
        assert system_prompt == 'You are an AI system reliability expert.'
        assert max_tokens == 300

    async def test_provider_failure_falls_back_to_rules(self):
        provider = FakeAdvisoryProvider(error=RuntimeError('rate limited'))
        advisory = await AIAdvisor(provider).suggest(_assessment(risk='Low', probability=0.1))

        assert advisory.suggestion == (
            'lumina: Low risk (10% probability). Continue monitoring. No immediate action needed.'
        )
        assert advisory.action_type == 'monitor'


class TestSummaryHelpers:

    def test_timeframes(self):
        assert determine_timeframe(None) == '24h'
        assert determine_timeframe('within 1 hour') == '1h'
        assert determine_timeframe('within 6 hours') == '6h'
        assert determine_timeframe('within 7 days') == '7d'

    def test_health_labels(self):
        assert [health_label(s) for s in (81, 80, 51, 50)] == ['Healthy', 'Warning', 'Warning', 'Critical']

    def test_warnings(self):
        patterns = PatternEngine.detect_patterns(_logs('lumina', [100, 200] * 6))
        warnings = generate_warnings(_assessment(risk='Critical', probability=0.9), patterns)
        assert warnings == [
            'Critical risk level - immediate attention required',
            'High failure probability detected',
            '1 recurring pattern(s) detected',
        ]


# =============================================================================
# Tests: PMAL facade and visualization
# =============================================================================


class TestPMAL:

    async def test_empty_logs_are_healthy(self, tuner):
        summary = await PMAL(tuner).analyze([])
        assert summary.overall_health == 'Healthy'
        assert summary.risk_assessments == []
        assert summary.auto_tuning_actions == []

    async def test_analyze_accepts_dict_logs(self, tuner):
        logs = [{'module': 'vision', 'latency': 100 + 25 * i, 'errorRate': 0.01, 'memoryUsage': 0.3}
                for i in range(10)]

        summary = await PMAL(tuner).analyze(logs, use_ai=True)

        assessment = summary.risk_assessments[0]
        assert assessment.risk_level == 'High'
        assert assessment.probability == pytest.approx(0.375)
        forecast = summary.forecasts[0]
        assert forecast.timeframe == '6h'
        assert forecast.predicted_metrics.latency == pytest.approx(212.5)
        assert forecast.predicted_metrics.error_rate == pytest.approx(0.01)
        assert forecast.predicted_metrics.memory_usage == pytest.approx(0.3)
        assert summary.advisories[0].action_type == 'scale'
        assert summary.auto_tuning_actions == []
        assert isinstance(summary, PredictiveSummary)
        assert summary.to_dict()['overall_health'] == summary.overall_health

    async def test_forecast_metrics_are_window_means(self, tuner):
        logs = [{'module': 'vision', 'latency': 100 + 25 * i, 'errorRate': 0.002 * i,
                 'memoryUsage': 0.2 if i < 5 else 0.4}
                for i in range(10)]

        summary = await PMAL(tuner).analyze(logs, use_ai=False)

        metrics = summary.forecasts[0].predicted_metrics
        assert metrics.error_rate == pytest.approx(0.009)
        assert metrics.memory_usage == pytest.approx(0.3)

    async def test_critical_module_is_tuned(self, tuner):
        logs = _logs('lumina', [100 + 80 * i for i in range(10)], error_rate=0.2)

        summary = await PMAL(tuner).analyze(logs, use_ai=False)

        action = summary.auto_tuning_actions[0]
        assert action.module == 'lumina'
        assert action.mode == 'safe'
        assert action.adjustments == {
            'concurrency_limit': 5, 'timeout': 10000, 'retry_strategy': 'exponential', 'rate_limit': 10
        }
        assert action.reason == 'Auto-tune triggered: Critical risk with 100% probability'
        assert summary.overall_health == 'Critical'

    async def test_visualize(self, tuner):
        logs = _logs('lumina', [100 + 80 * i for i in range(10)]) + _logs('vision', [150] * 10)
        summary = await PMAL(tuner).analyze(logs, use_ai=False)

        view = PMAL.visualize(summary)

        assert [row['module'] for row in view['table']] == ['lumina', 'vision']
        assert view['table'][0]['risk_color'] == '#ef4444'
        assert view['table'][0]['probability'] == '100%'
        assert view['table'][0]['timeframe'] == '1h'
        assert view['table'][0]['confidence'] == 'High'
        assert view['table'][1]['confidence'] == 'Low'
        assert view['chart']['labels'] == ['lumina', 'vision']
        assert view['chart']['datasets'][0]['background_color'][0] == 'rgba(239, 68, 68, 0.5)'
        assert [card['priority'] for card in view['advisories']] == ['urgent', 'low']
        assert view['advisories'][0]['id'] == 'advisory-0'

        timeline = ForecastVisualizer.format_timeline(summary.forecasts)
        assert timeline['labels'] == ['1h', '6h', '24h', '7d']
        assert timeline['datasets'][1]['data'] == pytest.approx([150, 165, 180, 195])
        assert timeline['datasets'][1]['border_color'] == '#10b981'

    def test_format_correlations(self):
        summary = PredictiveSummary(overall_health='Healthy', correlations=CorrelationMap.map_correlations(
            TestCorrelationMap._trends(), []
        ))
        edges = ForecastVisualizer.format_correlations(summary)
        assert edges[0]['source'] == 'a'
        assert edges[0]['target'] == 'b'
        assert edges[0]['type'] == 'positive'
