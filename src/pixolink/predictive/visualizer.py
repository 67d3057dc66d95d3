"""
Presentation helpers for predictive summaries.

Shapes a summary into table rows, chart datasets, correlation edges and
advisory cards for a dashboard.
"""

# Standard library imports
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

# Local imports
from pixolink.predictive.models import ForecastResult, PredictiveAdvisory, PredictiveSummary

TIMELINE = ['1h', '6h', '24h', '7d']
CHART_LIMIT = 10
TIMELINE_LIMIT = 5

RISK_COLORS = {
    'Critical': '#ef4444',
    'High': '#f59e0b',
    'Medium': '#eab308',
    'Low': '#10b981',
}
RISK_COLORS_RGBA = {
    'Critical': 'rgba(239, 68, 68, 0.5)',
    'High': 'rgba(245, 158, 11, 0.5)',
    'Medium': 'rgba(234, 179, 8, 0.5)',
    'Low': 'rgba(16, 185, 129, 0.5)',
}
DEFAULT_COLOR = '#6b7280'
DEFAULT_COLOR_RGBA = 'rgba(107, 114, 128, 0.5)'

ACTION_PRIORITIES = {
    'urgent': 'urgent',
    'restart': 'high',
    'optimize': 'medium',
    'scale': 'medium',
    'monitor': 'low',
}


def risk_color(risk: str) -> str:
    return RISK_COLORS.get(risk, DEFAULT_COLOR)


def risk_color_rgba(risk: str) -> str:
    return RISK_COLORS_RGBA.get(risk, DEFAULT_COLOR_RGBA)


def confidence_label(confidence: float) -> str:
    if confidence > 0.8:
        return 'High'
    if confidence > 0.5:
        return 'Medium'
    return 'Low'


def latency_risk(latency: float) -> str:
    if latency > 1000:
        return 'Critical'
    if latency > 500:
        return 'High'
    if latency > 200:
        return 'Medium'
    return 'Low'


class ForecastVisualizer:

    @staticmethod
    def format_for_table(summary: PredictiveSummary) -> List[Dict[str, Any]]:
        forecasts = {f.module: f for f in summary.forecasts}
        confidences = {r.module: r.confidence for r in summary.risk_assessments}
        rows = []
        for advisory in summary.advisories:
            forecast: Optional[ForecastResult] = forecasts.get(advisory.module)
            rows.append({
                'module': advisory.module,
                'risk': advisory.risk,
                'risk_color': risk_color(advisory.risk),
                'probability': f"{advisory.probability * 100:.0f}%",
                'recommendation': advisory.suggestion,
                'timeframe': forecast.timeframe if forecast else None,
                'confidence': confidence_label(confidences.get(advisory.module, 0)),
            })
        return rows

    @staticmethod
    def format_for_chart(summary: PredictiveSummary) -> Dict[str, Any]:
        top = sorted(summary.advisories, key=lambda a: a.probability, reverse=True)[:CHART_LIMIT]
        return {
            'labels': [a.module for a in top],
            'datasets': [{
                'label': 'Failure Probability',
                'data': [a.probability * 100 for a in top],
                'background_color': [risk_color_rgba(a.risk) for a in top],
                'border_color': [risk_color(a.risk) for a in top],
            }],
        }

    @staticmethod
    def format_correlations(summary: PredictiveSummary) -> List[Dict[str, Any]]:
        return [
            {
                'source': c.modules[0],
                'target': c.modules[1] if len(c.modules) > 1 else None,
                'strength': c.strength,
                'type': c.correlation_type,
                'description': c.description,
            }
            for c in summary.correlations
        ]

    @staticmethod
    def format_timeline(forecasts: Sequence[ForecastResult]) -> Dict[str, Any]:
        datasets = []
        for forecast in list(forecasts)[:TIMELINE_LIMIT]:
            base = forecast.predicted_metrics.latency
            datasets.append({
                'label': forecast.module,
                'data': [base * (1 + i * 0.1) for i in range(len(TIMELINE))],
                'border_color': risk_color(latency_risk(base)),
            })
        return {'labels': list(TIMELINE), 'datasets': datasets}

    @staticmethod
    def format_advisories(advisories: Sequence[PredictiveAdvisory]) -> List[Dict[str, Any]]:
        return [
            {
                'id': f"advisory-{index}",
                'module': advisory.module,
                'priority': ACTION_PRIORITIES.get(advisory.action_type, 'low'),
                'message': advisory.suggestion,
                'timestamp': datetime.fromtimestamp(advisory.timestamp / 1000).isoformat(),
                'actionable': advisory.auto_applicable,
            }
            for index, advisory in enumerate(advisories)
        ]
