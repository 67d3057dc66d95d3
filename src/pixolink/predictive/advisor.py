"""
Advisory generation for risk assessments.

An optional language model provider is asked first; when it is missing,
returns nothing or fails, a rule-based suggestion is used instead.
"""

# Standard library imports
from dataclasses import dataclass, field
from typing import List, Optional

# Local imports
from pixolink.libs.insight import InsightProvider
from pixolink.predictive.models import PredictiveAdvisory, RiskAssessment
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

ADVISOR_SYSTEM_PROMPT = "You are an AI system reliability expert."
ADVISOR_MAX_TOKENS = 300

RULE_SUGGESTIONS = {
    'Critical': (
        "Critical risk detected ({pct}% probability). Immediate action required. "
        "Consider: 1) Restart module to clear state, 2) Scale down load, 3) Enable circuit breaker."
    ),
    'High': (
        "High risk detected ({pct}% probability). Recommend: 1) Increase monitoring frequency, "
        "2) Optimize slow queries, 3) Check resource allocation."
    ),
    'Medium': (
        "Medium risk detected ({pct}% probability). Suggest: 1) Review recent changes, "
        "2) Analyze performance metrics, 3) Consider scaling if needed."
    ),
    'Low': "Low risk ({pct}% probability). Continue monitoring. No immediate action needed.",
}


@dataclass
class AdvisoryContext:
    recent_patterns: List[str] = field(default_factory=list)
    correlated_modules: List[str] = field(default_factory=list)


def percent(probability: float) -> str:
    return f"{probability * 100:.0f}"


def select_action(assessment: RiskAssessment) -> str:
    if assessment.risk_level == 'Critical':
        return 'urgent'
    if assessment.probability > 0.8:
        return 'restart'
    if assessment.probability > 0.5:
        return 'optimize'
    if assessment.probability > 0.3:
        return 'scale'
    return 'monitor'


def rule_based_suggestion(assessment: RiskAssessment, context: Optional[AdvisoryContext] = None) -> str:
    template = RULE_SUGGESTIONS.get(assessment.risk_level, RULE_SUGGESTIONS['Low'])
    suggestion = f"{assessment.module}: " + template.format(pct=percent(assessment.probability))

    if assessment.predicted_failure_window:
        suggestion += f" Predicted failure {assessment.predicted_failure_window}."
    if context and context.correlated_modules:
        suggestion += (
            f" Note: Correlated with {', '.join(context.correlated_modules)}. "
            "Check for cascading issues."
        )
    if context and context.recent_patterns:
        suggestion += f" Patterns: {', '.join(context.recent_patterns)}."
    return suggestion


def build_advisor_prompt(assessment: RiskAssessment, context: Optional[AdvisoryContext] = None) -> str:
    lines = [
        "Analyze this module health assessment and provide actionable recommendations:",
        "",
        f"Module: {assessment.module}",
        f"Risk Level: {assessment.risk_level}",
        f"Failure Probability: {percent(assessment.probability)}%",
        f"Impact Score: {assessment.impact_score:.0f}/100",
    ]
    if assessment.predicted_failure_window:
        lines.append(f"Predicted Failure: {assessment.predicted_failure_window}")
    if context and context.recent_patterns:
        lines.append(f"Recent Patterns: {', '.join(context.recent_patterns)}")
    if context and context.correlated_modules:
        lines.append(f"Correlated Modules: {', '.join(context.correlated_modules)}")
    lines.extend([
        "",
        "Provide:",
        "1. Root cause hypothesis",
        "2. 3 specific actionable recommendations (prioritized)",
        "3. Prevention strategy for future occurrences",
        "",
        "Keep the response concise (max 150 words).",
    ])
    return "\n".join(lines)


class AIAdvisor:
    """
    Produces a ``PredictiveAdvisory`` for each risk assessment.

    Features:
    1. Optional language model suggestions through an ``InsightProvider``
    2. Rule-based fallback text per risk tier
    3. Action selection and auto-applicability from tier and probability
    """

    def __init__(self, provider: Optional[InsightProvider] = None):
        self.provider = provider

    async def suggest(self, assessment: RiskAssessment,
                      context: Optional[AdvisoryContext] = None) -> PredictiveAdvisory:
        suggestion = await self.generate_suggestion(assessment, context)
        action_type = select_action(assessment)
        auto_applicable = (
            assessment.risk_level != 'Critical'
            and action_type != 'urgent'
            and assessment.probability > 0.7
        )
        return PredictiveAdvisory(
            module=assessment.module,
            risk=assessment.risk_level,
            probability=assessment.probability,
            suggestion=suggestion,
            action_type=action_type,
            auto_applicable=auto_applicable,
        )

    async def generate_suggestion(self, assessment: RiskAssessment,
                                  context: Optional[AdvisoryContext] = None) -> str:
        try:
            ai_suggestion = await self._ai_suggestion(assessment, context)
            if ai_suggestion:
                return ai_suggestion
        except Exception as e:
            logger.warning(f"AI advisor fallback to rule-based: {str(e)}")
        return rule_based_suggestion(assessment, context)

    async def _ai_suggestion(self, assessment: RiskAssessment,
                             context: Optional[AdvisoryContext]) -> Optional[str]:
        if self.provider is None:
            return None
        reply = await self.provider.complete(
            build_advisor_prompt(assessment, context),
            system_prompt=ADVISOR_SYSTEM_PROMPT,
            max_tokens=ADVISOR_MAX_TOKENS,
        )
        return reply.strip() if reply else None
