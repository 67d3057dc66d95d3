"""
Cognitive chain engine.

Multi-step prompt reasoning for one user: each enhance or validate call is
recorded as a step of the current chain session, and completing the session
summarises the steps and stores the outcome in prompt memory.
"""

# Standard library imports
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

# Local imports
from pixolink.core.codex import now_ms, random_suffix
from pixolink.core.exceptions import SessionError
from pixolink.libs.feedback import FeedbackEngine
from pixolink.libs.prompt_memory import PromptEntry, PromptMemoryStore
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

VAGUE_TERMS = ('good', 'nice', 'beautiful', 'cool')
ENHANCE_SCORE_THRESHOLD = 70
DEFAULT_ENHANCEMENT_TERMS = ('highly detailed', 'sharp focus', 'balanced lighting')

StepProcessor = Callable[[str, Dict[str, Any]], Awaitable[Tuple[str, float]]]


@dataclass
class ChainStep:
    """One reasoning step: analyze, enhance, validate or execute."""
    id: str
    type: str
    input: str
    output: Optional[str] = None
    confidence: Optional[float] = None
    timestamp: int = field(default_factory=now_ms)


@dataclass
class ChainSession:
    id: str
    user_id: str
    context: Dict[str, Any]
    steps: List[ChainStep] = field(default_factory=list)
    start_time: int = field(default_factory=now_ms)
    end_time: Optional[int] = None


@dataclass
class ChainResult:
    session_id: str
    final_output: str
    steps: List[ChainStep]
    total_confidence: float
    insights: List[str]


@dataclass
class EnhancementResult:
    original: str
    enhanced: str
    improvements: List[str]
    suggestions: List[str]
    score: float

    @property
    def confidence(self) -> float:
        return self.score / 100


@dataclass
class PromptCheck:
    is_valid: bool
    issues: List[str]
    suggestions: List[str]
    confidence: float


class CognitiveChain:
    """Per-user chain of reasoning steps backed by prompt memory and feedback."""

    def __init__(
        self,
        user_id: str,
        store: PromptMemoryStore,
        feedback: Optional[FeedbackEngine] = None,
        fallback_terms: Sequence[str] = DEFAULT_ENHANCEMENT_TERMS
    ):
        self.user_id = user_id
        self.store = store
        self.feedback = feedback or FeedbackEngine(store)
        self.fallback_terms = list(fallback_terms)
        self._session: Optional[ChainSession] = None

    def start_session(self, initial_prompt: str = "", metadata: Optional[Dict[str, Any]] = None) -> str:
        """Begin a new chain session, replacing any open one."""
        session_id = f"chain-{now_ms()}-{random_suffix(9)}"
        context = {'initial_prompt': initial_prompt}
        if metadata:
            context.update(metadata)
        self._session = ChainSession(id=session_id, user_id=self.user_id, context=context)
        logger.debug(f"Started chain session {session_id} for {self.user_id}")
        return session_id

    async def add_step(self, step_type: str, input_text: str,
                       processor: Optional[StepProcessor] = None) -> ChainStep:
        if self._session is None:
            raise SessionError("No active session. Call start_session() first.")

        step = ChainStep(id=f"step-{len(self._session.steps) + 1}", type=step_type, input=input_text)
        if processor is not None:
            step.output, step.confidence = await processor(input_text, self._session.context)
        self._session.steps.append(step)
        return step

    async def enhance_prompt(self, prompt: str) -> EnhancementResult:
        """
        Enhance a prompt from the user's feedback history.

        Prompts scoring below 70 get up to three liked keywords appended, or
        the fallback quality terms when the user has no liked history yet.

        Raises:
            ValueError: If the prompt is empty or whitespace
        """
        if not prompt or not prompt.strip():
            raise ValueError("Cannot enhance an empty prompt")
        if self._session is None:
            self.start_session(prompt)

        suggestions = self.feedback.get_suggestions(self.user_id, prompt)
        score = self.feedback.calculate_prompt_score(self.user_id, prompt)

        improvements: List[str] = []
        if score < ENHANCE_SCORE_THRESHOLD:
            improvements = suggestions[:3] if suggestions else list(self.fallback_terms)
        enhanced = f"{prompt}, {', '.join(improvements)}" if improvements else prompt

        async def record(_input: str, _context: Dict[str, Any]) -> Tuple[str, float]:
            return enhanced, score / 100

        await self.add_step('enhance', prompt, record)
        return EnhancementResult(
            original=prompt,
            enhanced=enhanced,
            improvements=improvements,
            suggestions=suggestions,
            score=score
        )

    async def validate_prompt(self, prompt: str) -> PromptCheck:
        if self._session is None:
            self.start_session(prompt)

        issues: List[str] = []
        suggestions: List[str] = []
        confidence = 1.0

        if len(prompt) < 5:
            issues.append('Prompt too short')
            suggestions.append('Describe the subject, style and setting')
            confidence -= 0.3

        if any(term in prompt.lower() for term in VAGUE_TERMS):
            issues.append('Contains vague terms - be more specific')
            suggestions.append('Replace vague adjectives with concrete visual details')
            confidence -= 0.2

        if self.feedback.calculate_prompt_score(self.user_id, prompt) < 50:
            issues.append('Similar prompts had low ratings')
            suggestions.extend(self.feedback.get_suggestions(self.user_id, prompt))
            confidence -= 0.3

        async def record(_input: str, _context: Dict[str, Any]) -> Tuple[str, float]:
            return ('Valid' if not issues else ', '.join(issues)), confidence

        await self.add_step('validate', prompt, record)
        return PromptCheck(
            is_valid=not issues,
            issues=issues,
            suggestions=suggestions,
            confidence=max(0.0, confidence)
        )

    async def complete_session(self) -> ChainResult:
        """Close the session, summarise its steps and record it in prompt memory."""
        session = self._session
        if session is None:
            raise SessionError("No active session")
        session.end_time = now_ms()

        confidences = [s.confidence for s in session.steps if s.confidence is not None]
        avg_confidence = sum(confidences) / len(confidences) if confidences else 0.5

        insights: List[str] = []
        enhance_steps = [s for s in session.steps if s.type == 'enhance']
        if enhance_steps:
            insights.append(f"Enhanced prompt through {len(enhance_steps)} iterations")
        if any('vague' in (s.output or '') for s in session.steps if s.type == 'validate'):
            insights.append('Prompt clarity could be improved')

        final_step = session.steps[-1] if session.steps else None
        final_output = (final_step.output or final_step.input) if final_step else ''
        result = ChainResult(
            session_id=session.id,
            final_output=final_output,
            steps=list(session.steps),
            total_confidence=avg_confidence,
            insights=insights
        )

        try:
            self.store.save_prompt(PromptEntry(
                user_id=self.user_id,
                prompt=session.context.get('initial_prompt', ''),
                result=final_output,
                metadata={
                    'sessionId': session.id,
                    'confidence': avg_confidence,
                    'steps': len(session.steps),
                }
            ))
        except Exception as e:
            logger.warning(f"Failed to save chain session to prompt memory: {str(e)}")

        self._session = None
        return result

    def get_current_session(self) -> Optional[ChainSession]:
        return self._session
