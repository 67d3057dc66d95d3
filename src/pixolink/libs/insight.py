"""
WeavAI prompt insight service.

Asks a language model to analyze a user prompt and return a structured JSON
insight (optimized prompt, intent, mood, risks, plan, tags, confidence).
The model is reached through an ``InsightProvider``; without one the service
reports itself as not ready and every analysis is unavailable.
"""

# Standard library imports
import inspect
import json
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

# Third-party imports
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

# Local imports
from pixolink.core.codex import now_ms
from pixolink.core.config import IntelligenceConfig
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

TelemetryListener = Callable[[Dict[str, Any]], Any]

SYSTEM_PROMPT = ' '.join([
    'You are WeavAI, the cognitive core that prepares prompts for the Lumina image generation stack.',
    'Return a valid JSON object only. Do not wrap it in markdown code fences.',
    'The JSON schema is:',
    '{',
    '  "optimizedPrompt": string,',
    '  "summary": string,',
    '  "intent": string,',
    '  "mood": string,',
    '  "riskAlerts": string[],',
    '  "enhancementPlan": string[],',
    '  "tags": string[],',
    '  "confidence": number (0-1),',
    '  "guidance": string',
    '}',
    'Make the optimized prompt production-ready with explicit details, camera hints, and lighting cues.',
    'Highlight only critical risks in riskAlerts. Keep enhancementPlan ordered.',
])


@runtime_checkable
class InsightProvider(Protocol):
    """A text-completion backend."""

    name: str

    async def complete(self, prompt: str, system_prompt: Optional[str] = None,
                       temperature: float = 0.2, max_tokens: int = 700) -> str:
        ...


class LangChainInsightProvider:
    """InsightProvider backed by a LangChain OpenAI chat model."""

    name = 'openai'

    def __init__(self, config: IntelligenceConfig, llm: Any = None):
        self.config = config
        if llm is None:
            llm_config = {
                'model': config.model,
                'temperature': config.temperature,
                'max_tokens': config.max_tokens,
            }
            if config.api_key:
                llm_config['api_key'] = config.api_key
            llm = ChatOpenAI(**llm_config)
        self.llm = llm

    async def complete(self, prompt: str, system_prompt: Optional[str] = None,
                       temperature: float = 0.2, max_tokens: int = 700) -> str:
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        model = self.llm
        if hasattr(model, 'bind'):
            model = model.bind(temperature=temperature, max_tokens=max_tokens)
        response = await model.ainvoke(messages)
        content = getattr(response, 'content', response)
        return content if isinstance(content, str) else json.dumps(content)


def build_insight_provider(config: Optional[IntelligenceConfig]) -> Optional[InsightProvider]:
    """Provider named by the configuration, or None when no model is configured."""
    if config is None or config.provider == 'none':
        return None
    if config.provider == 'openai':
        if not config.api_key:
            logger.warning("OpenAI provider configured without an API key; insight disabled")
            return None
        return LangChainInsightProvider(config)
    logger.warning(f"Unknown intelligence provider: {config.provider}")
    return None


@dataclass
class WeavInsight:
    optimized_prompt: str
    summary: str = 'No summary provided'
    intent: str = 'creative'
    mood: str = 'balanced'
    risk_alerts: List[str] = field(default_factory=list)
    enhancement_plan: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    confidence: float = 0.75
    guidance: str = ''
    raw_text: str = ''

    def to_payload(self) -> Dict[str, Any]:
        return {
            'optimizedPrompt': self.optimized_prompt,
            'summary': self.summary,
            'intent': self.intent,
            'mood': self.mood,
            'riskAlerts': list(self.risk_alerts),
            'enhancementPlan': list(self.enhancement_plan),
            'tags': list(self.tags),
            'confidence': self.confidence,
            'guidance': self.guidance,
        }


@dataclass
class InsightResult:
    available: bool
    insight: Optional[WeavInsight] = None
    generation: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None


def build_prompt_payload(prompt: str, user_id: Optional[str] = None, session_id: Optional[str] = None,
                         metadata: Optional[Dict[str, Any]] = None) -> str:
    context = {
        'userId': user_id or 'anonymous',
        'sessionId': session_id or 'unbound',
        'metadata': metadata or {},
    }
    return '\n'.join([
        'Analyze the following user prompt for an AI art generation pipeline and respond '
        'with the JSON schema described by the system instructions.',
        'PROMPT:',
        prompt,
        'CONTEXT:',
        json.dumps(context, indent=2, default=str),
    ])


def safe_json(payload: str) -> Optional[Dict[str, Any]]:
    """Parse the span from the first '{' to the last '}', or None."""
    start = payload.find('{')
    end = payload.rfind('}')
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(payload[start:end + 1])
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def to_array(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    if isinstance(value, str) and value:
        return [value]
    return []


def clamp_confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.5
    if math.isnan(number):
        return 0.5
    return min(1.0, max(0.0, number))


def parse_insight(raw: str, fallback_prompt: str) -> WeavInsight:
    text = raw.strip()
    data = safe_json(text) or {}
    confidence = data.get('confidence')
    return WeavInsight(
        optimized_prompt=data.get('optimizedPrompt') or fallback_prompt,
        summary=data.get('summary') or 'No summary provided',
        intent=data.get('intent') or 'creative',
        mood=data.get('mood') or 'balanced',
        risk_alerts=to_array(data.get('riskAlerts')),
        enhancement_plan=to_array(data.get('enhancementPlan')),
        tags=to_array(data.get('tags')),
        confidence=clamp_confidence(0.75 if confidence is None else confidence),
        guidance=data.get('guidance') or '',
        raw_text=text,
    )


class InsightService:
    """
    Prompt analysis through an optional language model provider.

    The service is ready when a provider is configured. Telemetry listeners
    receive a dict for every generation start, completion and failure.
    """

    def __init__(self, provider: Optional[InsightProvider] = None, temperature: float = 0.2,
                 max_tokens: int = 700):
        self.provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._initialized = False
        self._telemetry_listeners: List[TelemetryListener] = []

    @property
    def is_ready(self) -> bool:
        return self.provider is not None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        if self.provider is None:
            logger.info("Insight service started without a language model provider")
        else:
            logger.info(f"Insight service initialized with provider {self.provider.name}")

    def subscribe_telemetry(self, listener: TelemetryListener) -> Callable[[], None]:
        self._telemetry_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._telemetry_listeners:
                self._telemetry_listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: Dict[str, Any]) -> None:
        for listener in list(self._telemetry_listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Insight telemetry listener error: {str(e)}")

    def get_status(self) -> Dict[str, Any]:
        return {
            'ready': self.is_ready,
            'initialized': self._initialized,
            'provider': self.provider.name if self.provider else None,
        }

    async def analyze_prompt(self, prompt: str, user_id: Optional[str] = None,
                             session_id: Optional[str] = None,
                             metadata: Optional[Dict[str, Any]] = None) -> InsightResult:
        self.initialize()
        if not self.is_ready:
            return InsightResult(available=False, reason='weavai_not_ready')

        await self._emit({'type': 'generation_started', 'userId': user_id, 'timestamp': now_ms()})
        try:
            generation = await self.provider.complete(
                build_prompt_payload(prompt, user_id, session_id, metadata),
                system_prompt=SYSTEM_PROMPT,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            logger.error(f"Error generating prompt insight: {str(e)}")
            await self._emit({'type': 'generation_failed', 'userId': user_id, 'error': str(e),
                              'timestamp': now_ms()})
            return InsightResult(available=False, reason='generation_failed', error=e)

        await self._emit({'type': 'generation_completed', 'userId': user_id, 'timestamp': now_ms()})
        return InsightResult(available=True, generation=generation, insight=parse_insight(generation, prompt))

    def shutdown(self) -> None:
        self._initialized = False
        self._telemetry_listeners.clear()
