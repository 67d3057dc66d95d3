"""
Intelligence orchestrator for PixoLink.

This module wires the event bus, registry, connectors, adapters and telemetry
into one object and drives the generation pipeline:

    intelligence -> enhance -> validate -> generate -> assess -> save -> sync

Validation is the only fatal step. Every other step is isolated so that one
failing stage never prevents the following ones from running.
"""

# Standard library imports
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

# Local imports
from pixolink.core.codex import (
    NO_SESSION_ID,
    ConnectorResult,
    Event,
    EventType,
    GenerationOptions,
    GenerationPipeline,
    OrchestratorSession,
    PipelineResult,
    PipelineStepResults,
    elapsed_ms,
    now_ms,
    random_suffix,
)
from pixolink.core.config import config_manager
from pixolink.core.exceptions import ConfigurationError, PromptValidationError
from pixolink.libs.data_store import DataStoreClient
from pixolink.libs.insight import InsightProvider, InsightService, build_insight_provider
from pixolink.libs.vision import VisionAnalyzer
from pixolink.orchestrator.adapters import (
    LCCAdapter, LCMAdapter, LogicSimAdapter, PixSyncAdapter, VisionPulseAdapter, WeavAIAdapter
)
from pixolink.orchestrator.connectors import (
    DataStoreConnector, ImageBackend, LogicGuardianConnector, LuminaConnector, PixoGuardConnector,
    build_image_backend
)
from pixolink.orchestrator.event_bus import EventBus
from pixolink.orchestrator.registry import ModuleRegistry
from pixolink.predictive import PMAL, HealthLog, PredictiveSummary
from pixolink.telemetry import ErrorReporter, ErrorSink, MetricsSink, MetricsTracker, UsageEvents
from pixolink.tuning import AdaptiveTuner
from pixolink.utils.logger import get_logger, log_context

logger = get_logger(__name__)

GENERATION_OVERRIDES = (
    'negative_prompt', 'width', 'height', 'steps', 'guidance_scale', 'seed', 'style'
)

_CONFIG_ALIASES = {
    'userId': 'user_id',
    'sessionId': 'session_id',
    'enableTelemetry': 'enable_telemetry',
    'enableAutoSync': 'enable_auto_sync',
    'syncInterval': 'sync_interval',
    'dataStoreClient': 'data_store_client',
}


@dataclass
class OrchestratorConfig:
    """Construction settings for an Orchestrator."""
    user_id: str
    session_id: Optional[str] = None
    enable_telemetry: Optional[bool] = None
    enable_auto_sync: Optional[bool] = None
    sync_interval: Optional[float] = None
    data_store_client: Optional[DataStoreClient] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> 'OrchestratorConfig':
        """Build from a dict using either snake_case or camelCase keys."""
        normalized = {_CONFIG_ALIASES.get(key, key): value for key, value in values.items()}
        unknown = set(normalized) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown orchestrator settings: {', '.join(sorted(unknown))}")
        if not normalized.get('user_id'):
            raise ConfigurationError("user_id is required")
        return cls(**normalized)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'session_id': self.session_id,
            'enable_telemetry': self.enable_telemetry,
            'enable_auto_sync': self.enable_auto_sync,
            'sync_interval': self.sync_interval,
            'has_data_store': self.data_store_client is not None,
        }


@dataclass
class ConnectorSet:
    lumina: LuminaConnector
    data_store: DataStoreConnector
    pixoguard: PixoGuardConnector
    logicguardian: LogicGuardianConnector


@dataclass
class AdapterSet:
    lcm: LCMAdapter
    lcc: LCCAdapter
    pixsync: PixSyncAdapter
    logicsim: LogicSimAdapter
    visionpulse: VisionPulseAdapter
    weavai: WeavAIAdapter


@dataclass
class TelemetrySet:
    metrics: MetricsTracker
    errors: ErrorReporter
    usage: UsageEvents


class Orchestrator:
    """
    Central coordinator of the intelligence layer.

    Features:
    1. Explicit construction of every connector, adapter and tracker
    2. A fixed listener graph linking domain events to telemetry and guards
    3. Session lifecycle with per-session metrics
    4. The seven-step generation pipeline
    5. Predictive maintenance forecasts over module health logs

    All collaborators can be injected; defaults are in-process implementations.
    """

    def __init__(
        self,
        config: Union[OrchestratorConfig, Mapping[str, Any]],
        *,
        event_bus: Optional[EventBus] = None,
        registry: Optional[ModuleRegistry] = None,
        image_backend: Optional[ImageBackend] = None,
        vision_analyzer: Optional[VisionAnalyzer] = None,
        insight_provider: Optional[InsightProvider] = None,
        metrics_sink: Optional[MetricsSink] = None,
        error_sink: Optional[ErrorSink] = None,
        tuner: Optional[AdaptiveTuner] = None,
    ):
        if not isinstance(config, OrchestratorConfig):
            config = OrchestratorConfig.from_mapping(config)
        self.config = config
        self._session: Optional[OrchestratorSession] = None
        self._subscriptions: List[Callable[[], None]] = []
        self._initialized = False

        pipeline_config = config_manager.get_pipeline_config()
        intelligence_config = config_manager.get_intelligence_config()
        self.quality_threshold = pipeline_config.quality_threshold

        self.event_bus = event_bus or EventBus()

        if insight_provider is None:
            insight_provider = build_insight_provider(intelligence_config)

        # Telemetry
        metrics = MetricsTracker(self.event_bus)
        self.telemetry = TelemetrySet(
            metrics=metrics,
            errors=ErrorReporter(self.event_bus),
            usage=UsageEvents(self.event_bus, metrics)
        )

        # Connectors
        self.connectors = ConnectorSet(
            lumina=LuminaConnector(
                self.event_bus,
                image_backend or build_image_backend(config_manager.get_generation_config())
            ),
            data_store=DataStoreConnector(self.event_bus, config.data_store_client),
            pixoguard=PixoGuardConnector(self.event_bus),
            logicguardian=LogicGuardianConnector(self.event_bus)
        )

        # Adapters
        lcm = LCMAdapter(self.event_bus, data_store_client=config.data_store_client)
        self.adapters = AdapterSet(
            lcm=lcm,
            lcc=LCCAdapter(self.event_bus, lcm.store, lcm.feedback,
                           enhancement_terms=pipeline_config.enhancement_terms),
            pixsync=PixSyncAdapter(self.event_bus, config.data_store_client),
            logicsim=LogicSimAdapter(self.event_bus),
            visionpulse=VisionPulseAdapter(self.event_bus, vision_analyzer,
                                           quality_threshold=self.quality_threshold),
            weavai=WeavAIAdapter(
                self.event_bus,
                InsightService(insight_provider, intelligence_config.temperature,
                               intelligence_config.max_tokens),
                user_id=config.user_id,
                session_id=config.session_id
            )
        )
        try:
            self.adapters.weavai.initialize()
        except Exception as e:
            logger.error(f"Failed to initialize WeavAI adapter: {str(e)}")

        self.registry = registry or ModuleRegistry(self._live_modules())

        self.tuner = tuner or AdaptiveTuner()
        self.predictive = PMAL(tuner=self.tuner, advisory_provider=insight_provider)

        self._initialize_listeners()

        if config.enable_telemetry is not False:
            self._initialize_telemetry(metrics_sink, error_sink)

        if config.enable_auto_sync and config.data_store_client is not None:
            self.adapters.pixsync.enable_auto_sync(config.sync_interval or pipeline_config.sync_interval)

        self._initialized = True
        logger.info(f"Orchestrator initialized for user {config.user_id}")

    def _live_modules(self) -> Dict[str, Any]:
        modules: Dict[str, Any] = {
            'lcm.storage': self.adapters.lcm.store,
            'lcm.feedback': self.adapters.lcm.feedback,
            'pixsync.network': self.adapters.pixsync.network,
            'logicsim.simulator': self.adapters.logicsim.simulator,
            'visionpulse.analyzer': self.adapters.visionpulse.analyzer,
            'weavai.core': self.adapters.weavai.service,
        }
        if self.adapters.lcm.cloud_sync is not None:
            modules['lcm.sync'] = self.adapters.lcm.cloud_sync
        if self.adapters.pixsync.sync_manager is not None:
            modules['pixsync.manager'] = self.adapters.pixsync.sync_manager
        return modules

    def _subscribe(self, event_type: EventType, callback: Callable[[Event], Any]) -> None:
        self._subscriptions.append(self.event_bus.subscribe(event_type, callback))

    def _initialize_listeners(self) -> None:
        self._subscribe(EventType.PROMPT_GENERATED, self._on_prompt_generated)
        self._subscribe(EventType.IMAGE_GENERATED, self._on_image_generated)
        self._subscribe(EventType.IMAGE_ASSESSED, self._on_image_assessed)
        self._subscribe(EventType.SYNC_COMPLETE, self._on_sync_complete)
        self._subscribe(EventType.SYNC_FAILED, self._on_sync_failed)
        self._subscribe(EventType.RULE_CONFLICT, self._on_rule_conflict)
        self._subscribe(EventType.VALIDATION_ERROR, self._on_validation_error)
        self._subscribe(EventType.ERROR_OCCURRED, self._on_error_occurred)
        self._subscribe(EventType.FEEDBACK_RECEIVED, self._on_feedback_received)

    def _initialize_telemetry(self, metrics_sink: Optional[MetricsSink],
                              error_sink: Optional[ErrorSink]) -> None:
        try:
            self.telemetry.metrics.initialize(metrics_sink)
            self.telemetry.errors.initialize(error_sink)
            if self.config.user_id:
                self.telemetry.metrics.identify(self.config.user_id)
                self.telemetry.errors.set_user(self.config.user_id)
        except Exception as e:
            logger.error(f"Failed to initialize telemetry: {str(e)}")

    # Event reactions

    async def _on_prompt_generated(self, event: Event) -> None:
        user_id = event.data.get('userId')
        if user_id:
            await self.telemetry.usage.prompt_generated(user_id, event.data.get('prompt') or '')

    async def _on_image_generated(self, event: Event) -> None:
        user_id = event.data.get('userId')
        result = event.data.get('result')
        if not user_id or not result:
            return

        await self.telemetry.usage.image_generated(user_id, result.get('generationId'), 0)

        # The pipeline assesses its own images in the assess step
        if event.data.get('source') == 'pipeline':
            return
        try:
            await self.adapters.visionpulse.assess_image(result.get('imageUrl'), user_id)
        except Exception as e:
            await self.telemetry.errors.low(e, {'userId': user_id, 'imageUrl': result.get('imageUrl')}, user_id)

    async def _on_image_assessed(self, event: Event) -> None:
        user_id = event.data.get('userId')
        image_url = event.data.get('imageUrl')
        score = event.data.get('score')
        if user_id:
            await self.telemetry.usage.quality_assessed(user_id, score, image_url)
        if isinstance(score, (int, float)) and score < self.quality_threshold:
            await self.connectors.pixoguard.report_quality(
                f"Low quality image detected (score: {score})",
                'medium',
                {'userId': user_id, 'imageUrl': image_url, 'score': score}
            )

    async def _on_sync_complete(self, event: Event) -> None:
        user_id = event.data.get('userId')
        result = event.data.get('result')
        if user_id and result:
            await self.telemetry.usage.sync_performed(
                user_id, result.get('uploaded', 0), result.get('downloaded', 0), 0
            )

    async def _on_sync_failed(self, event: Event) -> None:
        user_id = event.data.get('userId')
        error = event.data.get('error')
        if user_id:
            await self.telemetry.usage.error_encountered(user_id, str(error), {'source': 'sync'})
        await self.connectors.pixoguard.report_anomaly(
            'Sync operation failed', 'medium', {'userId': user_id, 'error': error}
        )

    async def _on_rule_conflict(self, event: Event) -> None:
        await self.connectors.pixoguard.report('anomaly', 'high', 'Logic rule conflict detected', dict(event.data))

    async def _on_validation_error(self, event: Event) -> None:
        await self.connectors.pixoguard.report('quality', 'low', 'Validation error', dict(event.data))

    async def _on_error_occurred(self, event: Event) -> None:
        data = event.data
        # The error reporter announces its own reports; tracking them again would loop
        if data.get('source') == 'error_reporter':
            return
        error = data.get('error')
        if not error:
            return

        context = data.get('context')
        if context is None and data.get('originalEvent'):
            context = {'originalEvent': data.get('originalEvent')}
        elif context is not None and not isinstance(context, Mapping):
            context = {'context': context}
        await self.telemetry.errors.medium(
            Exception(str(error)), dict(context) if context else None, data.get('userId')
        )

    async def _on_feedback_received(self, event: Event) -> None:
        user_id = event.data.get('userId')
        if user_id:
            await self.telemetry.usage.feedback_given(
                user_id, event.data.get('promptId'), event.data.get('feedback')
            )

    # Sessions

    async def start_session(self) -> OrchestratorSession:
        session_id = self.config.session_id or f"session_{now_ms()}_{random_suffix(7)}"
        self._session = OrchestratorSession(session_id=session_id, user_id=self.config.user_id)

        await self.event_bus.publish(EventType.SESSION_STARTED, {
            'userId': self.config.user_id,
            'sessionId': session_id,
        }, user_id=self.config.user_id, session_id=session_id)
        await self.telemetry.usage.session_started(self.config.user_id, session_id)
        await self.telemetry.metrics.track('session_started', {
            'userId': self.config.user_id,
            'sessionId': session_id,
        }, self.config.user_id, session_id)

        logger.info(f"Session {session_id} started")
        return self._session

    async def end_session(self) -> Optional[OrchestratorSession]:
        session = self._session
        if session is None:
            return None

        session.end_time = now_ms()
        duration = session.duration
        session.events = self.event_bus.get_history(session_id=session.session_id)

        await self.event_bus.publish(EventType.SESSION_ENDED, {
            'userId': self.config.user_id,
            'sessionId': session.session_id,
            'duration': duration,
        }, user_id=self.config.user_id, session_id=session.session_id)
        await self.telemetry.usage.session_ended(self.config.user_id, session.session_id, duration)
        await self.telemetry.metrics.track('session_ended', {
            'userId': self.config.user_id,
            'sessionId': session.session_id,
            'duration': duration,
            'metrics': {
                'promptsGenerated': session.metrics.prompts_generated,
                'imagesGenerated': session.metrics.images_generated,
                'qualityChecks': session.metrics.quality_checks,
                'syncOperations': session.metrics.sync_operations,
            },
        }, self.config.user_id, session.session_id)

        completed = replace(session, metrics=replace(session.metrics), events=list(session.events))
        self._session = None
        logger.info(f"Session {session.session_id} ended after {duration}ms")
        return completed

    # Pipeline

    async def run_pipeline(self, original_prompt: str,
                           options: Optional[Mapping[str, Any]] = None) -> PipelineResult:
        """
        Run the generation pipeline for a prompt.

        Args:
            original_prompt: The user's prompt
            options: Generation overrides (width, height, steps, guidance_scale,
                seed, style, negative_prompt)

        Returns:
            PipelineResult; ``success`` is False only when validation stops the run
        """
        session = self._session
        with log_context(user=self.config.user_id, session=session.session_id if session else None):
            return await self._execute_pipeline(original_prompt, options)

    async def _execute_pipeline(self, original_prompt: str,
                                options: Optional[Mapping[str, Any]]) -> PipelineResult:
        started = time.perf_counter()
        session = self._session
        user_id = self.config.user_id
        pipeline = GenerationPipeline(
            user_id=user_id,
            session_id=session.session_id if session else NO_SESSION_ID,
            original_prompt=original_prompt
        )
        steps = PipelineStepResults()

        try:
            steps.intelligence = await self._intelligence_step(pipeline)
            steps.enhance = await self._enhance_step(pipeline)

            steps.validate = await self._guarded(
                pipeline, self.connectors.logicguardian.validate_prompt,
                pipeline.enhanced_prompt or original_prompt
            )
            report = steps.validate.data
            if not steps.validate.success or report is None or not report.is_valid:
                raise PromptValidationError("Prompt validation failed")

            steps.generate = await self._generate_step(pipeline, options or {})
            if pipeline.generation_result is not None:
                steps.assess = await self._assess_step(pipeline)
                steps.save = await self._save_step(pipeline)
            if self.config.enable_auto_sync is not False:
                steps.sync = await self._guarded(pipeline, self.adapters.pixsync.sync, user_id)
                pipeline.synced = steps.sync.success

            if session is not None:
                session.metrics.prompts_generated += 1
                if steps.generate.success:
                    session.metrics.images_generated += 1
                if steps.assess.success:
                    session.metrics.quality_checks += 1
                if steps.sync.success:
                    session.metrics.sync_operations += 1

            return PipelineResult(success=True, pipeline=pipeline, duration=elapsed_ms(started), steps=steps)

        except Exception as e:
            logger.error(f"Error in generation pipeline: {str(e)}")
            pipeline.errors.append(e)
            await self.telemetry.errors.high(e, {
                'userId': user_id,
                'sessionId': pipeline.session_id,
                'prompt': original_prompt,
                'failedSteps': [name for name, result in steps.as_dict().items() if result.error is not None],
            }, user_id)
            return PipelineResult(success=False, pipeline=pipeline, duration=elapsed_ms(started), steps=steps)

    async def _guarded(self, pipeline: GenerationPipeline, operation: Callable[..., Any],
                       *args: Any) -> ConnectorResult:
        """Run one step, turning an unexpected exception into a failed result."""
        started = time.perf_counter()
        try:
            result = await operation(*args)
        except Exception as e:
            logger.error(f"Error in pipeline step {getattr(operation, '__name__', operation)}: {str(e)}")
            pipeline.errors.append(e)
            return ConnectorResult.fail(e, started)
        return result

    async def _intelligence_step(self, pipeline: GenerationPipeline) -> ConnectorResult:
        result = await self._guarded(
            pipeline, self.adapters.weavai.analyze_prompt,
            pipeline.original_prompt, {'stage': 'pipeline', 'userId': pipeline.user_id}
        )
        insight_result = result.data
        if result.success and insight_result is not None and insight_result.insight is not None:
            pipeline.weav_ai = insight_result
            if not pipeline.enhanced_prompt:
                pipeline.enhanced_prompt = insight_result.insight.optimized_prompt
        return result

    async def _enhance_step(self, pipeline: GenerationPipeline) -> ConnectorResult:
        result = await self._guarded(
            pipeline, self.adapters.lcc.enhance_prompt, pipeline.user_id, pipeline.original_prompt
        )
        if result.success and result.data is not None:
            pipeline.enhanced_prompt = result.data.enhanced
        return result

    async def _generate_step(self, pipeline: GenerationPipeline, options: Mapping[str, Any]) -> ConnectorResult:
        overrides = {key: options[key] for key in GENERATION_OVERRIDES if key in options}
        generation = GenerationOptions(
            prompt=pipeline.original_prompt,
            enhanced_prompt=pipeline.enhanced_prompt,
            user_id=pipeline.user_id,
            session_id=self._session.session_id if self._session else None,
            source='pipeline',
            **overrides
        )
        result = await self._guarded(pipeline, self.connectors.lumina.generate, generation)
        if result.success and result.data is not None:
            pipeline.generation_result = result.data
        return result

    async def _assess_step(self, pipeline: GenerationPipeline) -> ConnectorResult:
        result = await self._guarded(
            pipeline, self.adapters.visionpulse.assess_image,
            pipeline.generation_result.image_url, pipeline.user_id
        )
        if result.success and result.data is not None:
            pipeline.quality_assessment = result.data
        return result

    async def _save_step(self, pipeline: GenerationPipeline) -> ConnectorResult:
        assessment = pipeline.quality_assessment
        result = await self._guarded(
            pipeline, self.adapters.lcm.save_prompt,
            pipeline.user_id,
            pipeline.original_prompt,
            pipeline.generation_result.image_url,
            'neutral',
            {
                'enhancedPrompt': pipeline.enhanced_prompt,
                'qualityScore': assessment.score if assessment is not None else None,
            }
        )
        pipeline.saved = result.success
        return result

    # Predictive maintenance

    async def get_forecast(self, logs: Sequence[HealthLog], analysis_window: int = 100,
                           include_ai_advisory: bool = True) -> PredictiveSummary:
        return await self.predictive.analyze(logs, analysis_window, include_ai_advisory)

    # Accessors

    def get_adapters(self) -> AdapterSet:
        return self.adapters

    def get_connectors(self) -> ConnectorSet:
        return self.connectors

    def get_event_bus(self) -> EventBus:
        return self.event_bus

    def get_registry(self) -> ModuleRegistry:
        return self.registry

    def get_current_session(self) -> Optional[OrchestratorSession]:
        return self._session

    def get_status(self) -> Dict[str, Any]:
        bus_stats = self.event_bus.get_stats()
        return {
            'initialized': self._initialized,
            'session': self._session,
            'config': self.config.to_dict(),
            'adapters': {
                'lcm': 'active',
                'lcc': 'active',
                'pixsync': 'syncing' if self.adapters.pixsync.get_pending_count() > 0 else 'active',
                'logicsim': 'active',
                'visionpulse': 'active',
                'weavai': 'active' if self.adapters.weavai.service.initialized else 'initializing',
            },
            'telemetry': {
                'metrics': self.telemetry.metrics.is_initialized(),
                'errors': self.telemetry.errors.is_initialized(),
            },
            'event_bus': {
                'listeners': bus_stats['listeners_by_type'],
                'events': bus_stats['total_events'],
            },
        }

    async def shutdown(self) -> None:
        """Stop auto-sync, detach listeners and release the insight service."""
        self.adapters.pixsync.close()
        self.adapters.weavai.destroy()
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()

        close = getattr(self.connectors.lumina.backend, 'close', None)
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.warning(f"Failed to close image backend: {str(e)}")

        self._initialized = False
        logger.info("Orchestrator shut down")


def create_orchestrator(config: Union[OrchestratorConfig, Mapping[str, Any]], **kwargs: Any) -> Orchestrator:
    """Convenience factory mirroring the Orchestrator constructor."""
    return Orchestrator(config, **kwargs)
