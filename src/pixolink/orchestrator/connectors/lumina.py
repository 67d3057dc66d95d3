"""
Lumina image generation connector.

Wraps an ``ImageBackend`` with the bus protocol of the generation stage:
``PROMPT_GENERATED`` before the backend call, ``IMAGE_GENERATED`` after it,
and ``ERROR_OCCURRED`` when it fails.
"""

# Standard library imports
import time
from typing import Any, Dict, Optional, Protocol, runtime_checkable

# Third-party imports
import httpx

# Local imports
from pixolink.core.codex import (
    ConnectorResult, EventType, GenerationOptions, GenerationResult, now_ms, random_suffix
)
from pixolink.core.config import GenerationConfig
from pixolink.core.exceptions import GenerationError
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER_IMAGE_DATA = 'data:image/png;base64,...'


@runtime_checkable
class ImageBackend(Protocol):
    """Produces an image for a generation request."""

    async def generate(self, options: GenerationOptions) -> GenerationResult:
        ...

    async def health_check(self) -> bool:
        ...


class MockImageBackend:
    """In-process backend returning placeholder results."""

    async def generate(self, options: GenerationOptions) -> GenerationResult:
        stamp = now_ms()
        return GenerationResult(
            image_url=f"https://placeholder.com/generated/{stamp}.png",
            image_data=PLACEHOLDER_IMAGE_DATA,
            prompt=options.prompt,
            enhanced_prompt=options.enhanced_prompt,
            generation_id=f"gen_{stamp}_{random_suffix(7)}",
            timestamp=stamp,
            metadata={'style': options.style, 'quality': options.steps}
        )

    async def health_check(self) -> bool:
        return True


class HttpImageBackend:
    """
    Backend posting generation requests to a remote HTTP endpoint.

    The endpoint receives the request options as JSON and must answer with at
    least ``imageUrl`` and ``generationId``.
    """

    def __init__(self, config: GenerationConfig, client: Optional[httpx.AsyncClient] = None):
        if not config.base_url:
            raise GenerationError("Image generation endpoint not configured")
        self.config = config
        headers = {'Authorization': f"Bearer {config.api_key}"} if config.api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=config.timeout
        )

    async def generate(self, options: GenerationOptions) -> GenerationResult:
        payload = {
            'prompt': options.prompt,
            'enhancedPrompt': options.enhanced_prompt,
            'negativePrompt': options.negative_prompt,
            'width': options.width,
            'height': options.height,
            'steps': options.steps,
            'guidanceScale': options.guidance_scale,
            'seed': options.seed,
            'style': options.style,
            'userId': options.user_id,
        }
        try:
            response = await self._client.post('/generate', json={k: v for k, v in payload.items() if v is not None})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise GenerationError(f"Image generation request failed: {str(e)}") from e

        body = response.json()
        if not body.get('imageUrl') or not body.get('generationId'):
            raise GenerationError("Image generation response missing imageUrl or generationId")
        return GenerationResult(
            image_url=body['imageUrl'],
            image_data=body.get('imageData'),
            prompt=options.prompt,
            enhanced_prompt=options.enhanced_prompt,
            generation_id=body['generationId'],
            timestamp=body.get('timestamp') or now_ms(),
            metadata=body.get('metadata') or {'style': options.style}
        )

    async def health_check(self) -> bool:
        try:
            response = await self._client.get('/health')
        except httpx.HTTPError as e:
            logger.warning(f"Image backend health check failed: {str(e)}")
            return False
        return response.is_success

    async def close(self) -> None:
        await self._client.aclose()


def build_image_backend(config: Optional[GenerationConfig]) -> ImageBackend:
    """HTTP backend when an endpoint is configured, otherwise the mock."""
    if config is not None and config.base_url:
        return HttpImageBackend(config)
    return MockImageBackend()


class LuminaConnector:
    """Image generation connector."""

    def __init__(self, event_bus: EventBus, backend: Optional[ImageBackend] = None):
        self.event_bus = event_bus
        self.backend = backend or MockImageBackend()

    async def generate(self, options: GenerationOptions) -> ConnectorResult:
        started = time.perf_counter()
        try:
            await self.event_bus.publish(EventType.PROMPT_GENERATED, {
                'prompt': options.prompt,
                'userId': options.user_id,
                'sessionId': options.session_id,
            }, user_id=options.user_id, session_id=options.session_id)

            result = await self.backend.generate(options)

            await self.event_bus.publish(EventType.IMAGE_GENERATED, {
                'result': result.to_payload(),
                'userId': options.user_id,
                'sessionId': options.session_id,
                'source': options.source,
            }, user_id=options.user_id, session_id=options.session_id)

            logger.debug(f"Generated image {result.generation_id} for {options.user_id}")
            return ConnectorResult.ok(result, started)

        except Exception as e:
            logger.error(f"Error generating image: {str(e)}")
            await self.event_bus.publish(EventType.ERROR_OCCURRED, {
                'error': str(e),
                'context': 'lumina-connector-generate',
                'userId': options.user_id,
            }, user_id=options.user_id)
            return ConnectorResult.fail(e, started)

    async def health_check(self) -> bool:
        try:
            return await self.backend.health_check()
        except Exception as e:
            logger.error(f"Error checking image backend health: {str(e)}")
            return False

    async def get_status(self, generation_id: str) -> Dict[str, Any]:
        # Generation is synchronous against the backend, so a known id is done
        return {'status': 'completed', 'progress': 100}
