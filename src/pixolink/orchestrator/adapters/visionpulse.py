"""
VisionPulse adapter.

Scores generated images and publishes ``IMAGE_ASSESSED``, plus a
``QUALITY_CHECK_COMPLETE`` alert for images below the quality threshold.
"""

# Standard library imports
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

# Local imports
from pixolink.core.codex import QUALITY_ALERT_THRESHOLD, ConnectorResult, EventType, now_ms
from pixolink.libs.vision import QualityReport, VisionAnalyzer
from pixolink.orchestrator.event_bus import EventBus
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

METRIC_NAMES = ('sharpness', 'brightness', 'contrast', 'colorfulness', 'composition')
QUICK_CONFIDENCE = 0.8
FULL_CONFIDENCE = 0.9


def score_category(score: float) -> str:
    if score >= 80:
        return 'excellent'
    if score >= 60:
        return 'good'
    if score >= 40:
        return 'fair'
    return 'poor'


@dataclass
class VisionInsights:
    category: str
    suggestions: List[str] = field(default_factory=list)
    confidence: float = FULL_CONFIDENCE


@dataclass
class VisionAssessment:
    image_url: str
    score: int
    metrics: Dict[str, float]
    issues: List[str]
    insights: VisionInsights
    timestamp: int = field(default_factory=now_ms)


def convert_report(report: QualityReport) -> VisionAssessment:
    return VisionAssessment(
        image_url=report.url,
        score=report.score,
        metrics={name: getattr(report.metrics, name) for name in METRIC_NAMES},
        issues=list(report.issues),
        insights=VisionInsights(
            category=score_category(report.score),
            suggestions=list(report.suggestions),
            confidence=FULL_CONFIDENCE
        ),
        timestamp=report.timestamp
    )


class VisionPulseAdapter:
    """Image quality assessment adapter."""

    def __init__(self, event_bus: EventBus, analyzer: Optional[VisionAnalyzer] = None,
                 quality_threshold: int = QUALITY_ALERT_THRESHOLD):
        self.event_bus = event_bus
        self.analyzer = analyzer or VisionAnalyzer()
        self.quality_threshold = quality_threshold

    async def assess_image(self, image_url: str, user_id: Optional[str] = None,
                           quick_mode: bool = False) -> ConnectorResult:
        started = time.perf_counter()
        try:
            if quick_mode:
                score = await self.analyzer.quick_score(image_url)
                assessment = VisionAssessment(
                    image_url=image_url,
                    score=score,
                    metrics={name: 0.0 for name in METRIC_NAMES},
                    issues=[],
                    insights=VisionInsights(category=score_category(score), confidence=QUICK_CONFIDENCE)
                )
            else:
                assessment = convert_report(await self.analyzer.analyze_image(image_url))

            await self.event_bus.publish(EventType.IMAGE_ASSESSED, {
                'userId': user_id,
                'imageUrl': image_url,
                'score': assessment.score,
                'metrics': dict(assessment.metrics),
            }, user_id=user_id)

            if assessment.score < self.quality_threshold:
                await self.event_bus.publish(EventType.QUALITY_CHECK_COMPLETE, {
                    'userId': user_id,
                    'imageUrl': image_url,
                    'score': assessment.score,
                    'alert': 'low_quality',
                    'issues': list(assessment.issues),
                }, user_id=user_id)

            return ConnectorResult.ok(assessment, started)

        except Exception as e:
            logger.error(f"Error assessing image {image_url}: {str(e)}")
            await self.event_bus.publish(EventType.ERROR_OCCURRED, {
                'error': str(e),
                'context': 'visionpulse-assess',
                'userId': user_id,
            }, user_id=user_id)
            return ConnectorResult.fail(e, started)

    async def assess_batch(self, images: Sequence[Dict[str, Any]]) -> ConnectorResult:
        """Full assessment of ``[{'imageUrl': ..., 'userId': ...}]`` without publishing."""
        started = time.perf_counter()
        try:
            reports = await self.analyzer.analyze_batch([image['imageUrl'] for image in images])
            return ConnectorResult.ok([convert_report(report) for report in reports], started)
        except Exception as e:
            logger.error(f"Error assessing image batch: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def quick_score(self, image_url: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            return ConnectorResult.ok(await self.analyzer.quick_score(image_url), started)
        except Exception as e:
            logger.error(f"Error scoring image {image_url}: {str(e)}")
            return ConnectorResult.fail(e, started)

    async def compare_images(self, image_url1: str, image_url2: str) -> ConnectorResult:
        started = time.perf_counter()
        try:
            report1, report2 = await self.analyzer.analyze_batch([image_url1, image_url2])
            first = convert_report(report1)
            second = convert_report(report2)

            improvements: List[str] = []
            for suggestion in first.insights.suggestions + second.insights.suggestions:
                if suggestion not in improvements:
                    improvements.append(suggestion)

            return ConnectorResult.ok({
                'image1': first,
                'image2': second,
                'comparison': {
                    'score_diff': abs(first.score - second.score),
                    'better_image': 1 if first.score > second.score else 2,
                    'improvements': improvements,
                },
            }, started)
        except Exception as e:
            logger.error(f"Error comparing images: {str(e)}")
            return ConnectorResult.fail(e, started)
