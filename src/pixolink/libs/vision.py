"""
Image quality analyzer.

Computes sharpness, brightness, contrast, colorfulness and composition
metrics from RGB pixel data and turns them into a weighted 0-100 score with
prompt-level suggestions. Pixel data comes from a pluggable image loader.
"""

# Standard library imports
import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, runtime_checkable

# Third-party imports
import numpy as np
import xxhash

# Local imports
from pixolink.core.codex import now_ms
from pixolink.core.exceptions import AssessmentError
from pixolink.utils.logger import get_logger

logger = get_logger(__name__)

METRIC_WEIGHTS = {
    'sharpness': 0.25,
    'brightness': 0.15,
    'contrast': 0.2,
    'colorfulness': 0.2,
    'composition': 0.2,
}


@dataclass
class QualityMetrics:
    sharpness: float = 0.0
    brightness: float = 0.0
    contrast: float = 0.0
    colorfulness: float = 0.0
    composition: float = 0.0
    overall: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'sharpness': self.sharpness,
            'brightness': self.brightness,
            'contrast': self.contrast,
            'colorfulness': self.colorfulness,
            'composition': self.composition,
            'overall': self.overall,
        }


@dataclass
class QualityReport:
    url: str
    metrics: QualityMetrics
    score: int
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    timestamp: int = field(default_factory=now_ms)


@runtime_checkable
class ImageLoader(Protocol):
    """Resolves an image URL to an (height, width, 3) uint8 RGB array."""

    async def load(self, url: str) -> np.ndarray:
        ...


class SyntheticImageLoader:
    """
    Deterministic stand-in for real image decoding.

    Builds a gradient-plus-noise image whose palette and noise are seeded by
    an xxhash of the URL, so the same URL always scores the same.
    """

    def __init__(self, size: int = 64):
        self.size = size

    async def load(self, url: str) -> np.ndarray:
        rng = np.random.default_rng(xxhash.xxh64(url.encode('utf-8')).intdigest())
        base = rng.integers(40, 200, size=3)
        spread = rng.integers(20, 90, size=3)
        ramp = np.linspace(-1.0, 1.0, self.size)
        gradient = ramp[None, :, None] * spread[None, None, :]
        noise = rng.normal(0, rng.uniform(5, 40), size=(self.size, self.size, 3))
        pixels = base[None, None, :] + gradient + noise
        return np.clip(pixels, 0, 255).astype(np.uint8)


class ArrayImageLoader:
    """Serves pre-decoded arrays by URL."""

    def __init__(self, images: Mapping[str, np.ndarray]):
        self.images = dict(images)

    async def load(self, url: str) -> np.ndarray:
        if url not in self.images:
            raise AssessmentError(f"Image not found: {url}")
        return self.images[url]


def _composition(gray: np.ndarray) -> float:
    """Rule-of-thirds energy ratio mapped into 70..90."""
    height, width = gray.shape
    if height < 3 or width < 3:
        return 70.0
    energy = np.zeros_like(gray)
    energy[:, 1:] += np.abs(np.diff(gray, axis=1))
    energy[1:, :] += np.abs(np.diff(gray, axis=0))

    band_w = max(1, width // 12)
    band_h = max(1, height // 12)
    mask = np.zeros_like(gray, dtype=bool)
    for x in (width // 3, 2 * width // 3):
        mask[:, max(0, x - band_w):x + band_w] = True
    for y in (height // 3, 2 * height // 3):
        mask[max(0, y - band_h):y + band_h, :] = True

    overall = energy.mean()
    if overall == 0:
        return 70.0
    ratio = energy[mask].mean() / overall
    return float(70 + 20 * np.clip(ratio / 2, 0, 1))


def calculate_metrics(pixels: np.ndarray) -> QualityMetrics:
    """Raw image metrics, each scaled to 0..100; ``overall`` is left at 0."""
    if pixels.ndim != 3 or pixels.shape[2] < 3 or pixels.size == 0:
        raise AssessmentError(f"Expected an RGB image array, got shape {pixels.shape}")
    rgb = pixels[:, :, :3].astype(np.float64)
    pixel_count = rgb.shape[0] * rgb.shape[1]

    red = rgb[:, :, 0].ravel()
    sharpness = min(100.0, float(np.abs(np.diff(red)).sum()) / pixel_count * 10)

    gray = rgb.mean(axis=2)
    brightness = float(gray.mean()) / 2.55
    contrast = min(100.0, float(gray.std()) / 1.28)

    colorfulness = min(100.0, float((rgb.max(axis=2) - rgb.min(axis=2)).mean()) / 2.55)

    return QualityMetrics(
        sharpness=sharpness,
        brightness=brightness,
        contrast=contrast,
        colorfulness=colorfulness,
        composition=_composition(gray)
    )


def calculate_overall_score(metrics: QualityMetrics) -> int:
    return int(round(sum(getattr(metrics, name) * weight for name, weight in METRIC_WEIGHTS.items())))


def generate_insights(metrics: QualityMetrics) -> Dict[str, List[str]]:
    issues: List[str] = []
    suggestions: List[str] = []

    if metrics.sharpness < 40:
        issues.append('Low sharpness detected')
        suggestions.append('Increase detail in prompt or use higher resolution')

    if metrics.brightness < 30:
        issues.append('Image too dark')
        suggestions.append('Add "bright lighting" or "well-lit" to prompt')
    elif metrics.brightness > 80:
        issues.append('Image too bright')
        suggestions.append('Reduce lighting intensity in prompt')

    if metrics.contrast < 35:
        issues.append('Low contrast')
        suggestions.append('Add "high contrast" or "dramatic lighting"')

    if metrics.colorfulness < 25:
        issues.append('Low color saturation')
        suggestions.append('Add "vibrant colors" or specific color terms')

    return {'issues': issues, 'suggestions': suggestions}


class VisionAnalyzer:
    """Scores images fetched through an ImageLoader."""

    def __init__(self, loader: Optional[ImageLoader] = None):
        self.loader = loader or SyntheticImageLoader()

    async def analyze_image(self, image_url: str) -> QualityReport:
        pixels = await self.loader.load(image_url)
        metrics = calculate_metrics(np.asarray(pixels))
        score = calculate_overall_score(metrics)
        metrics.overall = score
        insights = generate_insights(metrics)
        return QualityReport(
            url=image_url,
            metrics=metrics,
            score=score,
            issues=insights['issues'],
            suggestions=insights['suggestions']
        )

    async def analyze_batch(self, image_urls: List[str]) -> List[QualityReport]:
        return list(await asyncio.gather(*(self.analyze_image(url) for url in image_urls)))

    async def quick_score(self, image_url: str) -> int:
        return (await self.analyze_image(image_url)).score
