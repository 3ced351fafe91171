"""Fit the placed layout inside the map margin and clamp to bounds."""

import logging
from dataclasses import replace
from typing import List, Sequence, TypeVar

from src.scenario_generator.config import DEFAULT_NORMALIZER_CONFIG, NormalizerConfig

logger = logging.getLogger(__name__)

P = TypeVar("P")


def fit_scale(points: Sequence, center, config: NormalizerConfig = DEFAULT_NORMALIZER_CONFIG) -> float:
    """Uniform shrink factor (never above 1) that keeps every point inside the margin."""
    max_dx = max((abs(p.x - center.x) for p in points), default=0.0)
    max_dy = max((abs(p.y - center.y) for p in points), default=0.0)
    half_w = config.width / 2 - config.margin
    half_h = config.height / 2 - config.margin
    return min(
        1.0,
        half_w / max_dx if max_dx else 1.0,
        half_h / max_dy if max_dy else 1.0,
    )


def normalize_to_margin(
    points: Sequence[P],
    center,
    config: NormalizerConfig = DEFAULT_NORMALIZER_CONFIG,
) -> List[P]:
    """Scale *points* about *center* so the layout fits inside the margin.

    Works on any frozen dataclass with ``x``/``y`` fields.
    """
    scale = fit_scale(points, center, config)
    if scale < 1.0:
        logger.debug("Scaling layout by %.4f to fit margin %.1f", scale, config.margin)
    return [
        replace(p, x=(p.x - center.x) * scale + center.x, y=(p.y - center.y) * scale + center.y)
        for p in points
    ]


def clamp_to_bounds(
    points: Sequence[P],
    config: NormalizerConfig = DEFAULT_NORMALIZER_CONFIG,
) -> List[P]:
    """Clamp every point into ``[0, width] x [0, height]``."""
    return [
        replace(p, x=max(0.0, min(float(config.width), p.x)), y=max(0.0, min(float(config.height), p.y)))
        for p in points
    ]
