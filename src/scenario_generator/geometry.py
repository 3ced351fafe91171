"""Planar helpers shared by the placement passes and the metrics engine.

Functions accept anything with ``x``/``y`` attributes (points, anchors,
outposts) and return plain floats or new :class:`Point` values.
"""

import math
from typing import List, Sequence

from src.scenario_generator.config import TWO_PI
from src.scenario_generator.models import Point


def distance(a, b) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def polar(center, radius: float, angle: float) -> Point:
    return Point(center.x + math.cos(angle) * radius, center.y + math.sin(angle) * radius)


def project(anchor, angle: float, radial: float, tangential: float) -> Point:
    """Offset *anchor* along *angle* and its perpendicular."""
    return Point(
        anchor.x + math.cos(angle) * radial - math.sin(angle) * tangential,
        anchor.y + math.sin(angle) * radial + math.cos(angle) * tangential,
    )


def angle_of(point, origin) -> float:
    """Bearing of *point* seen from *origin*, in ``(-pi, pi]``."""
    return math.atan2(point.y - origin.y, point.x - origin.x)


def wrap_angle(angle: float) -> float:
    """Wrap *angle* into ``(-pi, pi]``."""
    while angle <= -math.pi:
        angle += TWO_PI
    while angle > math.pi:
        angle -= TWO_PI
    return angle


def wedge_centers(hqs: Sequence, center) -> List[float]:
    """Bisector angles between consecutive HQs, in ``[0, 2pi)``."""
    wedge_arc = TWO_PI / len(hqs)
    hq_angles = sorted(angle_of(hq, center) for hq in hqs)
    return [(a + wedge_arc / 2 + TWO_PI) % TWO_PI for a in hq_angles]


def min_angle_offset_to_wedge(point, hqs: Sequence, center) -> float:
    """Smallest angular gap between *point* and any wedge center."""
    if not hqs:
        return math.pi
    angle = (angle_of(point, center) + TWO_PI) % TWO_PI
    best = math.pi
    for wc in wedge_centers(hqs, center):
        diff = abs(wrap_angle(angle - wc))
        if diff < best:
            best = diff
    return best


def nearest_two_sum(origin, points: Sequence) -> float:
    """Sum of distances from *origin* to its two closest *points*."""
    return sum(sorted(distance(p, origin) for p in points)[:2])


def nearest_two_sums(hqs: Sequence, points: Sequence) -> List[float]:
    return [nearest_two_sum(hq, points) for hq in hqs]


def spread(values: Sequence[float]) -> float:
    """Max minus min, zero for an empty sequence."""
    if not values:
        return 0.0
    return max(values) - min(values)


def farthest_index(points: Sequence, origin) -> int:
    """Index of the first point farthest from *origin*, -1 when empty."""
    best_idx, best_dist = -1, -math.inf
    for idx, p in enumerate(points):
        d = distance(p, origin)
        if d > best_dist:
            best_idx, best_dist = idx, d
    return best_idx


def nearest_index(points: Sequence, origin) -> int:
    """Index of the first point nearest to *origin*, -1 when empty."""
    best_idx, best_dist = -1, math.inf
    for idx, p in enumerate(points):
        d = distance(p, origin)
        if d < best_dist:
            best_idx, best_dist = idx, d
    return best_idx


def in_bounds(point, width: float, height: float) -> bool:
    return 0 <= point.x <= width and 0 <= point.y <= height
