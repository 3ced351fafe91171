"""Per-scenario fairness metrics.

``evaluate_fairness`` takes a finished layout and measures how evenly it
treats the players: HQ geometry, satellite spacing, neutral access by
distance band, spawn-time visibility and structure clearance. Every range
field is max minus min over players; lower is fairer.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from src.fairness.config import (
    CENTER_OCCUPANCY_RADIUS,
    CONNECTIVITY_RADIUS,
    ISOLATION_HQ_COUNT,
    ISOLATION_NEUTRAL_COUNT,
    MAP_CENTER,
    NEUTRAL_FAR_RADIUS,
    NEUTRAL_MID_RADIUS,
    NEUTRAL_NEAR_RADIUS,
)
from src.scenario_generator.geometry import distance, wrap_angle
from src.scenario_generator.models import Outpost, Player, Point
from src.visibility.sonar import is_outpost_visible, sonar_sources_for_player

logger = logging.getLogger(__name__)

TWO_PI = math.pi * 2


# ------------------------------------------------------------------
# Records
# ------------------------------------------------------------------


@dataclass
class PlayerStructureSummary:
    player_id: str
    total: int
    hq: int
    foundry: int
    reactor: int


@dataclass
class NeutralAccessSummary:
    player_id: str
    nearest_two_sum: float
    nearest_distances: List[float] = field(default_factory=list)


@dataclass
class PlayerClusterStat:
    player_id: str
    average_spacing: float
    min_spacing: float
    max_spacing: float
    min_foreign_gap: float


@dataclass
class PlayerNeutralAccessCounts:
    player_id: str
    near_count: int
    mid_count: int
    far_count: int


@dataclass
class PlayerNeutralTypeCounts:
    player_id: str
    foundry: int
    reactor: int


@dataclass
class ScenarioFairnessMetrics:
    """Everything measured for one scenario."""

    total_structures: int
    neutral_count: int
    center_neutral_count: int

    visible_neutral_counts: List[int]
    visible_enemy_counts: List[int]
    visible_neutral_min: int
    visible_neutral_max: int
    visible_neutral_range: int
    visible_enemy_max: int
    visible_enemy_range: int

    player_summaries: List[PlayerStructureSummary]

    hq_distances: List[float]
    hq_distance_range: float
    adjacent_hq_distances: List[float]
    adjacent_hq_range: float
    hq_radius_values: List[float]
    hq_radius_range: float
    hq_nearest_enemy_distances: List[float]
    hq_nearest_enemy_range: float
    hq_average_enemy_distances: List[float]
    hq_average_enemy_range: float
    hq_angle_max_deviation_deg: float

    satellite_angle_std_dev_deg: float
    neutral_angle_std_dev_deg: float

    neutral_access: List[NeutralAccessSummary]
    nearest_neutral_spread: float

    player_cluster_stats: List[PlayerClusterStat]
    cluster_average_range: float
    cluster_min_spacing: float
    cluster_max_spacing: float
    min_foreign_gap_across_players: float

    player_neutral_access_counts: List[PlayerNeutralAccessCounts]
    neutral_near_count_range: int
    neutral_mid_count_range: int
    neutral_far_count_range: int
    neutral_near_mid_count_range: int

    player_neutral_type_counts: List[PlayerNeutralTypeCounts]
    neutral_type_count_ranges: Dict[str, int]

    neutral_wedge_count_range: int
    neutral_wedge_radial_range: float

    player_connectivity_counts: Dict[str, int]
    connectivity_range: int

    player_isolation_scores: Dict[str, float]
    isolation_range: float

    max_structure_distance_to_center: float
    min_structure_distance: float
    min_structure_clearance: float


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _range(values: Sequence[float]):
    return max(values) - min(values) if values else 0


def _avg(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _std_dev_deg(offsets: Sequence[float]) -> float:
    """Population standard deviation in degrees; zero below two samples."""
    if len(offsets) < 2:
        return 0.0
    mean = _avg(offsets)
    return math.degrees(math.sqrt(_avg([(v - mean) ** 2 for v in offsets])))


def _bearing(point, center) -> float:
    """Angle of *point* around *center* in ``[0, 2pi)``."""
    angle = math.atan2(point.y - center.y, point.x - center.x)
    return angle + TWO_PI if angle < 0 else angle


def _hq_for(player: Player, hqs: Sequence[Outpost]) -> Optional[Outpost]:
    return next((hq for hq in hqs if hq.owner_id == player.id), None)


def _satellites(player: Player, structures: Sequence[Outpost]) -> List[Outpost]:
    return [s for s in structures if s.owner_id == player.id and s.type != "hq"]


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def evaluate_fairness(
    players: Sequence[Player],
    structures: Sequence[Outpost],
) -> ScenarioFairnessMetrics:
    """Measure every fairness figure for one layout."""
    center = Point(*MAP_CENTER)
    neutrals = [s for s in structures if s.owner_id is None]
    hqs = [s for s in structures if s.type == "hq"]
    wedge_arc = TWO_PI / len(players) if players else TWO_PI

    # Visibility at spawn
    visible_neutral_counts: List[int] = []
    visible_enemy_counts: List[int] = []
    for player in players:
        sources = sonar_sources_for_player(structures, player.id)
        visible = [
            s for s in structures
            if is_outpost_visible(s, player.id, structures, sonar_sources=sources)
        ]
        visible_neutral_counts.append(sum(1 for s in visible if s.owner_id is None))
        visible_enemy_counts.append(
            sum(1 for s in visible if s.owner_id is not None and s.owner_id != player.id)
        )
    visible_neutral_min = min(visible_neutral_counts, default=0)
    visible_neutral_max = max(visible_neutral_counts, default=0)
    visible_enemy_max = max(visible_enemy_counts, default=0)
    visible_enemy_min = min(visible_enemy_counts, default=0)

    player_summaries = []
    for player in players:
        owned = [s for s in structures if s.owner_id == player.id]
        player_summaries.append(
            PlayerStructureSummary(
                player_id=player.id,
                total=len(owned),
                hq=sum(1 for s in owned if s.type == "hq"),
                foundry=sum(1 for s in owned if s.type == "foundry"),
                reactor=sum(1 for s in owned if s.type == "reactor"),
            )
        )

    # HQ geometry
    hq_distances = [
        distance(hqs[i], hqs[j])
        for i in range(len(hqs))
        for j in range(i + 1, len(hqs))
    ]
    ordered_hqs = [hq for hq in (_hq_for(p, hqs) for p in players) if hq is not None]
    adjacent = [
        distance(hq, ordered_hqs[(i + 1) % len(ordered_hqs)])
        for i, hq in enumerate(ordered_hqs)
    ]
    radius_values = [distance(hq, center) for hq in ordered_hqs]

    nearest_enemy: List[float] = []
    average_enemy: List[float] = []
    for i, hq in enumerate(ordered_hqs):
        others = [distance(hq, o) for j, o in enumerate(ordered_hqs) if j != i]
        nearest_enemy.append(min(others, default=math.inf))
        average_enemy.append(_avg(others))

    hq_angles = sorted(_bearing(hq, center) for hq in ordered_hqs)
    deviations = []
    for i, current in enumerate(hq_angles):
        following = hq_angles[(i + 1) % len(hq_angles)]
        delta = ((following - current + TWO_PI) % TWO_PI) or TWO_PI
        deviations.append(abs(delta - wedge_arc))
    hq_angle_max_deviation_deg = math.degrees(max(deviations)) if deviations else 0.0

    # Angular spread relative to wedge centers
    hq_angle_by_owner = {hq.owner_id: _bearing(hq, center) for hq in ordered_hqs}
    satellite_offsets = []
    for player in players:
        hq = _hq_for(player, ordered_hqs)
        if hq is None:
            continue
        for sat in _satellites(player, structures):
            bearing = math.atan2(sat.y - hq.y, sat.x - hq.x)
            satellite_offsets.append(wrap_angle(bearing - hq_angle_by_owner[player.id]))

    wedge_centers = [(a + wedge_arc / 2) % TWO_PI for a in hq_angles]
    neutral_offsets = []
    if wedge_centers:
        for n in neutrals:
            angle = _bearing(n, center)
            nearest_wc = min(wedge_centers, key=lambda wc: abs(wrap_angle(angle - wc)))
            neutral_offsets.append(wrap_angle(angle - nearest_wc))

    # Neutral access
    neutral_access = []
    for player in players:
        hq = _hq_for(player, hqs)
        if hq is None or not neutrals:
            neutral_access.append(NeutralAccessSummary(player.id, math.inf))
            continue
        dists = sorted(distance(hq, n) for n in neutrals)
        neutral_access.append(NeutralAccessSummary(player.id, sum(dists[:2]), dists))

    # Cluster spacing
    cluster_stats = []
    for player in players:
        hq = _hq_for(player, ordered_hqs)
        if hq is None:
            cluster_stats.append(PlayerClusterStat(player.id, 0.0, 0.0, 0.0, math.inf))
            continue
        sats = _satellites(player, structures)
        spacing = [distance(s, hq) for s in sats]
        foreign_hqs = [o for o in ordered_hqs if o.owner_id != player.id]
        gaps = [
            min((distance(s, o) for o in foreign_hqs), default=math.inf) - distance(s, hq)
            for s in sats
        ]
        cluster_stats.append(
            PlayerClusterStat(
                player_id=player.id,
                average_spacing=_avg(spacing),
                min_spacing=min(spacing, default=0.0),
                max_spacing=max(spacing, default=0.0),
                min_foreign_gap=min(gaps, default=math.inf),
            )
        )

    # Distance bands, types, connectivity and isolation
    band_counts = []
    type_counts = []
    connectivity: Dict[str, int] = {}
    isolation: Dict[str, float] = {}
    for player in players:
        hq = _hq_for(player, ordered_hqs)
        if hq is None:
            band_counts.append(PlayerNeutralAccessCounts(player.id, 0, 0, 0))
            type_counts.append(PlayerNeutralTypeCounts(player.id, 0, 0))
            connectivity[player.id] = 0
            isolation[player.id] = 0.0
            continue
        dists = [distance(n, hq) for n in neutrals]
        band_counts.append(
            PlayerNeutralAccessCounts(
                player_id=player.id,
                near_count=sum(1 for d in dists if 0 <= d <= NEUTRAL_NEAR_RADIUS),
                mid_count=sum(1 for d in dists if NEUTRAL_NEAR_RADIUS < d <= NEUTRAL_MID_RADIUS),
                far_count=sum(1 for d in dists if NEUTRAL_MID_RADIUS < d <= NEUTRAL_FAR_RADIUS),
            )
        )
        nearby = [n for n, d in zip(neutrals, dists) if 0 <= d <= NEUTRAL_MID_RADIUS]
        type_counts.append(
            PlayerNeutralTypeCounts(
                player_id=player.id,
                foundry=sum(1 for n in nearby if n.type == "foundry"),
                reactor=sum(1 for n in nearby if n.type == "reactor"),
            )
        )
        connectivity[player.id] = sum(1 for d in dists if d <= CONNECTIVITY_RADIUS)
        enemies = sorted(distance(o, hq) for o in ordered_hqs if o.owner_id != player.id)
        isolation[player.id] = (
            _avg(sorted(dists)[:ISOLATION_NEUTRAL_COUNT])
            + _avg(enemies[:ISOLATION_HQ_COUNT])
        )

    # Fixed 72-degree sectors starting at angle 0
    per_wedge = [0] * len(players)
    radial_sum = [0.0] * len(players)
    if players:
        for n in neutrals:
            idx = min(len(players) - 1, math.floor(_bearing(n, center) / wedge_arc))
            per_wedge[idx] += 1
            radial_sum[idx] += distance(n, center)
    radial_avg = [total / count if count else 0.0 for total, count in zip(radial_sum, per_wedge)]

    # Spacing between every pair of structures
    min_distance = math.inf
    min_clearance = math.inf
    max_to_center = 0.0
    for i, a in enumerate(structures):
        max_to_center = max(max_to_center, distance(a, center))
        for b in structures[i + 1:]:
            d = distance(a, b)
            min_distance = min(min_distance, d)
            min_clearance = min(min_clearance, d - (a.size + b.size))

    metrics = ScenarioFairnessMetrics(
        total_structures=len(structures),
        neutral_count=len(neutrals),
        center_neutral_count=sum(
            1 for n in neutrals if distance(n, center) <= CENTER_OCCUPANCY_RADIUS
        ),
        visible_neutral_counts=visible_neutral_counts,
        visible_enemy_counts=visible_enemy_counts,
        visible_neutral_min=visible_neutral_min,
        visible_neutral_max=visible_neutral_max,
        visible_neutral_range=visible_neutral_max - visible_neutral_min,
        visible_enemy_max=visible_enemy_max,
        visible_enemy_range=visible_enemy_max - visible_enemy_min,
        player_summaries=player_summaries,
        hq_distances=hq_distances,
        hq_distance_range=_range(hq_distances),
        adjacent_hq_distances=adjacent,
        adjacent_hq_range=_range(adjacent),
        hq_radius_values=radius_values,
        hq_radius_range=_range(radius_values),
        hq_nearest_enemy_distances=nearest_enemy,
        hq_nearest_enemy_range=_range(nearest_enemy),
        hq_average_enemy_distances=average_enemy,
        hq_average_enemy_range=_range(average_enemy),
        hq_angle_max_deviation_deg=hq_angle_max_deviation_deg,
        satellite_angle_std_dev_deg=_std_dev_deg(satellite_offsets),
        neutral_angle_std_dev_deg=_std_dev_deg(neutral_offsets),
        neutral_access=neutral_access,
        nearest_neutral_spread=_range([a.nearest_two_sum for a in neutral_access]),
        player_cluster_stats=cluster_stats,
        cluster_average_range=_range([c.average_spacing for c in cluster_stats]),
        cluster_min_spacing=min((c.min_spacing for c in cluster_stats), default=0.0),
        cluster_max_spacing=max((c.max_spacing for c in cluster_stats), default=0.0),
        min_foreign_gap_across_players=min(
            (c.min_foreign_gap for c in cluster_stats), default=math.inf
        ),
        player_neutral_access_counts=band_counts,
        neutral_near_count_range=_range([c.near_count for c in band_counts]),
        neutral_mid_count_range=_range([c.mid_count for c in band_counts]),
        neutral_far_count_range=_range([c.far_count for c in band_counts]),
        neutral_near_mid_count_range=_range([c.near_count + c.mid_count for c in band_counts]),
        player_neutral_type_counts=type_counts,
        neutral_type_count_ranges={
            "foundry": _range([t.foundry for t in type_counts]),
            "reactor": _range([t.reactor for t in type_counts]),
        },
        neutral_wedge_count_range=_range(per_wedge),
        neutral_wedge_radial_range=_range(radial_avg),
        player_connectivity_counts=connectivity,
        connectivity_range=_range(list(connectivity.values())),
        player_isolation_scores=isolation,
        isolation_range=_range(list(isolation.values())),
        max_structure_distance_to_center=max_to_center,
        min_structure_distance=min_distance if math.isfinite(min_distance) else 0.0,
        min_structure_clearance=min_clearance if math.isfinite(min_clearance) else 0.0,
    )
    logger.debug(
        "Fairness: spread %.1f, isolation %.1f, center %d, clearance %.1f",
        metrics.nearest_neutral_spread, metrics.isolation_range,
        metrics.center_neutral_count, metrics.min_structure_clearance,
    )
    return metrics
