"""Post-normalization neutral rebalancing and finishing passes.

``rebalance_neutrals`` works on the scaled layout and trades off two
fairness figures:

* neutral spread: max minus min over players of the summed distance to
  their two nearest neutrals;
* isolation range: max minus min over players of (average distance to the
  three nearest neutrals + average distance to the two nearest enemy HQs).

The finishing passes then enforce the center cap, repair a residual
spread with a deterministic grid search and top the center back up.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from src.scenario_generator.config import (
    DEFAULT_REBALANCE_CONFIG,
    MAP_HEIGHT,
    MAP_WIDTH,
    TWO_PI,
    RebalanceConfig,
)
from src.scenario_generator.geometry import (
    angle_of,
    distance,
    farthest_index,
    in_bounds,
    nearest_index,
    nearest_two_sums,
    polar,
    spread,
)
from src.scenario_generator.models import Point
from src.scenario_generator.rng import Rng, random_range

logger = logging.getLogger(__name__)

MAP_CENTER = Point(MAP_WIDTH / 2, MAP_HEIGHT / 2)
MISSING_DISTANCE = 99999.0


# ------------------------------------------------------------------
# Metrics
# ------------------------------------------------------------------


def _nearest(origin, points: Sequence, count: int) -> List[float]:
    """The *count* smallest distances, padded by repeating the last one."""
    dists = sorted(distance(origin, p) for p in points)[:count]
    if not dists:
        dists = [MISSING_DISTANCE]
    while len(dists) < count:
        dists.append(dists[-1])
    return dists


def nearest_two_sums_padded(hqs: Sequence, neutrals: Sequence) -> List[float]:
    return [sum(_nearest(hq, neutrals, 2)) for hq in hqs]


def isolation_scores(hqs: Sequence, neutrals: Sequence) -> List[float]:
    scores = []
    for i, hq in enumerate(hqs):
        enemies = [other for j, other in enumerate(hqs) if j != i]
        enemy_avg = sum(_nearest(hq, enemies, 2)) / 2
        neutral_avg = sum(_nearest(hq, neutrals, 3)) / 3
        scores.append(neutral_avg + enemy_avg)
    return scores


def _worst_index(values: Sequence[float]) -> int:
    worst = 0
    for i in range(1, len(values)):
        if values[i] > values[worst]:
            worst = i
    return worst


def _separated(candidate, points: Sequence, min_separation: float) -> bool:
    return all(distance(candidate, p) >= min_separation for p in points)


@dataclass
class _Move:
    candidate: Point
    spread_sums: List[float]
    iso_scores: List[float]
    spread: float
    iso_range: float
    penalty: float


# ------------------------------------------------------------------
# Rebalancer
# ------------------------------------------------------------------


def rebalance_neutrals(
    hqs: Sequence[Point],
    neutrals: Sequence[Point],
    owned: Sequence[Point],
    rng: Rng,
    config: RebalanceConfig = DEFAULT_REBALANCE_CONFIG,
    center: Point = MAP_CENTER,
) -> List[Point]:
    """Move neutrals until both spread and isolation range are within limits.

    Args:
        hqs: HQ positions in player order.
        neutrals: Neutral positions; the returned list keeps this order.
        owned: Every player-owned structure position.
        rng: Scenario random stream.
        config: Limits and budgets.
        center: Map center.

    Returns:
        A new list of neutral positions. Empty *hqs* or *neutrals* returns
        an unchanged copy.
    """
    positions = list(neutrals)
    if not hqs or not positions:
        return positions

    cfg = config
    inner = max(cfg.min_neutral_separation + 40, 200)
    outer = inner + 320

    def is_center(p) -> bool:
        return distance(p, center) <= cfg.center_radius

    def penalty_of(spread_value: float, iso_value: float) -> float:
        return (
            max(0.0, spread_value - cfg.neutral_spread_limit)
            + max(0.0, iso_value - cfg.isolation_range_limit)
        )

    spread_sums = nearest_two_sums_padded(hqs, positions)
    iso_scores = isolation_scores(hqs, positions)
    cur_spread, cur_iso = spread(spread_sums), spread(iso_scores)
    penalty = penalty_of(cur_spread, cur_iso)
    center_count = sum(1 for p in positions if is_center(p))
    applied = 0

    if cur_spread <= cfg.neutral_spread_limit and cur_iso <= cfg.isolation_range_limit:
        return positions

    for iteration in range(cfg.max_iterations):
        target_spread = (cur_spread - cfg.neutral_spread_limit) >= (cur_iso - cfg.isolation_range_limit)
        target_hq = hqs[_worst_index(spread_sums if target_spread else iso_scores)]

        allow_center = (
            cur_spread - cfg.neutral_spread_limit > cfg.center_move_overshoot
            or iteration > cfg.max_iterations / 2
        )
        movable = [i for i, p in enumerate(positions) if allow_center or not is_center(p)]
        if not movable:
            movable = list(range(len(positions)))

        move_idx, best_dist = movable[0], -math.inf
        for i in movable:
            d = distance(target_hq, positions[i])
            if d > best_dist:
                move_idx, best_dist = i, d
        old_pos = positions[move_idx]
        others = positions[:move_idx] + positions[move_idx + 1:]
        best: Optional[_Move] = None

        def consider(candidate: Point) -> None:
            nonlocal best
            if distance(candidate, center) > cfg.max_distance_to_center:
                return
            if not in_bounds(candidate, MAP_WIDTH, MAP_HEIGHT):
                return
            if not _separated(candidate, others, cfg.min_neutral_separation):
                return
            if not _separated(candidate, owned, cfg.min_neutral_separation):
                return
            next_center = center_count - is_center(old_pos) + is_center(candidate)
            if next_center > cfg.max_center_count:
                return

            trial = others[:move_idx] + [candidate] + others[move_idx:]
            trial_sums = nearest_two_sums_padded(hqs, trial)
            trial_iso = isolation_scores(hqs, trial)
            trial_spread, trial_range = spread(trial_sums), spread(trial_iso)
            move = _Move(
                candidate, trial_sums, trial_iso, trial_spread, trial_range,
                penalty_of(trial_spread, trial_range),
            )

            if target_spread:
                improved = move.spread < cur_spread
                other_ok = move.iso_range <= cfg.isolation_range_limit
            else:
                improved = move.iso_range < cur_iso
                other_ok = move.spread <= cfg.neutral_spread_limit
            if not (move.penalty < penalty or (move.penalty == penalty and improved and other_ok)):
                return

            if best is None or move.penalty < best.penalty or (
                move.penalty == best.penalty
                and (move.spread < best.spread if target_spread else move.iso_range < best.iso_range)
            ):
                best = move

        toward_center = angle_of(target_hq, center) + math.pi
        for _ in range(cfg.samples_per_iteration):
            angle = toward_center + random_range(rng, -math.pi / 3, math.pi / 3)
            consider(polar(target_hq, random_range(rng, inner, outer), angle))
            if best is not None and best.penalty == 0:
                break

        if best is None:
            for offset in cfg.fallback_angles:
                for step in cfg.fallback_radius_steps:
                    consider(polar(target_hq, inner + step, toward_center + offset))

        if best is not None:
            positions[move_idx] = best.candidate
            spread_sums, iso_scores = best.spread_sums, best.iso_scores
            cur_spread, cur_iso, penalty = best.spread, best.iso_range, best.penalty
            center_count = center_count - is_center(old_pos) + is_center(best.candidate)
            applied += 1

        if cur_spread <= cfg.neutral_spread_limit and cur_iso <= cfg.isolation_range_limit:
            break

    logger.debug(
        "Rebalance moves %d spread %.1f iso %.1f", applied, cur_spread, cur_iso
    )
    return positions


# ------------------------------------------------------------------
# Finishing passes
# ------------------------------------------------------------------


def evacuate_center_overflow(
    neutrals: Sequence[Point],
    owned: Sequence[Point],
    rng: Rng,
    config: RebalanceConfig = DEFAULT_REBALANCE_CONFIG,
    center: Point = MAP_CENTER,
) -> List[Point]:
    """Push center neutrals outward until at most ``max_center_count`` remain."""
    cfg = config
    result = list(neutrals)

    def over_cap() -> bool:
        return sum(1 for n in result if distance(n, center) <= cfg.center_radius) > cfg.max_center_count

    for _ in range(cfg.evac_rounds):
        if not over_cap():
            break
        idx = nearest_index(result, center)
        if idx == -1:
            break
        others = list(owned) + result[:idx] + result[idx + 1:]
        moved = False
        for _attempt in range(cfg.evac_tries):
            radius = random_range(rng, cfg.center_radius + cfg.evac_gap, cfg.evac_radius_max)
            candidate = polar(center, radius, rng.next() * TWO_PI)
            if (
                _separated(candidate, others, cfg.evac_separation)
                and distance(candidate, center) <= cfg.max_distance_to_center
                and in_bounds(candidate, MAP_WIDTH, MAP_HEIGHT)
            ):
                result[idx] = candidate
                moved = True
                break
        if not moved:
            break
    return result


def _clear_for_repair(
    candidate: Point,
    move_idx: int,
    neutrals: Sequence[Point],
    owned: Sequence[Point],
    min_separation: float,
) -> bool:
    if not in_bounds(candidate, MAP_WIDTH, MAP_HEIGHT):
        return False
    if not _separated(candidate, owned, min_separation):
        return False
    return all(
        distance(n, candidate) >= min_separation
        for i, n in enumerate(neutrals)
        if i != move_idx
    )


def repair_final_spread(
    hqs: Sequence[Point],
    neutrals: Sequence[Point],
    owned: Sequence[Point],
    config: RebalanceConfig = DEFAULT_REBALANCE_CONFIG,
    center: Point = MAP_CENTER,
) -> List[Point]:
    """Grid-search single-neutral moves that shrink a spread above the limit.

    Deterministic: every neutral is tried at each angle offset and radius
    around the worst HQ, and the best strictly improving move wins.
    """
    cfg = config
    result = list(neutrals)
    if not hqs or not result:
        return result

    sums = nearest_two_sums(hqs, result)
    for _ in range(cfg.final_spread_rounds):
        current = spread(sums)
        if current <= cfg.final_spread_limit:
            break
        target_hq = hqs[sums.index(max(sums))]
        base_angle = angle_of(center, target_hq)

        best: Optional[Tuple[float, int, Point, List[float]]] = None
        for move_idx in range(len(result)):
            for offset in cfg.fallback_angles:
                for radius in cfg.final_spread_radii:
                    candidate = polar(target_hq, radius, base_angle + offset)
                    if not _clear_for_repair(candidate, move_idx, result, owned, cfg.repair_separation):
                        continue
                    trial = list(result)
                    trial[move_idx] = candidate
                    trial_sums = nearest_two_sums(hqs, trial)
                    trial_spread = spread(trial_sums)
                    if best is None or trial_spread < best[0]:
                        best = (trial_spread, move_idx, candidate, trial_sums)

        if best is None or best[0] >= current:
            break
        _, move_idx, candidate, sums = best
        result[move_idx] = candidate

    logger.debug("Final spread after repair: %.1f", spread(sums))
    return result


def fill_center_shortfall(
    neutrals: Sequence[Point],
    owned: Sequence[Point],
    rng: Rng,
    config: RebalanceConfig = DEFAULT_REBALANCE_CONFIG,
    center: Point = MAP_CENTER,
) -> List[Point]:
    """Pull the farthest neutrals into the center band until the minimum is met."""
    cfg = config
    result = list(neutrals)
    for _ in range(cfg.center_fill_rounds):
        if sum(1 for n in result if distance(n, center) <= cfg.center_radius) >= cfg.center_min_count:
            break
        idx = farthest_index(result, center)
        if idx == -1:
            break
        moved = False
        for _attempt in range(cfg.center_fill_tries):
            radius = random_range(rng, *cfg.center_fill_radius_range)
            candidate = polar(center, radius, rng.next() * TWO_PI)
            if _clear_for_repair(candidate, idx, result, owned, cfg.repair_separation):
                result[idx] = candidate
                moved = True
                break
        if not moved:
            break
    return result
