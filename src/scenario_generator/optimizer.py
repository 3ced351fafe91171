"""Local-search repair passes over the neutral positions.

All passes are bounded by attempt or iteration budgets rather than by
convergence, so they may return with residual imbalance. Each pass copies
its input and returns a new list; nothing is mutated in place.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

from src.scenario_generator.config import (
    DEFAULT_NEUTRAL_CONFIG,
    DEFAULT_OPTIMIZER_CONFIG,
    MAP_HEIGHT,
    MAP_WIDTH,
    TWO_PI,
    NeutralConfig,
    OptimizerConfig,
)
from src.scenario_generator.geometry import (
    angle_of,
    distance,
    farthest_index,
    in_bounds,
    min_angle_offset_to_wedge,
    nearest_index,
    nearest_two_sums,
    polar,
    spread,
    wrap_angle,
)
from src.scenario_generator.models import Anchor, Point
from src.scenario_generator.neutrals import (
    can_place_neutral,
    sample_center_band,
    try_place_neutral,
)
from src.scenario_generator.rng import Rng, choice_index, random_range

logger = logging.getLogger(__name__)


@dataclass
class NeutralStats:
    """Fairness figures the optimizer score is built from."""

    near_range: int
    mid_range: int
    near_mid_range: int
    center_count: int
    angle_stddev_deg: float
    neutral_spread: float


def _without(points: Sequence[Point], idx: int) -> List[Point]:
    return [p for i, p in enumerate(points) if i != idx]


def center_count(neutrals: Sequence, center: Point, radius: float) -> int:
    return sum(1 for n in neutrals if distance(n, center) <= radius)


def compute_neutral_stats(
    neutrals: Sequence[Point],
    hqs: Sequence[Anchor],
    center: Point,
    config: NeutralConfig = DEFAULT_NEUTRAL_CONFIG,
) -> NeutralStats:
    near = [0] * len(hqs)
    mid = [0] * len(hqs)
    angles: List[float] = []

    for neutral in neutrals:
        for idx, hq in enumerate(hqs):
            d = distance(hq, neutral)
            if d <= config.near_radius:
                near[idx] += 1
            elif d <= config.mid_radius:
                mid[idx] += 1
        angles.append(angle_of(neutral, center))

    near_mid = [n + m for n, m in zip(near, mid)]

    angle_stddev_deg = 0.0
    if len(angles) > 1:
        mean = sum(angles) / len(angles)
        variance = sum(wrap_angle(a - mean) ** 2 for a in angles) / len(angles)
        angle_stddev_deg = math.degrees(math.sqrt(variance))

    return NeutralStats(
        near_range=int(spread(near)),
        mid_range=int(spread(mid)),
        near_mid_range=int(spread(near_mid)),
        center_count=center_count(neutrals, center, config.center_occupancy_radius),
        angle_stddev_deg=angle_stddev_deg,
        neutral_spread=spread(nearest_two_sums(hqs, neutrals)),
    )


def score_neutrals(
    neutrals: Sequence[Point],
    hqs: Sequence[Anchor],
    center: Point,
    neutral_config: NeutralConfig = DEFAULT_NEUTRAL_CONFIG,
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
) -> float:
    """Weighted penalty; lower is fairer."""
    stats = compute_neutral_stats(neutrals, hqs, center, neutral_config)
    near_w, mid_w, near_mid_w, spread_w = config.score_weights

    angle_penalty = max(0.0, config.angle_stddev_floor_deg - stats.angle_stddev_deg)
    if stats.center_count < neutral_config.center_count_min:
        center_penalty = (neutral_config.center_count_min - stats.center_count) * config.center_penalty_weight
    elif stats.center_count > neutral_config.center_count_max:
        center_penalty = (stats.center_count - neutral_config.center_count_max) * config.center_penalty_weight
    else:
        center_penalty = 0.0

    return (
        stats.near_range * near_w
        + stats.mid_range * mid_w
        + stats.near_mid_range * near_mid_w
        + stats.neutral_spread * spread_w
        + angle_penalty * config.angle_penalty_weight
        + center_penalty
    )


class FairnessOptimizer:
    """Bundles the pre-normalization repair passes for one scenario."""

    def __init__(
        self,
        rng: Rng,
        center: Point,
        hqs: Sequence[Anchor],
        placed: Sequence[Anchor],
        neutral_config: NeutralConfig = DEFAULT_NEUTRAL_CONFIG,
        config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
    ):
        self.rng = rng
        self.center = center
        self.hqs = list(hqs)
        self.placed = list(placed)
        self.neutral_config = neutral_config
        self.config = config

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _wedge_clear(self, candidate: Point) -> bool:
        return (
            min_angle_offset_to_wedge(candidate, self.hqs, self.center)
            >= self.neutral_config.wedge_offset_min
        )

    def _can_place(self, candidate: Point, neutrals: Sequence[Point]) -> bool:
        return can_place_neutral(
            candidate, self.placed, neutrals, self.neutral_config.min_separation
        )

    def _resample_near(
        self, hq: Anchor, neutrals: Sequence[Point], skip_idx: int, radius_range, attempts: int
    ):
        """Find a wedge-clear spot around *hq* ignoring neutral *skip_idx*."""

        def sampler() -> Point:
            angle = self.rng.next() * TWO_PI
            return polar(hq, random_range(self.rng, *radius_range), angle)

        return try_place_neutral(
            attempts=attempts,
            sampler=sampler,
            placed=self.placed,
            neutrals=_without(neutrals, skip_idx),
            extra_check=self._wedge_clear,
            min_separation=self.neutral_config.min_separation,
        )

    def _center_count(self, neutrals: Sequence[Point]) -> int:
        return center_count(neutrals, self.center, self.neutral_config.center_occupancy_radius)

    # ------------------------------------------------------------------
    # Score-based improvement
    # ------------------------------------------------------------------

    def improve_neutrals(self, neutrals: Sequence[Point]) -> List[Point]:
        """Random replacement hill-climb on :func:`score_neutrals`."""
        best = list(neutrals)
        if not best:
            return best
        best_score = score_neutrals(best, self.hqs, self.center, self.neutral_config, self.config)
        accepted = 0

        for _ in range(self.config.improve_iterations):
            idx = choice_index(self.rng, len(best))
            proposal = self._sample_improvement_candidate()
            if not self._wedge_clear(proposal):
                continue
            remaining = _without(best, idx)
            if not self._can_place(proposal, remaining):
                continue
            candidate = remaining + [proposal]
            score = score_neutrals(candidate, self.hqs, self.center, self.neutral_config, self.config)
            if score < best_score:
                best, best_score = candidate, score
                accepted += 1

        logger.debug("improve_neutrals accepted %d moves (score %.1f)", accepted, best_score)
        return best

    def _sample_improvement_candidate(self) -> Point:
        if self.rng.next() < self.config.center_sample_probability:
            return sample_center_band(self.rng, self.center, self.neutral_config)
        templates = self.neutral_config.templates
        template = templates[choice_index(self.rng, len(templates))]
        radius = random_range(self.rng, *template.radius_range)
        return polar(self.center, radius, self.rng.next() * TWO_PI)

    # ------------------------------------------------------------------
    # Reach balancing
    # ------------------------------------------------------------------

    def balance_neutral_reach(self, neutrals: Sequence[Point]) -> List[Point]:
        """Shrink the spread of per-player nearest-two-neutral sums."""
        cfg = self.config
        result = list(neutrals)
        if not result:
            return result

        for _ in range(cfg.reach_rounds):
            sums = nearest_two_sums(self.hqs, result)
            current_spread = spread(sums)
            if current_spread <= cfg.reach_tolerance:
                break
            target_hq = self.hqs[sums.index(max(sums))]
            replace_idx = max(farthest_index(result, target_hq), 0)
            others = _without(result, replace_idx)

            proposal = None
            for _attempt in range(cfg.reach_proposals):
                angle = self.rng.next() * TWO_PI
                candidate = polar(target_hq, random_range(self.rng, *cfg.reach_radius_range), angle)
                if not self._wedge_clear(candidate):
                    continue
                if not self._can_place(candidate, others):
                    continue
                proposal = candidate
                break
            if proposal is None:
                break

            moved = list(result)
            moved[replace_idx] = proposal
            if spread(nearest_two_sums(self.hqs, moved)) < current_spread:
                result = moved

        return result

    # ------------------------------------------------------------------
    # Nearest-access clamps
    # ------------------------------------------------------------------

    def clamp_nearest_access(self, neutrals: Sequence[Point]) -> List[Point]:
        """Pull a neutral toward any HQ whose nearest-two sum is too large."""
        cfg = self.config
        result = list(neutrals)
        for _ in range(cfg.nearest_access_passes):
            for hq in self.hqs:
                if nearest_two_sums([hq], result)[0] <= cfg.nearest_access_limit:
                    continue
                replace_idx = farthest_index(result, hq)
                if replace_idx == -1:
                    continue
                proposal = self._resample_near(
                    hq, result, replace_idx,
                    cfg.nearest_access_radius_range, cfg.nearest_access_attempts,
                )
                if proposal is not None:
                    result[replace_idx] = proposal
        return result

    def ensure_personal_neutral(self, neutrals: Sequence[Point]) -> List[Point]:
        """Give every HQ at least one reasonably close neutral."""
        cfg = self.config
        result = list(neutrals)
        for hq in self.hqs:
            nearest = nearest_index(result, hq)
            if nearest != -1 and distance(result[nearest], hq) <= cfg.personal_neutral_max:
                continue
            replace_idx = farthest_index(result, hq)
            if replace_idx == -1:
                continue
            proposal = self._resample_near(
                hq, result, replace_idx,
                cfg.personal_neutral_radius_range, cfg.personal_neutral_attempts,
            )
            if proposal is not None:
                result[replace_idx] = proposal
        return result

    def clamp_nearest_sum(self, neutrals: Sequence[Point]) -> List[Point]:
        """Hard clamp each HQ's nearest-two sum toward the target."""
        cfg = self.config
        result = list(neutrals)
        for hq in self.hqs:
            for _ in range(cfg.nearest_sum_tries):
                ordered = sorted(range(len(result)), key=lambda i: distance(result[i], hq))
                if sum(distance(result[i], hq) for i in ordered[:2]) <= cfg.nearest_sum_target:
                    break
                replace_idx = ordered[-1]
                proposal = self._resample_near(
                    hq, result, replace_idx,
                    cfg.nearest_sum_radius_range, cfg.nearest_sum_attempts,
                )
                if proposal is not None:
                    result[replace_idx] = proposal
        return result

    # ------------------------------------------------------------------
    # Center occupancy
    # ------------------------------------------------------------------

    def enforce_center_occupancy(self, neutrals: Sequence[Point]) -> List[Point]:
        """Keep the center count within ``[center_count_min, center_count_max]``."""
        result = self._fill_center(list(neutrals))
        result = self._evacuate_center(result)
        result = self._force_center_out(result)
        result = self._last_resort_evacuation(result)
        logger.debug("Center occupancy after repair: %d", self._center_count(result))
        return result

    def _fill_center(self, result: List[Point]) -> List[Point]:
        ncfg = self.neutral_config
        keepout = ncfg.near_radius + ncfg.hq_keepout_margin
        for _ in range(self.config.center_fill_rounds):
            if self._center_count(result) >= ncfg.center_count_min:
                break
            farthest = farthest_index(result, self.center)
            others = _without(result, farthest)
            replacement = try_place_neutral(
                attempts=ncfg.center_attempts,
                sampler=lambda: sample_center_band(self.rng, self.center, ncfg),
                placed=self.placed,
                neutrals=others,
                extra_check=lambda c: (
                    all(distance(c, hq) >= keepout for hq in self.hqs) and self._wedge_clear(c)
                ),
                min_separation=ncfg.min_separation,
            )
            if replacement is None or farthest == -1:
                break
            result[farthest] = replacement
        return result

    def _evacuate_center(self, result: List[Point]) -> List[Point]:
        cfg = self.config
        ncfg = self.neutral_config
        low = ncfg.center_occupancy_radius + cfg.center_evac_gap
        for _ in range(cfg.center_evac_rounds):
            if self._center_count(result) <= ncfg.center_count_max:
                break
            idx = nearest_index(result, self.center)
            if idx == -1:
                break
            others = _without(result, idx)
            replacement = None
            for _attempt in range(cfg.center_evac_tries):
                radius = random_range(self.rng, low, cfg.center_evac_radius_max)
                candidate = polar(self.center, radius, self.rng.next() * TWO_PI)
                if not self._wedge_clear(candidate):
                    continue
                if not self._can_place(candidate, others):
                    continue
                replacement = candidate
                break
            if replacement is None:
                break
            result[idx] = replacement
        return result

    def _force_center_out(self, result: List[Point]) -> List[Point]:
        cfg = self.config
        ncfg = self.neutral_config
        low = ncfg.center_occupancy_radius + cfg.center_evac_gap
        for _ in range(len(result)):
            if self._center_count(result) <= ncfg.center_count_max:
                break
            idx = next(
                (i for i, n in enumerate(result)
                 if distance(n, self.center) <= ncfg.center_occupancy_radius),
                -1,
            )
            if idx == -1:
                break
            others = _without(result, idx)
            moved = False
            for _attempt in range(cfg.center_force_tries):
                radius = random_range(self.rng, low, cfg.center_force_radius_max)
                candidate = polar(self.center, radius, self.rng.next() * TWO_PI)
                if not self._can_place(candidate, others):
                    continue
                if not in_bounds(candidate, MAP_WIDTH, MAP_HEIGHT):
                    continue
                result[idx] = candidate
                moved = True
                break
            if not moved:
                break
        return result

    def _last_resort_evacuation(self, result: List[Point]) -> List[Point]:
        cfg = self.config
        ncfg = self.neutral_config
        low = ncfg.center_occupancy_radius + cfg.last_resort_gap
        for _ in range(cfg.last_resort_rounds):
            if self._center_count(result) <= ncfg.center_count_max:
                break
            idx = nearest_index(result, self.center)
            if idx == -1:
                break
            others = _without(result, idx)
            moved = False
            for _attempt in range(cfg.last_resort_tries):
                radius = random_range(self.rng, low, cfg.center_force_radius_max)
                candidate = polar(self.center, radius, self.rng.next() * TWO_PI)
                if not self._can_place(candidate, others):
                    continue
                if not in_bounds(candidate, MAP_WIDTH, MAP_HEIGHT):
                    continue
                result[idx] = candidate
                moved = True
                break
            if not moved:
                break
        return result


def improve_neutrals(
    rng: Rng,
    neutrals: Sequence[Point],
    placed: Sequence[Anchor],
    hqs: Sequence[Anchor],
    center: Point,
) -> List[Point]:
    return FairnessOptimizer(rng, center, hqs, placed).improve_neutrals(neutrals)


def balance_neutral_reach(
    rng: Rng,
    neutrals: Sequence[Point],
    placed: Sequence[Anchor],
    hqs: Sequence[Anchor],
    center: Point,
) -> List[Point]:
    return FairnessOptimizer(rng, center, hqs, placed).balance_neutral_reach(neutrals)
