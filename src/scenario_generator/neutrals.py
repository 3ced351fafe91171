"""Staged placement of unowned outposts.

Stages run in order until the neutral quota is met:

1. a small center cluster,
2. one backfield neutral behind each of a shuffled subset of HQs,
3. mid-ring fill rotating through random bearings, falling back to one of
   the outer templates,
4. a relaxed top-up (run later by the generator, after the first
   optimizer passes).

Every stage rejects candidates closer than the global minimum separation
to any structure already placed.
"""

import logging
from typing import Callable, List, Optional, Sequence

from src.scenario_generator.config import (
    DEFAULT_NEUTRAL_CONFIG,
    MAP_HEIGHT,
    MAP_WIDTH,
    TWO_PI,
    NeutralConfig,
    NeutralTemplate,
)
from src.scenario_generator.geometry import (
    angle_of,
    distance,
    in_bounds,
    min_angle_offset_to_wedge,
    polar,
    project,
)
from src.scenario_generator.models import Anchor, Point
from src.scenario_generator.rng import Rng, choice_index, random_range, shuffle

logger = logging.getLogger(__name__)

Sampler = Callable[[], Point]
Check = Callable[[Point], bool]


# ------------------------------------------------------------------
# Shared primitives
# ------------------------------------------------------------------


def can_place_neutral(
    candidate: Point,
    placed: Sequence,
    neutrals: Sequence,
    min_separation: float = DEFAULT_NEUTRAL_CONFIG.min_separation,
) -> bool:
    """True when *candidate* keeps ``min_separation`` from everything."""
    if any(distance(s, candidate) < min_separation for s in placed):
        return False
    return all(distance(n, candidate) >= min_separation for n in neutrals)


def try_place_neutral(
    attempts: int,
    sampler: Sampler,
    placed: Sequence,
    neutrals: Sequence,
    extra_check: Optional[Check] = None,
    min_separation: float = DEFAULT_NEUTRAL_CONFIG.min_separation,
) -> Optional[Point]:
    """Draw up to *attempts* candidates and return the first that fits.

    Returns ``None`` once the budget is exhausted; callers fall back to a
    looser sampler or leave the slot empty.
    """
    for _ in range(attempts):
        candidate = sampler()
        if extra_check is not None and not extra_check(candidate):
            continue
        if can_place_neutral(candidate, placed, neutrals, min_separation):
            return candidate
    return None


def clear_of_hqs(candidate: Point, hqs: Sequence[Anchor], min_distance: float) -> bool:
    return all(distance(candidate, hq) >= min_distance for hq in hqs)


def sample_template(rng: Rng, center: Point, template: NeutralTemplate) -> Point:
    radius = random_range(rng, *template.radius_range)
    angle = rng.next() * TWO_PI + (rng.next() - 0.5) * template.angle_jitter + template.angle_bias
    return polar(center, radius, angle)


def sample_center_band(rng: Rng, center: Point, config: NeutralConfig) -> Point:
    radius = random_range(rng, *config.center_radius_range)
    return polar(center, radius, rng.next() * TWO_PI)


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class NeutralPlacementPipeline:
    """Fills neutral slots around an already placed set of HQs and satellites."""

    def __init__(
        self,
        rng: Rng,
        center: Point,
        hqs: Sequence[Anchor],
        placed: Sequence[Anchor],
        config: NeutralConfig = DEFAULT_NEUTRAL_CONFIG,
    ):
        self.rng = rng
        self.center = center
        self.hqs = list(hqs)
        self.placed = list(placed)
        self.config = config

    def run(self) -> List[Point]:
        """Run stages 1-3 and return the neutral positions found."""
        cfg = self.config
        neutrals: List[Point] = []

        for _ in range(cfg.center_count_min):
            if len(neutrals) >= cfg.count:
                break
            spot = self.place_center(neutrals)
            if spot is not None:
                neutrals.append(spot)
        logger.debug("Center stage placed %d neutrals", len(neutrals))

        # Only a subset of players get a backfield neutral, which breaks the
        # pentagon symmetry.
        for hq in shuffle(self.rng, self.hqs)[: cfg.backfield_count]:
            if len(neutrals) >= cfg.count:
                break
            spot = self.place_backfield(hq, neutrals)
            if spot is not None:
                neutrals.append(spot)
        logger.debug("Backfield stage brought total to %d", len(neutrals))

        while len(neutrals) < cfg.count:
            spot = self.place_mid(neutrals)
            if spot is None:
                spot = self.place_outer(neutrals)
            if spot is None:
                logger.debug("Mid/outer fill exhausted at %d neutrals", len(neutrals))
                break
            neutrals.append(spot)

        return neutrals

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def wedge_clear(self, candidate: Point, minimum: Optional[float] = None) -> bool:
        limit = self.config.wedge_offset_min if minimum is None else minimum
        return min_angle_offset_to_wedge(candidate, self.hqs, self.center) >= limit

    def place_center(self, neutrals: Sequence[Point]) -> Optional[Point]:
        cfg = self.config
        keepout = cfg.near_radius + cfg.hq_keepout_margin
        return try_place_neutral(
            attempts=cfg.center_attempts,
            sampler=lambda: sample_center_band(self.rng, self.center, cfg),
            placed=self.placed,
            neutrals=neutrals,
            extra_check=lambda c: clear_of_hqs(c, self.hqs, keepout) and self.wedge_clear(c),
            min_separation=cfg.min_separation,
        )

    def place_backfield(self, hq: Anchor, neutrals: Sequence[Point]) -> Optional[Point]:
        cfg = self.config
        back_angle = angle_of(hq, self.center) + (self.rng.next() - 0.5) * cfg.backfield_angle_jitter
        # The anchor HQ is counted twice, which tightens the wedge guard near it.
        guard_hqs = [hq, *self.hqs]

        def sampler() -> Point:
            radial = random_range(self.rng, *cfg.backfield_radius_range)
            tangential = (self.rng.next() - 0.5) * cfg.backfield_tangential_jitter
            return project(hq, back_angle, radial, tangential)

        return try_place_neutral(
            attempts=cfg.backfield_attempts,
            sampler=sampler,
            placed=self.placed,
            neutrals=neutrals,
            extra_check=lambda c: (
                min_angle_offset_to_wedge(c, guard_hqs, self.center) >= cfg.wedge_offset_min
            ),
            min_separation=cfg.min_separation,
        )

    def place_mid(self, neutrals: Sequence[Point]) -> Optional[Point]:
        cfg = self.config
        target_angle = self.rng.next() * TWO_PI
        keepout = cfg.near_radius - cfg.mid_hq_slack
        return try_place_neutral(
            attempts=cfg.mid_attempts,
            sampler=lambda: polar(
                self.center, random_range(self.rng, *cfg.mid_radius_range), target_angle
            ),
            placed=self.placed,
            neutrals=neutrals,
            extra_check=lambda c: clear_of_hqs(c, self.hqs, keepout),
            min_separation=cfg.min_separation,
        )

    def place_outer(self, neutrals: Sequence[Point]) -> Optional[Point]:
        cfg = self.config
        template = cfg.templates[choice_index(self.rng, len(cfg.templates))]
        keepout = cfg.near_radius + cfg.hq_keepout_margin
        return try_place_neutral(
            attempts=cfg.outer_attempts,
            sampler=lambda: sample_template(self.rng, self.center, template),
            placed=self.placed,
            neutrals=neutrals,
            extra_check=lambda c: clear_of_hqs(c, self.hqs, keepout) and self.wedge_clear(c),
            min_separation=cfg.min_separation,
        )

    def top_up(self, neutrals: Sequence[Point]) -> List[Point]:
        """Relaxed fill for any slots still empty after the optimizer passes."""
        cfg = self.config
        result = list(neutrals)
        if len(result) >= cfg.count:
            return result

        relaxed_guard = cfg.wedge_offset_min * cfg.top_up_wedge_factor
        for _ in range(cfg.top_up_attempts):
            if len(result) >= cfg.count:
                break
            angle = self.rng.next() * TWO_PI
            radius = random_range(self.rng, *cfg.top_up_radius_range)
            candidate = polar(self.center, radius, angle)
            if not in_bounds(candidate, MAP_WIDTH, MAP_HEIGHT):
                continue
            if not self.wedge_clear(candidate, relaxed_guard):
                continue
            if not can_place_neutral(candidate, self.placed, result, cfg.min_separation):
                continue
            result.append(candidate)

        logger.debug("Relaxed top-up finished with %d neutrals", len(result))
        return result
