"""Satellite cluster sampling around each HQ.

Each player gets two foundries and a reactor inside a wedge facing the
map center. Candidates are rejection-sampled against spacing and
cross-player fairness constraints; a player whose cluster cannot be
completed gets none, and the scenario-level count check triggers a
regeneration.
"""

import logging
import math
from typing import List, Sequence

from src.scenario_generator.config import DEFAULT_CLUSTER_CONFIG, ClusterConfig
from src.scenario_generator.geometry import angle_of, distance, polar, wrap_angle
from src.scenario_generator.models import Anchor, Point
from src.scenario_generator.rng import Rng

logger = logging.getLogger(__name__)


class ClusterSampler:
    """Rejection sampler for one player's satellites."""

    def __init__(self, config: ClusterConfig = DEFAULT_CLUSTER_CONFIG):
        self.config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sample(
        self,
        rng: Rng,
        anchor: Anchor,
        hqs: Sequence[Anchor],
        placed: Sequence[Anchor],
        center: Point,
    ) -> List[Anchor]:
        """Sample satellites for the player owning *anchor*.

        Args:
            rng: Scenario random stream.
            anchor: The player's HQ.
            hqs: Every HQ, including *anchor*.
            placed: Structures already on the map (HQs and earlier
                players' satellites).
            center: Map center.

        Returns:
            The full satellite list in ``satellite_specs`` order, or an
            empty list when any slot exhausted its attempt budget.
        """
        cfg = self.config
        enemy_hqs = [hq for hq in hqs if hq.owner_id != anchor.owner_id]
        base_dir = angle_of(center, anchor)

        spots: List[Point] = []
        for _ in range(cfg.satellite_count):
            for _attempt in range(cfg.attempts_per_satellite):
                offset = (rng.next() - 0.5) * 2 * cfg.angle_spread
                radius = cfg.distance_min + (cfg.distance_max - cfg.distance_min) * (
                    0.35 + 0.65 * rng.next()
                )
                candidate = polar(anchor, radius, base_dir + offset)
                if self._accepts(candidate, radius, anchor, enemy_hqs, placed, spots):
                    spots.append(candidate)
                    break

        if len(spots) < cfg.satellite_count:
            logger.debug(
                "Dropping cluster for %s: only %d/%d satellites fit",
                anchor.owner_id, len(spots), cfg.satellite_count,
            )
            return []

        return [
            Anchor(
                id=f"{anchor.owner_id}-{suffix}",
                type=structure_type,
                x=spot.x,
                y=spot.y,
                owner_id=anchor.owner_id,
            )
            for spot, (suffix, structure_type) in zip(spots, cfg.satellite_specs)
        ]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _accepts(
        self,
        candidate: Point,
        own_distance: float,
        anchor: Anchor,
        enemy_hqs: Sequence[Anchor],
        placed: Sequence[Anchor],
        siblings: Sequence[Point],
    ) -> bool:
        cfg = self.config
        if own_distance < cfg.distance_min or own_distance > cfg.distance_max:
            return False
        if any(distance(s, candidate) < cfg.min_separation for s in siblings):
            return False

        bearing = angle_of(candidate, anchor)
        if any(
            abs(wrap_angle(angle_of(s, anchor) - bearing)) < cfg.min_angle_separation
            for s in siblings
        ):
            return False

        enemy_distances = [distance(hq, candidate) for hq in enemy_hqs]
        nearest_enemy = min(enemy_distances, default=math.inf)
        if nearest_enemy - own_distance < cfg.foreign_margin:
            return False
        if any(d < cfg.sonar_buffer for d in enemy_distances):
            return False

        return not any(
            s.owner_id != anchor.owner_id and distance(s, candidate) < cfg.min_separation
            for s in placed
        )


def sample_satellites(
    rng: Rng,
    anchor: Anchor,
    hqs: Sequence[Anchor],
    placed: Sequence[Anchor],
    center: Point,
    config: ClusterConfig = DEFAULT_CLUSTER_CONFIG,
) -> List[Anchor]:
    """Functional wrapper around :meth:`ClusterSampler.sample`."""
    return ClusterSampler(config).sample(rng, anchor, hqs, placed, center)
