"""Headquarters placement on a rotationally symmetric ring."""

import logging
from typing import List

from src.scenario_generator.config import DEFAULT_ANCHOR_CONFIG, TWO_PI, AnchorConfig
from src.scenario_generator.geometry import polar
from src.scenario_generator.models import Anchor, Point
from src.scenario_generator.rng import Rng

logger = logging.getLogger(__name__)


def place_headquarters(
    rng: Rng,
    center: Point,
    config: AnchorConfig = DEFAULT_ANCHOR_CONFIG,
) -> List[Anchor]:
    """Place one HQ per player on a ring around *center*.

    The ring radius is the circumradius of a regular polygon whose side is
    the minimum HQ-to-HQ distance, so neighbouring HQs sit exactly
    ``config.min_hq_distance`` apart. Only the ring rotation is random.
    """
    ring_radius = config.ring_radius
    rotation_offset = rng.next() * TWO_PI

    hqs: List[Anchor] = []
    for i in range(config.player_count):
        theta = rotation_offset + i * TWO_PI / config.player_count
        p = polar(center, ring_radius, theta)
        owner = f"p{i + 1}"
        hqs.append(Anchor(id=f"{owner}-hq", type="hq", x=p.x, y=p.y, owner_id=owner))

    logger.debug(
        "Placed %d HQs on ring r=%.1f (rotation %.3f rad)",
        len(hqs), ring_radius, rotation_offset,
    )
    return hqs
