"""Assemble a complete starting scenario from a seed.

``generate_scenario`` is the public entry point. It runs the full
placement pipeline for one seed and, when the result does not have the
expected structure counts, retries on the next seed.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from src.scenario_generator.anchors import place_headquarters
from src.scenario_generator.clusters import ClusterSampler
from src.scenario_generator.config import (
    ACTIVE_PLAYER_INDEX,
    DEFAULT_GENERATOR_CONFIG,
    DRONE_CAPACITY,
    FOUNDRY_GENERATION_RATE,
    MAP_HEIGHT,
    MAP_WIDTH,
    MAX_GENERATION_RETRIES,
    NEUTRAL_COLORS,
    OUTPOST_NAMES_FILE,
    OWNED_DRONE_COUNT,
    PLAYER_COLORS,
    STRUCTURE_SIZES,
    GeneratorConfig,
)
from src.scenario_generator.models import Anchor, Outpost, Player, Point, Scenario
from src.scenario_generator.neutrals import NeutralPlacementPipeline
from src.scenario_generator.normalizer import clamp_to_bounds, normalize_to_margin
from src.scenario_generator.optimizer import FairnessOptimizer
from src.scenario_generator.rebalancer import (
    evacuate_center_overflow,
    fill_center_shortfall,
    rebalance_neutrals,
    repair_final_spread,
)
from src.scenario_generator.rng import DeterministicRng, Rng, normalize_seed, shuffle

logger = logging.getLogger(__name__)

FALLBACK_NAMES = ["Alpha"]


class GenerationFailed(Exception):
    """Raised when every retry produced the wrong structure counts."""

    def __init__(self, start_seed: int, last_seed: int, attempts: int):
        self.start_seed = start_seed
        self.last_seed = last_seed
        self.attempts = attempts
        super().__init__(
            f"No valid scenario for seeds {start_seed}..{last_seed} ({attempts} attempts)"
        )


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def generate_scenario(
    seed: Optional[float] = None,
    max_retries: int = MAX_GENERATION_RETRIES,
    config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG,
) -> Scenario:
    """Generate a fair five-player starting layout.

    Args:
        seed: Any number; normalised to a positive integer. ``None`` draws
            a random seed.
        max_retries: Extra attempts on ``seed + 1``, ``seed + 2``, ...
            after a structure count mismatch.
        config: Component configs for the whole pipeline.

    Returns:
        The scenario, whose ``seed`` records the seed that produced it.

    Raises:
        GenerationFailed: If no attempt produced the expected counts.
    """
    start_seed = normalize_seed(seed)
    names = load_outpost_names()
    expected_owned = config.anchors.player_count * (1 + config.clusters.satellite_count)
    expected_neutral = config.neutrals.count

    current = start_seed
    for attempt in range(max_retries + 1):
        scenario = build_scenario(current, config, names)
        owned, neutral = len(scenario.owned), len(scenario.neutrals)
        if owned == expected_owned and neutral == expected_neutral:
            if attempt:
                logger.info("Seed %d resolved on retry seed %d", start_seed, current)
            return scenario
        logger.warning(
            "Structure count mismatch (%d owned, %d neutral) on seed %d, retrying with seed %d",
            owned, neutral, current, current + 1,
        )
        current += 1

    raise GenerationFailed(start_seed, current - 1, max_retries + 1)


def build_scenario(
    seed: int,
    config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG,
    names: Optional[Sequence[str]] = None,
) -> Scenario:
    """Run the placement pipeline once for *seed* without count checks."""
    rng = DeterministicRng(seed)
    players = make_players(config.anchors.player_count)
    center = Point(MAP_WIDTH / 2, MAP_HEIGHT / 2)

    hqs = place_headquarters(rng, center, config.anchors)
    placed: List[Anchor] = list(hqs)
    sampler = ClusterSampler(config.clusters)
    for hq in hqs:
        placed.extend(sampler.sample(rng, hq, hqs, placed, center))

    neutral_points = _place_neutrals(rng, center, hqs, placed, config)
    types = shuffle(rng, config.neutrals.type_pool)
    neutral_anchors = [
        Anchor(id=f"neutral-{idx}", type=types[idx % len(types)], x=p.x, y=p.y)
        for idx, p in enumerate(neutral_points[: config.neutrals.count])
    ]

    owned, neutrals = _finish_layout(rng, center, placed, neutral_anchors, config)

    labels = _label_stream(rng, names if names is not None else load_outpost_names())
    structures = _emit_structures(players, owned, neutrals, labels)
    logger.debug("Built seed %d: %d structures", seed, len(structures))
    return Scenario(
        players=tuple(players),
        structures=tuple(structures),
        active_player_index=ACTIVE_PLAYER_INDEX,
        seed=seed,
    )


def make_players(count: int = len(PLAYER_COLORS)) -> List[Player]:
    return [
        Player(id=f"p{i + 1}", name=f"Player {i + 1}", color=PLAYER_COLORS[i % len(PLAYER_COLORS)])
        for i in range(count)
    ]


def load_outpost_names(path: Path = OUTPOST_NAMES_FILE) -> List[str]:
    """Read the label pool, one name per line, skipping blanks."""
    if not path.exists():
        logger.warning("Outpost name pool %s not found, using fallback", path)
        return list(FALLBACK_NAMES)
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


# ------------------------------------------------------------------
# Private helpers
# ------------------------------------------------------------------


def _place_neutrals(
    rng: Rng,
    center: Point,
    hqs: Sequence[Anchor],
    placed: Sequence[Anchor],
    config: GeneratorConfig,
) -> List[Point]:
    pipeline = NeutralPlacementPipeline(rng, center, hqs, placed, config.neutrals)
    optimizer = FairnessOptimizer(rng, center, hqs, placed, config.neutrals, config.optimizer)

    neutrals = pipeline.run()
    neutrals = optimizer.improve_neutrals(neutrals)
    neutrals = optimizer.balance_neutral_reach(neutrals)
    neutrals = pipeline.top_up(neutrals)
    neutrals = optimizer.clamp_nearest_access(neutrals)
    neutrals = optimizer.ensure_personal_neutral(neutrals)
    neutrals = optimizer.clamp_nearest_sum(neutrals)
    return optimizer.enforce_center_occupancy(neutrals)


def _finish_layout(
    rng: Rng,
    center: Point,
    placed: Sequence[Anchor],
    neutral_anchors: Sequence[Anchor],
    config: GeneratorConfig,
):
    """Normalize, rebalance and clamp; returns (owned, neutrals) anchors."""
    normalized = normalize_to_margin([*placed, *neutral_anchors], center, config.normalizer)
    owned = normalized[: len(placed)]
    neutrals = normalized[len(placed):]

    hq_points = [Point(a.x, a.y) for a in owned if a.type == "hq"]
    owned_points = [Point(a.x, a.y) for a in owned]
    positions = rebalance_neutrals(
        hq_points,
        [Point(a.x, a.y) for a in neutrals],
        owned_points,
        rng,
        config.rebalance,
        center,
    )

    owned = clamp_to_bounds(owned, config.normalizer)
    positions = clamp_to_bounds(positions, config.normalizer)
    hq_points = [Point(a.x, a.y) for a in owned if a.type == "hq"]
    owned_points = [Point(a.x, a.y) for a in owned]

    positions = evacuate_center_overflow(positions, owned_points, rng, config.rebalance, center)
    positions = repair_final_spread(hq_points, positions, owned_points, config.rebalance, center)
    positions = clamp_to_bounds(positions, config.normalizer)
    positions = fill_center_shortfall(positions, owned_points, rng, config.rebalance, center)

    neutrals = [replace(a, x=p.x, y=p.y) for a, p in zip(neutrals, positions)]
    return owned, neutrals


def _label_stream(rng: Rng, names: Sequence[str]):
    pool = shuffle(rng, names or FALLBACK_NAMES)
    idx = 0
    while True:
        yield pool[idx % len(pool)].upper()
        idx += 1


def _emit_structures(
    players: Sequence[Player],
    owned: Sequence[Anchor],
    neutrals: Sequence[Anchor],
    labels,
) -> List[Outpost]:
    colors = {p.id: p.color for p in players}
    structures: List[Outpost] = []

    for a in owned:
        structures.append(
            Outpost(
                id=a.id,
                type=a.type,
                position=Point(a.x, a.y),
                label=next(labels),
                color=colors[a.owner_id],
                size=STRUCTURE_SIZES[a.type],
                drone_count=OWNED_DRONE_COUNT,
                drone_capacity=DRONE_CAPACITY[a.type],
                owner_id=a.owner_id,
                drone_generation_rate=FOUNDRY_GENERATION_RATE if a.type == "foundry" else None,
            )
        )

    for a in neutrals:
        structures.append(
            Outpost(
                id=a.id,
                type=a.type,
                position=Point(a.x, a.y),
                label=next(labels),
                color=NEUTRAL_COLORS[len(structures) % len(NEUTRAL_COLORS)],
                size=STRUCTURE_SIZES[a.type],
                drone_count=0,
                drone_capacity=DRONE_CAPACITY[a.type],
                drone_generation_rate=FOUNDRY_GENERATION_RATE if a.type == "foundry" else None,
            )
        )

    return structures
