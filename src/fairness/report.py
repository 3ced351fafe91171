"""Multi-seed fairness sampling, worst-case aggregation and narrative.

Typical use::

    reports, summary = run_fairness_samples(200)
    narrative = build_fairness_narrative(summary)
    for line in narrative.lines:
        print(line)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from src.fairness.config import (
    DEFAULT_FAIRNESS_THRESHOLDS,
    DEFAULT_START_SEED,
    FairnessThresholds,
)
from src.fairness.metrics import ScenarioFairnessMetrics, evaluate_fairness
from src.scenario_generator.models import Scenario
from src.scenario_generator.scenario import generate_scenario

logger = logging.getLogger(__name__)


@dataclass
class ScenarioMetricsReport:
    seed: int
    scenario: Scenario
    metrics: ScenarioFairnessMetrics


@dataclass
class FairnessStat:
    """Worst value seen for one statistic and the seed that produced it."""

    value: float
    seed: Optional[int]


@dataclass
class FairnessSummary:
    seeds_tested: int
    average_hq_distance: float
    stats: Dict[str, FairnessStat] = field(default_factory=dict)


@dataclass
class FairnessCheckResult:
    id: str
    label: str
    direction: str
    passed: bool
    value: float
    limit: float
    seed: Optional[int]
    pass_text: str
    fail_text: str


@dataclass
class FairnessNarrative:
    checks: List[FairnessCheckResult]
    lines: List[str]


# ------------------------------------------------------------------
# Tracked statistics
# ------------------------------------------------------------------

# name -> (reducer, extractor). "max" tracks the largest (worst) value,
# "min" the smallest.
STAT_REDUCERS: Dict[str, Tuple[str, Callable[[ScenarioFairnessMetrics], float]]] = {
    "adjacent_range": ("max", lambda m: m.adjacent_hq_range),
    "hq_radius_range": ("max", lambda m: m.hq_radius_range),
    "hq_nearest_enemy_range": ("max", lambda m: m.hq_nearest_enemy_range),
    "hq_average_enemy_range": ("max", lambda m: m.hq_average_enemy_range),
    "hq_angle_max_deviation_deg": ("max", lambda m: m.hq_angle_max_deviation_deg),
    "satellite_angle_std_dev_deg": ("min", lambda m: m.satellite_angle_std_dev_deg),
    "neutral_angle_std_dev_deg": ("min", lambda m: m.neutral_angle_std_dev_deg),
    "center_neutral_count": ("min", lambda m: m.center_neutral_count),
    "center_neutral_count_max": ("max", lambda m: m.center_neutral_count),
    "neutral_spread": ("max", lambda m: m.nearest_neutral_spread),
    "cluster_average_range": ("max", lambda m: m.cluster_average_range),
    "cluster_min_spacing": ("min", lambda m: m.cluster_min_spacing),
    "cluster_max_spacing": ("max", lambda m: m.cluster_max_spacing),
    "min_foreign_gap": ("min", lambda m: m.min_foreign_gap_across_players),
    "neutral_near_count_range": ("max", lambda m: m.neutral_near_count_range),
    "neutral_mid_count_range": ("max", lambda m: m.neutral_mid_count_range),
    "neutral_far_count_range": ("max", lambda m: m.neutral_far_count_range),
    "neutral_near_mid_count_range": ("max", lambda m: m.neutral_near_mid_count_range),
    "neutral_foundry_range": ("max", lambda m: m.neutral_type_count_ranges["foundry"]),
    "neutral_reactor_range": ("max", lambda m: m.neutral_type_count_ranges["reactor"]),
    "connectivity_range": ("max", lambda m: m.connectivity_range),
    "isolation_range": ("max", lambda m: m.isolation_range),
    "clearance": ("min", lambda m: m.min_structure_clearance),
    "max_distance_to_center": ("max", lambda m: m.max_structure_distance_to_center),
    "min_structure_distance": ("min", lambda m: m.min_structure_distance),
    # Spawn-time vision, reported by the raw metric table
    "visible_neutral_min": ("min", lambda m: m.visible_neutral_min),
    "visible_neutral_range": ("max", lambda m: m.visible_neutral_range),
    "visible_enemy_max": ("max", lambda m: m.visible_enemy_max),
}


def reports_to_frame(reports: Sequence[ScenarioMetricsReport]) -> pd.DataFrame:
    """One row per report: a ``seed`` column plus one column per statistic."""
    rows = [
        {"seed": r.seed, **{key: extract(r.metrics) for key, (_, extract) in STAT_REDUCERS.items()}}
        for r in reports
    ]
    return pd.DataFrame(rows, columns=["seed", *STAT_REDUCERS])


def summarize_reports(reports: Sequence[ScenarioMetricsReport]) -> FairnessSummary:
    """Reduce every statistic to its worst finite value across *reports*.

    Ties keep the earliest report. A statistic with no finite samples is
    reported as ``0`` with no seed.
    """
    frame = reports_to_frame(reports)
    stats: Dict[str, FairnessStat] = {}

    for key, (reducer, _) in STAT_REDUCERS.items():
        column = pd.to_numeric(frame[key], errors="coerce").astype(float)
        finite = column.replace([math.inf, -math.inf], float("nan")).dropna()
        if finite.empty:
            stats[key] = FairnessStat(value=0.0, seed=None)
            continue
        row = finite.idxmax() if reducer == "max" else finite.idxmin()
        stats[key] = FairnessStat(value=float(finite[row]), seed=int(frame.at[row, "seed"]))

    hq_distances = [d for r in reports for d in r.metrics.hq_distances]
    average_hq_distance = sum(hq_distances) / len(hq_distances) if hq_distances else 0.0

    return FairnessSummary(
        seeds_tested=len(reports),
        average_hq_distance=average_hq_distance,
        stats=stats,
    )


# ------------------------------------------------------------------
# Checks
# ------------------------------------------------------------------


def seed_label(seed: Optional[int]) -> str:
    return f"seed #{seed}" if seed is not None else "unknown seed"


def format_units(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}u" if math.isfinite(value) else "—"


def format_degrees(value: float, digits: int = 2) -> str:
    return f"{value:.{digits}f}°" if math.isfinite(value) else "—"


@dataclass(frozen=True)
class CheckDefinition:
    id: str
    label: str
    stat_key: str
    threshold_key: str
    direction: str  # "max": value must not exceed limit; "min": must reach it
    pass_text: Callable[[float, float], str]
    fail_text: Callable[[float, float, Optional[int]], str]


CHECK_DEFINITIONS: Tuple[CheckDefinition, ...] = (
    CheckDefinition(
        "adjacent", "HQ spacing", "adjacent_range", "adjacent_range", "max",
        lambda v, lim: f"Neighboring HQ distances only varied by {format_units(v)}.",
        lambda v, lim, s: f"Neighbor HQ gap hit {format_units(v)} on {seed_label(s)} (limit {format_units(lim)}).",
    ),
    CheckDefinition(
        "center_occupancy", "Center occupancy", "center_neutral_count", "min_center_neutral_count", "min",
        lambda v, lim: f"Center populated with {v:.0f} neutrals (min {lim}).",
        lambda v, lim, s: f"Center was sparse on {seed_label(s)} ({v:.0f} < {lim}).",
    ),
    CheckDefinition(
        "center_cap", "Center not overcrowded", "center_neutral_count_max", "max_center_neutral_count", "max",
        lambda v, lim: f"Center stayed breathable ({v:.0f} ≤ {lim}).",
        lambda v, lim, s: f"Center overfilled on {seed_label(s)} ({v:.0f} > {lim}).",
    ),
    CheckDefinition(
        "anti_hex_satellite", "Organic satellite angles", "satellite_angle_std_dev_deg",
        "satellite_angle_std_dev_deg_min", "min",
        lambda v, lim: f"Satellite angles varied (stddev {format_degrees(v)} ≥ {format_degrees(lim)}).",
        lambda v, lim, s: (
            f"Satellite angles collapsed toward a rigid pattern "
            f"({format_degrees(v)} < {format_degrees(lim)} on {seed_label(s)})."
        ),
    ),
    CheckDefinition(
        "anti_hex_neutral", "Organic neutral angles", "neutral_angle_std_dev_deg",
        "neutral_angle_std_dev_deg_min", "min",
        lambda v, lim: f"Neutral angles varied (stddev {format_degrees(v)} ≥ {format_degrees(lim)}).",
        lambda v, lim, s: (
            f"Neutral angles collapsed toward a rigid ring "
            f"({format_degrees(v)} < {format_degrees(lim)} on {seed_label(s)})."
        ),
    ),
    CheckDefinition(
        "hq_radius", "Equal hub radius", "hq_radius_range", "hq_radius_range", "max",
        lambda v, lim: f"All HQs stayed on the same ring (radius spread {format_units(v)}).",
        lambda v, lim, s: f"HQ radius spread {format_units(v)} on {seed_label(s)} exceeded {format_units(lim)}.",
    ),
    CheckDefinition(
        "hq_nearest", "Nearest enemy distance", "hq_nearest_enemy_range", "hq_nearest_enemy_range", "max",
        lambda v, lim: f"Closest-enemy travel time was uniform (spread {format_units(v)}).",
        lambda v, lim, s: (
            f"One player had a closer enemy (spread {format_units(v)} > {format_units(lim)} on {seed_label(s)})."
        ),
    ),
    CheckDefinition(
        "hq_average", "No free central player", "hq_average_enemy_range", "hq_average_enemy_range", "max",
        lambda v, lim: f"Average distance to all rivals stayed tightly clustered (spread {format_units(v)}).",
        lambda v, lim, s: f"Someone sat more central ({format_units(v)} spread > {format_units(lim)} on {seed_label(s)}).",
    ),
    CheckDefinition(
        "hq_angle", "Rotational symmetry", "hq_angle_max_deviation_deg", "hq_angle_max_deviation_deg", "max",
        lambda v, lim: f"HQ angles formed a clean pentagon (max deviation {format_degrees(v)}).",
        lambda v, lim, s: f"HQ angles drifted {format_degrees(v)} on {seed_label(s)} (limit {format_degrees(lim)}).",
    ),
    CheckDefinition(
        "cluster_spacing", "Cluster spacing match", "cluster_average_range", "cluster_average_range", "max",
        lambda v, lim: f"HQ→satellite spacing matched across players ({format_units(v)} spread).",
        lambda v, lim, s: f"Cluster spacing spread {format_units(v)} on {seed_label(s)} (limit {format_units(lim)}).",
    ),
    CheckDefinition(
        "cluster_inner", "Cluster inner radius", "cluster_min_spacing", "cluster_min_spacing", "min",
        lambda v, lim: f"Closest satellite stayed {format_units(v)} from its HQ (limit {format_units(lim)}).",
        lambda v, lim, s: (
            f"A satellite was only {format_units(v)} from its HQ (needs ≥ {format_units(lim)} on {seed_label(s)})."
        ),
    ),
    CheckDefinition(
        "cluster_outer", "Cluster outer radius", "cluster_max_spacing", "cluster_max_spacing", "max",
        lambda v, lim: f"No satellite drifted beyond {format_units(v)} (limit {format_units(lim)}).",
        lambda v, lim, s: f"A satellite pushed to {format_units(v)} (limit {format_units(lim)}) on {seed_label(s)}.",
    ),
    CheckDefinition(
        "foreign_gap", "No unfair adjacency", "min_foreign_gap", "min_foreign_gap", "min",
        lambda v, lim: f"Every starting outpost favored its owner (foreign gap {format_units(v)}).",
        lambda v, lim, s: (
            f"A starting outpost was too close to an enemy HQ "
            f"({format_units(v)} < {format_units(lim)} on {seed_label(s)})."
        ),
    ),
    CheckDefinition(
        "neutral_spread", "Neutral reach parity", "neutral_spread", "neutral_spread", "max",
        lambda v, lim: f"First neutral targets landed within {format_units(v)} total difference.",
        lambda v, lim, s: f"Neutral reach skewed ({format_units(v)} > {format_units(lim)} on {seed_label(s)}).",
    ),
    CheckDefinition(
        "isolation", "No isolated player", "isolation_range", "isolation_range", "max",
        lambda v, lim: f"No one was stranded (isolation spread {format_units(v)}).",
        lambda v, lim, s: f"Someone was isolated ({format_units(v)} > {format_units(lim)} on {seed_label(s)}).",
    ),
    CheckDefinition(
        "clearance", "Structure clearance", "clearance", "clearance", "min",
        lambda v, lim: (
            f"All structures spawned with at least {format_units(v)} clearance (limit {format_units(lim)})."
        ),
        lambda v, lim, s: (
            f"Two structures nearly overlapped on {seed_label(s)} ({format_units(v)} < {format_units(lim)})."
        ),
    ),
    CheckDefinition(
        "max_distance", "Bounded travel distances", "max_distance_to_center",
        "max_structure_distance_to_center", "max",
        lambda v, lim: f"No outpost spawned beyond {format_units(v)} from center (limit {format_units(lim)}).",
        lambda v, lim, s: f"An outpost was too far ({format_units(v)} > {format_units(lim)} on {seed_label(s)}).",
    ),
)


def evaluate_fairness_checks(
    summary: FairnessSummary,
    thresholds: FairnessThresholds = DEFAULT_FAIRNESS_THRESHOLDS,
) -> List[FairnessCheckResult]:
    results = []
    for check in CHECK_DEFINITIONS:
        stat = summary.stats.get(check.stat_key)
        value = stat.value if stat is not None else 0.0
        seed = stat.seed if stat is not None else None
        limit = getattr(thresholds, check.threshold_key)
        passed = value <= limit if check.direction == "max" else value >= limit
        results.append(
            FairnessCheckResult(
                id=check.id,
                label=check.label,
                direction=check.direction,
                passed=passed,
                value=value,
                limit=limit,
                seed=seed,
                pass_text=check.pass_text(value, limit),
                fail_text=check.fail_text(value, limit, seed),
            )
        )
    return results


def build_fairness_narrative(
    summary: FairnessSummary,
    thresholds: FairnessThresholds = DEFAULT_FAIRNESS_THRESHOLDS,
) -> FairnessNarrative:
    """Headline sentence followed by one ✅/⚠️ line per check."""
    checks = evaluate_fairness_checks(summary, thresholds)
    lines = [
        f"Across {summary.seeds_tested} seeds, neighboring HQ travel distance "
        f"stayed around {summary.average_hq_distance:.0f} units."
    ]
    lines.extend(
        f"✅ {c.pass_text}" if c.passed else f"⚠️ {c.fail_text}" for c in checks
    )
    return FairnessNarrative(checks=checks, lines=lines)


# ------------------------------------------------------------------
# Sampling
# ------------------------------------------------------------------


def run_fairness_samples(
    sample_size: int,
    start_seed: int = DEFAULT_START_SEED,
) -> Tuple[List[ScenarioMetricsReport], FairnessSummary]:
    """Generate and measure ``sample_size`` consecutive seeds.

    Reports are keyed by the requested seed, even when generation had to
    move on to a later one.
    """
    reports: List[ScenarioMetricsReport] = []
    for i in range(sample_size):
        seed = start_seed + i
        scenario = generate_scenario(seed)
        metrics = evaluate_fairness(scenario.players, scenario.structures)
        reports.append(ScenarioMetricsReport(seed=seed, scenario=scenario, metrics=metrics))
        if (i + 1) % 100 == 0:
            logger.info("Sampled %d/%d seeds", i + 1, sample_size)

    summary = summarize_reports(reports)
    logger.info(
        "Fairness sample complete: %d seeds from %d, worst neutral spread %.1f (seed %s)",
        summary.seeds_tested, start_seed,
        summary.stats["neutral_spread"].value, summary.stats["neutral_spread"].seed,
    )
    return reports, summary
