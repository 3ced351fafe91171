"""Catalogue of raw fairness figures shown next to the pass/fail checks."""

from dataclasses import dataclass
from typing import Callable, Optional

import pandas as pd

from src.fairness.report import FairnessSummary


@dataclass(frozen=True)
class RawMetric:
    title: str
    description: str
    stat_key: Optional[str]  # None for summary-level values
    fmt: Callable[[float], str]

    def value(self, summary: FairnessSummary) -> float:
        if self.stat_key is None:
            return summary.average_hq_distance
        return summary.stats[self.stat_key].value

    def seed(self, summary: FairnessSummary) -> Optional[int]:
        if self.stat_key is None:
            return None
        return summary.stats[self.stat_key].seed


def _units(digits: int) -> Callable[[float], str]:
    return lambda v: f"{v:.{digits}f}u"


def _degrees(v: float) -> str:
    return f"{v:.2f}°"


def _outposts(v: float) -> str:
    return f"{v:.0f} outposts"


RAW_METRICS = (
    RawMetric(
        "Average HQ distance",
        "Baseline travel time between neighboring command hubs.",
        None, _units(1),
    ),
    RawMetric(
        "HQ radius spread",
        "How evenly HQs stay on the main ring.",
        "hq_radius_range", _units(2),
    ),
    RawMetric(
        "Satellite angle stddev",
        "Angular standard deviation of satellites vs wedge centers (higher is more organic).",
        "satellite_angle_std_dev_deg", _degrees,
    ),
    RawMetric(
        "Neutral angle stddev",
        "Angular standard deviation of neutrals vs wedge centers (higher is more organic).",
        "neutral_angle_std_dev_deg", _degrees,
    ),
    RawMetric(
        "Closest satellite distance",
        "Minimum HQ→satellite distance observed.",
        "cluster_min_spacing", _units(2),
    ),
    RawMetric(
        "Farthest satellite distance",
        "Maximum HQ→satellite distance observed.",
        "cluster_max_spacing", _units(2),
    ),
    RawMetric(
        "Nearest-neutral spread",
        "Difference in the sum of the first two neutrals per player.",
        "neutral_spread", _units(2),
    ),
    RawMetric(
        "Min visible neutrals at spawn",
        "Lowest number of neutral outposts any player sees at t=0.",
        "visible_neutral_min", _outposts,
    ),
    RawMetric(
        "Neutral vision spread",
        "Difference between most and least neutrals visible at spawn.",
        "visible_neutral_range", _outposts,
    ),
    RawMetric(
        "Max visible enemy outposts",
        "Highest number of enemy outposts any player sees at spawn.",
        "visible_enemy_max", _outposts,
    ),
    RawMetric(
        "Center neutrals",
        "How many neutrals spawned in the central area.",
        "center_neutral_count", lambda v: f"{v:.0f}",
    ),
    RawMetric(
        "Min structure clearance",
        "Smallest buffer between any two outposts.",
        "clearance", _units(2),
    ),
    RawMetric(
        "Max distance to center",
        "Farthest any outpost spawned from the center.",
        "max_distance_to_center", _units(1),
    ),
    RawMetric(
        "Minimum center-to-center distance",
        "Closest pair of outposts before subtracting radii.",
        "min_structure_distance", _units(2),
    ),
)


def raw_metric_frame(summary: FairnessSummary) -> pd.DataFrame:
    """Render :data:`RAW_METRICS` as a table with formatted values."""
    rows = []
    for metric in RAW_METRICS:
        value = metric.value(summary)
        rows.append(
            {
                "metric": metric.title,
                "value": value,
                "display": metric.fmt(value),
                "seed": metric.seed(summary),
                "description": metric.description,
            }
        )
    return pd.DataFrame(rows, columns=["metric", "value", "display", "seed", "description"])
