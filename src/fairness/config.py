from dataclasses import dataclass

from src.scenario_generator.config import MAP_HEIGHT, MAP_WIDTH

MAP_CENTER = (MAP_WIDTH / 2, MAP_HEIGHT / 2)

# Distance bands measured from each HQ
NEUTRAL_NEAR_RADIUS = 450
NEUTRAL_MID_RADIUS = 900
NEUTRAL_FAR_RADIUS = 1400
CONNECTIVITY_RADIUS = 1200

# Isolation score inputs
ISOLATION_NEUTRAL_COUNT = 3
ISOLATION_HQ_COUNT = 2

CENTER_OCCUPANCY_RADIUS = 450

# Sampler defaults
DEFAULT_SAMPLE_SIZE = 1000
DEFAULT_START_SEED = 1


@dataclass(frozen=True)
class FairnessThresholds:
    """Pass/fail limits for the worst case seen across a sample."""

    adjacent_range: float = 20
    hq_radius_range: float = 15
    hq_nearest_enemy_range: float = 20
    hq_average_enemy_range: float = 30
    hq_angle_max_deviation_deg: float = 1.5
    satellite_angle_std_dev_deg_min: float = 6  # Below this satellites look stamped
    neutral_angle_std_dev_deg_min: float = 5
    min_center_neutral_count: int = 3
    max_center_neutral_count: int = 7
    neutral_spread: float = 350
    cluster_average_range: float = 60
    cluster_min_spacing: float = 170
    cluster_max_spacing: float = 320
    min_foreign_gap: float = 60
    isolation_range: float = 300
    clearance: float = 40
    max_structure_distance_to_center: float = 1600


DEFAULT_FAIRNESS_THRESHOLDS = FairnessThresholds()
