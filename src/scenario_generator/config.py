import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

# Map geometry
MAP_WIDTH = 2660
MAP_HEIGHT = 2100

# Players
NUM_PLAYERS = 5
PLAYER_COLORS = ("#dc3545", "#28a745", "#17a2b8", "#ffc107", "#6f42c1")
NEUTRAL_COLORS = ("#969aa6", "#b0b4b8")
ACTIVE_PLAYER_INDEX = 0

# Footprint radii, also used for clearance checks
STRUCTURE_SIZES = {
    "hq": 25,
    "foundry": 24,
    "reactor": 25,
    "extractor": 20,
}

# Drone loadout at spawn
OWNED_DRONE_COUNT = 40
DRONE_CAPACITY = {
    "hq": 200,
    "foundry": 100,
    "reactor": 150,
}
FOUNDRY_GENERATION_RATE = 3  # Drones per minute

# Display label pool (one name per line)
OUTPOST_NAMES_FILE = Path(__file__).parent / "outpost_names.txt"

# Full restarts on seed+1 before giving up
MAX_GENERATION_RETRIES = 50

TWO_PI = math.pi * 2


@dataclass(frozen=True)
class AnchorConfig:
    """HQ ring placement derived from a travel-time target."""

    player_count: int = NUM_PLAYERS
    min_hq_travel_time_sec: float = 180.0  # 3 minutes between neighbours
    carrier_speed: float = 6.0  # Units per second

    @property
    def min_hq_distance(self) -> float:
        return self.min_hq_travel_time_sec * self.carrier_speed

    @property
    def ring_radius(self) -> float:
        return self.min_hq_distance / (2 * math.sin(math.pi / self.player_count))


@dataclass(frozen=True)
class ClusterConfig:
    """Satellite sampling around each HQ."""

    satellite_count: int = 3
    angle_spread: float = math.radians(100)  # Half-angle from center-facing vector
    min_angle_separation: float = math.radians(35)
    distance_min: float = 210.0
    distance_max: float = 320.0
    min_separation: float = 140.0
    foreign_margin: float = 60.0
    attempts_per_satellite: int = 60
    sonar_buffer: float = 380.0
    satellite_specs: Tuple[Tuple[str, str], ...] = (
        ("foundry-a", "foundry"),
        ("foundry-b", "foundry"),
        ("reactor", "reactor"),
    )


@dataclass(frozen=True)
class NeutralTemplate:
    """Outer fallback band for neutral placement."""

    id: str
    radius_range: Tuple[float, float]
    angle_bias: float = 0.0
    angle_jitter: float = math.pi


NEUTRAL_TEMPLATES = (
    NeutralTemplate("cluster", (750.0, 950.0)),
    NeutralTemplate("belt", (900.0, 1200.0)),
    NeutralTemplate("sprawl", (800.0, 1300.0)),
)


@dataclass(frozen=True)
class NeutralConfig:
    """Staged neutral placement."""

    count: int = NUM_PLAYERS * 2
    min_separation: float = 240.0
    type_pool: Tuple[str, ...] = ("foundry",) * 5 + ("reactor",) * 5
    center_count_min: int = 3
    center_count_max: int = 7
    near_radius: float = 450.0
    mid_radius: float = 900.0
    far_radius: float = 1400.0
    center_occupancy_radius: float = 450.0
    wedge_offset_min: float = 0.15  # Radians away from any wedge center

    # Center cluster
    center_radius_range: Tuple[float, float] = (220.0, 420.0)
    center_attempts: int = 120
    hq_keepout_margin: float = 40.0  # Added to near_radius

    # Backfield behind a subset of HQs
    backfield_count: int = 3
    backfield_radius_range: Tuple[float, float] = (340.0, 430.0)
    backfield_angle_jitter: float = math.pi
    backfield_tangential_jitter: float = 60.0
    backfield_attempts: int = 80

    # Mid ring fill
    mid_radius_range: Tuple[float, float] = (880.0, 1150.0)
    mid_attempts: int = 140
    mid_hq_slack: float = 30.0  # Subtracted from near_radius

    # Outer templates
    templates: Tuple[NeutralTemplate, ...] = NEUTRAL_TEMPLATES
    outer_attempts: int = 140

    # Relaxed top-up when the pipeline falls short
    top_up_radius_range: Tuple[float, float] = (280.0, 1400.0)
    top_up_attempts: int = 600
    top_up_wedge_factor: float = 0.5


@dataclass(frozen=True)
class OptimizerConfig:
    """Local-search budgets and weights for the pre-normalization passes."""

    improve_iterations: int = 400
    center_sample_probability: float = 0.3
    score_weights: Tuple[float, ...] = (10.0, 8.0, 12.0, 1.2)  # near, mid, near+mid, spread
    angle_stddev_floor_deg: float = 5.0
    angle_penalty_weight: float = 50.0
    center_penalty_weight: float = 40.0

    reach_tolerance: float = 120.0
    reach_rounds: int = 200
    reach_proposals: int = 200
    reach_radius_range: Tuple[float, float] = (260.0, 720.0)

    nearest_access_limit: float = 720.0
    nearest_access_passes: int = 2
    nearest_access_radius_range: Tuple[float, float] = (280.0, 560.0)
    nearest_access_attempts: int = 180

    personal_neutral_max: float = 520.0
    personal_neutral_radius_range: Tuple[float, float] = (340.0, 520.0)
    personal_neutral_attempts: int = 200

    nearest_sum_target: float = 700.0
    nearest_sum_tries: int = 4
    nearest_sum_radius_range: Tuple[float, float] = (320.0, 540.0)
    nearest_sum_attempts: int = 200

    center_fill_rounds: int = 30
    center_evac_rounds: int = 80
    center_evac_tries: int = 220
    center_evac_radius_max: float = 1300.0
    center_evac_gap: float = 200.0  # Beyond the occupancy radius
    center_force_tries: int = 400
    center_force_radius_max: float = 1400.0
    last_resort_rounds: int = 300
    last_resort_tries: int = 500
    last_resort_gap: float = 300.0


@dataclass(frozen=True)
class RebalanceConfig:
    """Post-normalization rebalancer and finishing passes."""

    neutral_spread_limit: float = 320.0
    isolation_range_limit: float = 300.0
    center_radius: float = 450.0
    max_center_count: int = 7
    min_neutral_separation: float = 150.0
    max_distance_to_center: float = 1600.0
    max_iterations: int = 800
    samples_per_iteration: int = 12
    center_move_overshoot: float = 80.0
    fallback_angles: Tuple[float, ...] = (
        -math.pi / 2, -math.pi / 3, -math.pi / 6, 0.0,
        math.pi / 6, math.pi / 3, math.pi / 2,
    )
    fallback_radius_steps: Tuple[float, ...] = (20.0, 140.0, 260.0, 380.0)

    # Finishing passes
    evac_separation: float = 240.0
    evac_gap: float = 240.0  # Beyond center_radius
    evac_radius_max: float = 1400.0
    evac_rounds: int = 300
    evac_tries: int = 300
    final_spread_limit: float = 350.0
    final_spread_rounds: int = 25
    final_spread_radii: Tuple[float, ...] = (200.0, 320.0, 440.0, 560.0)
    repair_separation: float = 140.0
    center_min_count: int = 3
    center_fill_radius_range: Tuple[float, float] = (220.0, 420.0)
    center_fill_rounds: int = 60
    center_fill_tries: int = 180


@dataclass(frozen=True)
class NormalizerConfig:
    """Fit-to-map margin applied after placement."""

    width: float = MAP_WIDTH
    height: float = MAP_HEIGHT
    margin_ratio: float = 0.02  # Of the smaller map dimension

    @property
    def margin(self) -> float:
        return min(self.width, self.height) * self.margin_ratio


@dataclass(frozen=True)
class GeneratorConfig:
    """Bundle of every component config used by one generation run."""

    anchors: AnchorConfig = field(default_factory=AnchorConfig)
    clusters: ClusterConfig = field(default_factory=ClusterConfig)
    neutrals: NeutralConfig = field(default_factory=NeutralConfig)
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    rebalance: RebalanceConfig = field(default_factory=RebalanceConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)


DEFAULT_ANCHOR_CONFIG = AnchorConfig()
DEFAULT_CLUSTER_CONFIG = ClusterConfig()
DEFAULT_NEUTRAL_CONFIG = NeutralConfig()
DEFAULT_OPTIMIZER_CONFIG = OptimizerConfig()
DEFAULT_REBALANCE_CONFIG = RebalanceConfig()
DEFAULT_NORMALIZER_CONFIG = NormalizerConfig()
DEFAULT_GENERATOR_CONFIG = GeneratorConfig()
