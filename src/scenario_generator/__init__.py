from src.scenario_generator.models import Anchor, Outpost, Player, Point, Scenario
from src.scenario_generator.rng import DeterministicRng, normalize_seed
from src.scenario_generator.scenario import (
    GenerationFailed,
    build_scenario,
    generate_scenario,
)

__all__ = [
    "Anchor",
    "DeterministicRng",
    "GenerationFailed",
    "Outpost",
    "Player",
    "Point",
    "Scenario",
    "build_scenario",
    "generate_scenario",
    "normalize_seed",
]
