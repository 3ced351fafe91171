from src.visibility.config import DEFAULT_SONAR_CONFIG, SonarConfig
from src.visibility.sonar import (
    SonarSource,
    is_outpost_visible,
    outpost_sonar_radius,
    sonar_sources_for_player,
)

__all__ = [
    "DEFAULT_SONAR_CONFIG",
    "SonarConfig",
    "SonarSource",
    "is_outpost_visible",
    "outpost_sonar_radius",
    "sonar_sources_for_player",
]
