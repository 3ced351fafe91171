from dataclasses import dataclass

# Sonar radius of a plain outpost, in map units
BASE_SONAR_RADIUS = 360


@dataclass(frozen=True)
class SonarConfig:
    base_sonar_radius: float = BASE_SONAR_RADIUS


DEFAULT_SONAR_CONFIG = SonarConfig()
