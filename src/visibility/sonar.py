"""Spawn-time sonar visibility.

A player sees every outpost they own, plus any outpost that lies inside
the sonar circle of one of their outposts. Nothing here tracks carriers
or time; this is the static subset the fairness metrics need.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from src.scenario_generator.models import Outpost
from src.visibility.config import DEFAULT_SONAR_CONFIG, SonarConfig


@dataclass(frozen=True)
class SonarSource:
    outpost_id: str
    x: float
    y: float
    radius: float

    def covers(self, x: float, y: float) -> bool:
        return math.hypot(x - self.x, y - self.y) <= self.radius


def outpost_sonar_radius(
    outpost: Outpost,
    config: SonarConfig = DEFAULT_SONAR_CONFIG,
    multiplier: float = 1.0,
) -> float:
    """Sonar radius of *outpost*, scaled by an optional host multiplier."""
    return config.base_sonar_radius * multiplier


def sonar_sources_for_player(
    outposts: Sequence[Outpost],
    player_id: str,
    config: SonarConfig = DEFAULT_SONAR_CONFIG,
) -> List[SonarSource]:
    return [
        SonarSource(
            outpost_id=o.id,
            x=o.x,
            y=o.y,
            radius=outpost_sonar_radius(o, config),
        )
        for o in outposts
        if o.owner_id == player_id
    ]


def is_outpost_visible(
    outpost: Outpost,
    player_id: str,
    all_outposts: Sequence[Outpost],
    sonar_sources: Optional[Sequence[SonarSource]] = None,
    config: SonarConfig = DEFAULT_SONAR_CONFIG,
) -> bool:
    """True when *player_id* owns *outpost* or covers it with sonar.

    Pass precomputed *sonar_sources* when checking many outposts for the
    same player.
    """
    if outpost.owner_id == player_id:
        return True
    if sonar_sources is None:
        sonar_sources = sonar_sources_for_player(all_outposts, player_id, config)
    return any(source.covers(outpost.x, outpost.y) for source in sonar_sources)
