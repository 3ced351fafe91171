"""Data models for generated starting scenarios."""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Point:
    """A position in map space."""

    x: float
    y: float


@dataclass(frozen=True)
class Anchor:
    """A labelled working point used while the layout is being placed."""

    id: str
    type: str  # "hq", "foundry" or "reactor"
    x: float
    y: float
    owner_id: Optional[str] = None


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    color: str


@dataclass(frozen=True)
class Outpost:
    """A finished structure, owned when ``owner_id`` is set."""

    id: str
    type: str
    position: Point
    label: str
    color: str
    size: int
    drone_count: int
    drone_capacity: int
    owner_id: Optional[str] = None
    drone_generation_rate: Optional[int] = None

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def y(self) -> float:
        return self.position.y

    @property
    def is_neutral(self) -> bool:
        return self.owner_id is None


@dataclass(frozen=True)
class Scenario:
    """A complete starting layout; treat as a value once returned."""

    players: Tuple[Player, ...]
    structures: Tuple[Outpost, ...]
    active_player_index: int = 0
    seed: int = 1  # Seed that actually produced the layout

    @property
    def owned(self) -> Tuple[Outpost, ...]:
        return tuple(s for s in self.structures if not s.is_neutral)

    @property
    def neutrals(self) -> Tuple[Outpost, ...]:
        return tuple(s for s in self.structures if s.is_neutral)

    @property
    def active_player(self) -> Player:
        return self.players[self.active_player_index]
