"""Render-state variants owned by the animator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Uninitialized:
    """A track that has not been animated yet."""


UNINITIALIZED = Uninitialized()


@dataclass
class BodyState:
    """Smoothed draw geometry for one body and the eye floating inside it."""

    x: float
    y: float
    size: float
    eye_x: float
    eye_y: float
    eye_ratio: float
    prev_x: Optional[float] = None
    prev_y: Optional[float] = None
    prev_eye_x: Optional[float] = None
    prev_eye_y: Optional[float] = None

    @property
    def eye_size(self) -> float:
        return self.size * self.eye_ratio

    def remember(self) -> None:
        self.prev_x = self.x
        self.prev_y = self.y
        self.prev_eye_x = self.eye_x
        self.prev_eye_y = self.eye_y


@dataclass
class SatelliteState:
    """Polar layout around the central body, drifting slowly between ticks."""

    angle: float
    distance_ratio: float
    size_ratio: float
    eye_ratio: float
    body: Optional[BodyState] = None


@dataclass
class Animating:
    central: BodyState
    satellites: List[SatelliteState] = field(default_factory=list)
    next_mutation_at: Optional[float] = None
    last_tick_at: float = 0.0

    @property
    def bodies(self) -> List[BodyState]:
        """Central body first, then every placed satellite."""
        return [self.central] + [s.body for s in self.satellites if s.body is not None]


RenderState = Union[Uninitialized, Animating]
