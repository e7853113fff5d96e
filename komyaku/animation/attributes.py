"""Per-track character identity drawn once at birth."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np

RGB = Tuple[int, int, int]

EXPO_RED: RGB = (230, 0, 18)
EXPO_BLUE: RGB = (0, 104, 183)
EYE_WHITE: RGB = (255, 255, 255)


class EyeType(Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class Palette:
    name: str
    body: RGB
    pupil: RGB


PALETTES: Tuple[Palette, Palette] = (
    Palette(name="red", body=EXPO_RED, pupil=EXPO_BLUE),
    # pupils are drawn on the white eye, so a blue body keeps the blue pupil
    Palette(name="blue", body=EXPO_BLUE, pupil=EXPO_BLUE),
)

MIN_EYE_COUNT = 1
MAX_EYE_COUNT = 3


@dataclass(frozen=True)
class CharacterAttributes:
    """Visual identity of a track.

    Frozen: the animator replaces the record (``dataclasses.replace``) when the
    satellite count drifts, which is the only field allowed to change.
    """

    palette: Palette
    eye_type: EyeType
    eye_count: int
    scale: float
    offset_ratio: float
    rotation_offset: float

    @property
    def is_multiple(self) -> bool:
        return self.eye_type is EyeType.MULTIPLE


def generate_attributes(rng: np.random.Generator) -> CharacterAttributes:
    """Draw a fresh identity record for a newly born track."""
    palette = PALETTES[0] if rng.random() < 0.5 else PALETTES[1]
    eye_type = EyeType.SINGLE if rng.random() < 0.5 else EyeType.MULTIPLE
    return CharacterAttributes(
        palette=palette,
        eye_type=eye_type,
        eye_count=int(rng.integers(MIN_EYE_COUNT, MAX_EYE_COUNT + 1)),
        scale=0.9 + float(rng.random()) * 0.2,
        offset_ratio=float(rng.random()) * 0.2,
        rotation_offset=float(rng.random()) * math.pi,
    )
