"""Common dataclasses and type aliases used across the komyaku package."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from komyaku.animation.attributes import CharacterAttributes
from komyaku.animation.state import UNINITIALIZED, RenderState

# Corner order: x1, y1, x2, y2 (pixel coordinates)
BBox = Tuple[float, float, float, float]
Point = Tuple[float, float]


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle, origin top-left, in frame pixel units."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_xyxy(cls, bbox: BBox) -> "Rect":
        x1, y1, x2, y2 = bbox
        return cls(float(x1), float(y1), float(x2) - float(x1), float(y2) - float(y1))

    @property
    def x_max(self) -> float:
        return self.x + self.width

    @property
    def y_max(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def as_xyxy(self) -> BBox:
        return self.x, self.y, self.x_max, self.y_max

    def scaled(self, scale_x: float = 1.0, scale_y: float = 1.0) -> "Rect":
        """Map the rectangle onto a surface resized by ``scale_x``/``scale_y``."""
        return Rect(self.x * scale_x, self.y * scale_y, self.width * scale_x, self.height * scale_y)

    def is_valid(self) -> bool:
        values = (self.x, self.y, self.width, self.height)
        # numpy float and int scalars register as numbers.Real
        if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in values):
            return False
        if not all(math.isfinite(v) for v in values):
            return False
        return self.width > 0 and self.height > 0


@dataclass
class Detection:
    """Single face returned by a detector for one frame. Carries no identity."""

    box: Rect
    landmarks: Optional[np.ndarray] = None
    score: Optional[float] = None

    @classmethod
    def from_xyxy(
        cls,
        bbox: BBox,
        landmarks: Optional[np.ndarray] = None,
        score: Optional[float] = None,
    ) -> "Detection":
        return cls(box=Rect.from_xyxy(bbox), landmarks=landmarks, score=score)

    def is_valid(self) -> bool:
        return isinstance(self.box, Rect) and self.box.is_valid()


@dataclass
class TrackedFace:
    """Persistent identity for one physical face across ticks.

    ``box``, ``landmarks`` and ``age`` belong to the association step;
    ``render_state`` belongs to the animator.
    """

    track_id: int
    box: Rect
    attributes: CharacterAttributes
    landmarks: Optional[np.ndarray] = None
    age: int = 0
    render_state: RenderState = field(default=UNINITIALIZED)

    def match(self, detection: Detection) -> None:
        self.box = detection.box
        self.landmarks = detection.landmarks
        self.age = 0


def bbox_area(box: Rect) -> float:
    """Compute area of a rectangle, treating inverted extents as empty."""
    return max(0.0, box.width) * max(0.0, box.height)


def iou(box_a: Rect, box_b: Rect) -> float:
    """Compute intersection-over-union between two rectangles."""
    inter_x1 = max(box_a.x, box_b.x)
    inter_y1 = max(box_a.y, box_b.y)
    inter_x2 = min(box_a.x_max, box_b.x_max)
    inter_y2 = min(box_a.y_max, box_b.y_max)
    inter_w = inter_x2 - inter_x1
    inter_h = inter_y2 - inter_y1
    if inter_w <= 0 or inter_h <= 0:
        return 0.0
    inter_area = inter_w * inter_h
    union = bbox_area(box_a) + bbox_area(box_b) - inter_area
    if union <= 0:
        return 0.0
    return inter_area / union
