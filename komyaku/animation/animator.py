"""Per-track animation: advances smoothed render geometry toward the tracked box."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

import numpy as np

from komyaku.animation.attributes import CharacterAttributes
from komyaku.animation.limiter import approach, clamp_change
from komyaku.animation.state import Animating, BodyState, RenderState, SatelliteState, Uninitialized
from komyaku.types import TrackedFace

LOGGER = logging.getLogger("komyaku.animation")

TWO_PI = 2.0 * math.pi

# Body radius relative to the scaled face size
SINGLE_BODY_RATIO = 0.6
CENTRAL_BODY_RATIO = 0.45
SINGLE_EYE_RATIO = 0.5

# Ranges the drifting layout values are re-drawn from every tick
DISTANCE_RANGE = (0.4, 0.7)
SIZE_RANGE = (0.6, 1.0)
EYE_RANGE = (0.3, 0.8)
CENTRAL_EYE_SEED_RANGE = (0.3, 0.5)


@dataclass
class AnimatorConfig:
    max_move_px: float = 5.0
    max_size_move_px: float = 3.0
    eye_jitter_px: float = 2.0
    angle_drift_rad: float = 0.03
    ratio_rate: float = 0.1
    central_eye_rate: float = 0.01
    mutation_interval_s: Tuple[float, float] = (3.0, 8.0)
    min_satellites: int = 1
    max_satellites: int = 3

    def __post_init__(self) -> None:
        low, high = (float(v) for v in self.mutation_interval_s)
        self.mutation_interval_s = (low, high)
        if low < 0 or high < low:
            raise ValueError(f"mutation_interval_s must be an increasing pair, got {self.mutation_interval_s}")
        if self.max_move_px < 0 or self.max_size_move_px < 0 or self.eye_jitter_px < 0:
            raise ValueError("pixel step limits must be non-negative")
        if not 1 <= self.min_satellites <= self.max_satellites:
            raise ValueError(
                f"satellite bounds must satisfy 1 <= min <= max, got {self.min_satellites}..{self.max_satellites}"
            )


class CharacterAnimator:
    """Advances each track's render state by one tick.

    Ideal geometry is recomputed from the track box every tick; stored
    geometry only moves toward it through the limiters.
    """

    def __init__(
        self,
        config: Optional[AnimatorConfig] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or AnimatorConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock

    def advance(
        self,
        track: TrackedFace,
        scale_x: float = 1.0,
        scale_y: float = 1.0,
        size_scale: float = 1.0,
        now: Optional[float] = None,
    ) -> Animating:
        now = self.clock() if now is None else now
        box = track.box.scaled(scale_x, scale_y)
        center_x, center_y = box.center
        size = max(box.width, box.height) * track.attributes.scale * size_scale

        state = track.render_state
        if isinstance(state, Animating):
            # monotonic clocks should not step back, but never schedule into the past
            now = max(now, state.last_tick_at)

        if track.attributes.is_multiple:
            animating = self._advance_multiple(track, state, center_x, center_y, size, now)
        else:
            animating = self._advance_single(state, center_x, center_y, size)
        animating.last_tick_at = now
        track.render_state = animating
        return animating

    def _advance_single(self, state: RenderState, center_x: float, center_y: float, size: float) -> Animating:
        body_size = size * SINGLE_BODY_RATIO
        if isinstance(state, Uninitialized):
            return Animating(central=self._seed_body(center_x, center_y, body_size, SINGLE_EYE_RATIO))
        self._move_body(state.central, center_x, center_y, body_size)
        self._carry_eye(state.central, self.config.eye_jitter_px)
        return state

    def _advance_multiple(
        self,
        track: TrackedFace,
        state: RenderState,
        center_x: float,
        center_y: float,
        size: float,
        now: float,
    ) -> Animating:
        central_size = size * CENTRAL_BODY_RATIO
        if isinstance(state, Uninitialized):
            attrs = track.attributes
            central = self._seed_body(center_x, center_y, central_size, self._draw(CENTRAL_EYE_SEED_RANGE))
            state = Animating(
                central=central,
                satellites=[self._new_satellite(attrs, i, attrs.eye_count) for i in range(attrs.eye_count)],
                next_mutation_at=now + self._mutation_interval(),
            )
        else:
            self._maybe_mutate_count(track, state, now)
            central = state.central
            central.eye_ratio = clamp_change(central.eye_ratio, self._draw(EYE_RANGE), self.config.central_eye_rate)
            self._move_body(central, center_x, center_y, central_size)
            self._carry_eye(central, 0.0)
            self._drift_layout(state.satellites)

        for satellite in state.satellites:
            self._place_satellite(satellite, center_x, center_y, size, central_size)
        return state

    def _maybe_mutate_count(self, track: TrackedFace, state: Animating, now: float) -> None:
        if state.next_mutation_at is None:
            state.next_mutation_at = now + self._mutation_interval()
            return
        if now <= state.next_mutation_at:
            return
        current = track.attributes.eye_count
        step = 1 if self.rng.random() < 0.5 else -1
        count = min(max(current + step, self.config.min_satellites), self.config.max_satellites)
        if count != current:
            track.attributes = replace(track.attributes, eye_count=count)
            if count > len(state.satellites):
                state.satellites.append(self._new_satellite(track.attributes, len(state.satellites), count))
            else:
                del state.satellites[count:]
            LOGGER.debug("Track %d satellite count %d -> %d", track.track_id, current, count)
        state.next_mutation_at = now + self._mutation_interval()

    def _new_satellite(self, attrs: CharacterAttributes, index: int, count: int) -> SatelliteState:
        low, high = DISTANCE_RANGE
        offset = min(attrs.offset_ratio, high - low)
        return SatelliteState(
            angle=(index * TWO_PI / count + attrs.rotation_offset) % TWO_PI,
            distance_ratio=low + offset + float(self.rng.random()) * (high - low - offset),
            size_ratio=self._draw(SIZE_RANGE),
            eye_ratio=self._draw(EYE_RANGE),
        )

    def _drift_layout(self, satellites: List[SatelliteState]) -> None:
        cfg = self.config
        for s in satellites:
            s.angle = (s.angle + float(self.rng.uniform(-cfg.angle_drift_rad, cfg.angle_drift_rad))) % TWO_PI
            s.distance_ratio = clamp_change(s.distance_ratio, self._draw(DISTANCE_RANGE), cfg.ratio_rate)
            s.size_ratio = clamp_change(s.size_ratio, self._draw(SIZE_RANGE), cfg.ratio_rate)
            s.eye_ratio = clamp_change(s.eye_ratio, self._draw(EYE_RANGE), cfg.ratio_rate)

    def _place_satellite(
        self,
        satellite: SatelliteState,
        center_x: float,
        center_y: float,
        size: float,
        central_size: float,
    ) -> None:
        distance = size * satellite.distance_ratio
        ideal_x = center_x + math.cos(satellite.angle) * distance
        ideal_y = center_y + math.sin(satellite.angle) * distance
        ideal_size = central_size * satellite.size_ratio
        if satellite.body is None:
            satellite.body = self._seed_body(ideal_x, ideal_y, ideal_size, satellite.eye_ratio)
            return
        body = satellite.body
        body.eye_ratio = satellite.eye_ratio
        self._move_body(body, ideal_x, ideal_y, ideal_size)
        self._carry_eye(body, 0.0)

    def _seed_body(self, x: float, y: float, size: float, eye_ratio: float) -> BodyState:
        radius = size * 0.5 * float(self.rng.random())
        theta = float(self.rng.random()) * TWO_PI
        return BodyState(
            x=x,
            y=y,
            size=size,
            eye_x=x + math.cos(theta) * radius,
            eye_y=y + math.sin(theta) * radius,
            eye_ratio=eye_ratio,
        )

    def _move_body(self, body: BodyState, ideal_x: float, ideal_y: float, ideal_size: float) -> None:
        cfg = self.config
        body.remember()
        body.x = approach(body.x, ideal_x, cfg.max_move_px)
        body.y = approach(body.y, ideal_y, cfg.max_move_px)
        body.size = approach(body.size, ideal_size, cfg.max_size_move_px)

    def _carry_eye(self, body: BodyState, jitter: float) -> None:
        """Shift the eye by exactly the body's motion, plus optional bounded jitter."""
        dx = body.x - (body.prev_x if body.prev_x is not None else body.x)
        dy = body.y - (body.prev_y if body.prev_y is not None else body.y)
        eye_x = body.eye_x + dx
        eye_y = body.eye_y + dy
        if jitter > 0:
            jx, jy = self._eye_jitter(body, eye_x - body.x, eye_y - body.y, dx, dy, jitter)
            eye_x += jx
            eye_y += jy
        body.eye_x = eye_x
        body.eye_y = eye_y

    def _eye_jitter(
        self,
        body: BodyState,
        off_x: float,
        off_y: float,
        dx: float,
        dy: float,
        jitter: float,
    ) -> Tuple[float, float]:
        """Jitter that keeps the eye inside half the body radius and the total step within ``max_move_px``."""
        jx = float(self.rng.uniform(-jitter, jitter))
        jy = float(self.rng.uniform(-jitter, jitter))
        limit = max(body.size, 0.0) * 0.5
        if math.hypot(off_x, off_y) > limit:
            # body shrank under the eye: drift inward only
            jx = -math.copysign(abs(jx), off_x)
            jy = -math.copysign(abs(jy), off_y)
        elif math.hypot(off_x + jx, off_y + jy) > limit:
            jx = jy = 0.0
        step = self.config.max_move_px
        jx = min(max(jx, -step - dx), step - dx)
        jy = min(max(jy, -step - dy), step - dy)
        return jx, jy

    def _draw(self, bounds: Tuple[float, float]) -> float:
        low, high = bounds
        return low + float(self.rng.random()) * (high - low)

    def _mutation_interval(self) -> float:
        low, high = self.config.mutation_interval_s
        return float(self.rng.uniform(low, high))
