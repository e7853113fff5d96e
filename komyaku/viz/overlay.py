"""Draw tracked characters onto BGR frames."""

from __future__ import annotations

import logging
from typing import Iterable

import cv2
import numpy as np

from komyaku.animation.attributes import EYE_WHITE, RGB, Palette
from komyaku.animation.state import Animating, BodyState
from komyaku.types import TrackedFace

LOGGER = logging.getLogger("komyaku.viz.overlay")

PUPIL_RATIO = 0.5


def _bgr(color: RGB) -> tuple[int, int, int]:
    r, g, b = color
    return (int(b), int(g), int(r))


def _circle(frame: np.ndarray, x: float, y: float, radius: float, color: RGB) -> None:
    r = int(round(radius))
    if r <= 0:
        return
    cv2.circle(frame, (int(round(x)), int(round(y))), r, _bgr(color), thickness=-1, lineType=cv2.LINE_AA)


def draw_eye(frame: np.ndarray, x: float, y: float, size: float, palette: Palette) -> None:
    _circle(frame, x, y, size, EYE_WHITE)
    _circle(frame, x, y, size * PUPIL_RATIO, palette.pupil)


def draw_body(frame: np.ndarray, body: BodyState, palette: Palette) -> None:
    _circle(frame, body.x, body.y, body.size, palette.body)


def draw_characters(frame: np.ndarray, faces: Iterable[TrackedFace]) -> np.ndarray:
    """Draw every animated track in place and return the frame.

    Bodies are painted before eyes; the central eye goes last so satellites
    never cover it.
    """
    for face in faces:
        state = face.render_state
        if not isinstance(state, Animating):
            LOGGER.debug("Skipping track %d without render state", face.track_id)
            continue
        palette = face.attributes.palette
        bodies = state.bodies
        for body in bodies:
            draw_body(frame, body, palette)
        for body in bodies[1:] + bodies[:1]:
            draw_eye(frame, body.eye_x, body.eye_y, body.eye_size, palette)
    return frame
