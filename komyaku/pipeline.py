"""Per-frame glue: detect faces, update the tracker, draw the characters."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from komyaku.tracking.tracker import FaceTracker
from komyaku.types import Detection, TrackedFace
from komyaku.viz.overlay import draw_characters

LOGGER = logging.getLogger("komyaku.pipeline")

# Characters are drawn slightly larger on still images
STILL_IMAGE_SIZE_SCALE = 1.1


class FaceDetector(Protocol):
    def detect(self, image: np.ndarray) -> Sequence[Detection]:
        ...


class OverlayPipeline:
    """Runs one detect/track/draw tick per call."""

    def __init__(self, detector: FaceDetector, tracker: Optional[FaceTracker] = None) -> None:
        self.detector = detector
        self.tracker = tracker or FaceTracker()
        self.faces_detected = 0

    def process_frame(
        self,
        frame: np.ndarray,
        scale_x: float = 1.0,
        scale_y: float = 1.0,
        size_scale: float = 1.0,
        canvas: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, List[TrackedFace]]:
        """Detect on ``frame`` and draw onto ``canvas`` (a copy of ``frame`` by default).

        ``scale_x``/``scale_y`` map detection coordinates onto a canvas of a
        different size than the frame.
        """
        detections = self._detect(frame)
        self._report_count(sum(1 for d in detections if isinstance(d, Detection) and d.is_valid()))
        faces = self.tracker.update(detections, scale_x=scale_x, scale_y=scale_y, size_scale=size_scale)
        target = frame.copy() if canvas is None else canvas
        draw_characters(target, faces)
        return target, faces

    def process_still(
        self,
        image: np.ndarray,
        canvas_size: Optional[Tuple[int, int]] = None,
    ) -> Tuple[np.ndarray, List[TrackedFace]]:
        """Still-image tick: draw onto a canvas of ``canvas_size`` (width, height)."""
        height, width = image.shape[:2]
        if canvas_size is None:
            canvas_w, canvas_h = width, height
            canvas = image.copy()
        else:
            canvas_w, canvas_h = canvas_size
            canvas = cv2.resize(image, (int(canvas_w), int(canvas_h)), interpolation=cv2.INTER_LINEAR)
        return self.process_frame(
            image,
            scale_x=canvas_w / float(width),
            scale_y=canvas_h / float(height),
            size_scale=STILL_IMAGE_SIZE_SCALE,
            canvas=canvas,
        )

    def reset(self) -> None:
        self.tracker.reset()
        self.faces_detected = 0

    def _detect(self, frame: np.ndarray) -> List[Detection]:
        try:
            return list(self.detector.detect(frame))
        except Exception as exc:
            LOGGER.warning("Face detection failed (%s); treating frame as empty", exc)
            return []

    def _report_count(self, count: int) -> None:
        if count > self.faces_detected:
            LOGGER.info("Detected %d face(s)", count)
            self.faces_detected = count
        elif count == 0 and self.faces_detected > 0:
            LOGGER.info("No faces detected")
            self.faces_detected = 0
