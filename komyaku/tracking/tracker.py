"""IoU-based face tracker with greedy (or optional Hungarian) association."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Type, TypeVar

import numpy as np
from scipy.optimize import linear_sum_assignment

from komyaku.animation.animator import AnimatorConfig, CharacterAnimator
from komyaku.animation.attributes import generate_attributes
from komyaku.io_utils import load_yaml
from komyaku.types import Detection, TrackedFace, iou

LOGGER = logging.getLogger("komyaku.tracking")

IOU_THRESHOLD = 0.5
MAX_AGE = 10
MATCHING_MODES = ("greedy", "hungarian")

_ConfigT = TypeVar("_ConfigT")


@dataclass
class TrackerConfig:
    iou_threshold: float = IOU_THRESHOLD
    max_age: int = MAX_AGE
    matching: str = "greedy"

    def __post_init__(self) -> None:
        if not 0.0 < float(self.iou_threshold) <= 1.0:
            raise ValueError(f"iou_threshold must be in (0, 1], got {self.iou_threshold}")
        if int(self.max_age) < 1:
            raise ValueError(f"max_age must be >= 1, got {self.max_age}")
        if self.matching not in MATCHING_MODES:
            raise ValueError(f"matching must be one of {MATCHING_MODES}, got {self.matching!r}")
        self.iou_threshold = float(self.iou_threshold)
        self.max_age = int(self.max_age)


def config_from_dict(cls: Type[_ConfigT], data: Dict[str, Any], section: str = "") -> _ConfigT:
    """Build a config dataclass from a mapping, ignoring (and logging) unknown keys."""
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        LOGGER.warning("Ignoring unknown %s config keys: %s", section or cls.__name__, unknown)
    return cls(**{k: v for k, v in data.items() if k in known})


def load_config(path: Path) -> Tuple[TrackerConfig, AnimatorConfig]:
    """Read ``tracker:`` and ``animator:`` sections from a YAML file."""
    data = load_yaml(path)
    tracker_cfg = config_from_dict(TrackerConfig, data.get("tracker") or {}, "tracker")
    animator_cfg = config_from_dict(AnimatorConfig, data.get("animator") or {}, "animator")
    return tracker_cfg, animator_cfg


class FaceTracker:
    """Maintains the live set of tracked faces for one tracking session.

    Not re-entrant: callers must finish one ``update`` (and consume its
    output) before starting the next.
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        animator_config: Optional[AnimatorConfig] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or TrackerConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.animator = CharacterAnimator(animator_config, rng=self.rng, clock=clock)
        self._tracks: List[TrackedFace] = []
        self._next_id = 1
        LOGGER.info(
            "Initialised FaceTracker iou_threshold=%.2f max_age=%d matching=%s",
            self.config.iou_threshold,
            self.config.max_age,
            self.config.matching,
        )

    @classmethod
    def from_yaml(cls, path: Path, **kwargs: Any) -> "FaceTracker":
        tracker_cfg, animator_cfg = load_config(path)
        return cls(config=tracker_cfg, animator_config=animator_cfg, **kwargs)

    @property
    def tracks(self) -> List[TrackedFace]:
        return list(self._tracks)

    @property
    def next_id(self) -> int:
        return self._next_id

    def reset(self) -> None:
        """Drop every live track and start a new session (ids restart at 1)."""
        LOGGER.info("Resetting tracker: discarding %d live tracks", len(self._tracks))
        self._tracks = []
        self._next_id = 1

    def update(
        self,
        detections: Optional[Iterable[Any]],
        scale_x: float = 1.0,
        scale_y: float = 1.0,
        size_scale: float = 1.0,
    ) -> List[TrackedFace]:
        """Associate this tick's detections and advance every live track's render state."""
        for name, value in (("scale_x", scale_x), ("scale_y", scale_y), ("size_scale", size_scale)):
            if not (math.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be a positive finite number, got {value}")
        tracks = self.associate(detections)
        now = self.animator.clock()
        for track in tracks:
            self.animator.advance(track, scale_x=scale_x, scale_y=scale_y, size_scale=size_scale, now=now)
        return tracks

    def associate(self, detections: Optional[Iterable[Any]]) -> List[TrackedFace]:
        """Match, birth, age and evict tracks for one tick; returns the live list."""
        dets = _valid_detections(detections)
        if not dets:
            for track in self._tracks:
                track.age += 1
            self._evict()
            return list(self._tracks)

        matched_tracks: Set[int] = set()
        matched_dets: Set[int] = set()
        for ti, di in self._match(dets):
            self._tracks[ti].match(dets[di])
            matched_tracks.add(ti)
            matched_dets.add(di)

        for di, det in enumerate(dets):
            if di not in matched_dets:
                self._birth(det)

        # newborns were not claimed this tick either, so they age too
        for ti, track in enumerate(self._tracks):
            if ti not in matched_tracks:
                track.age += 1

        self._evict()
        return list(self._tracks)

    def _match(self, dets: Sequence[Detection]) -> List[Tuple[int, int]]:
        if not self._tracks:
            return []
        scores = self._iou_matrix(dets)
        threshold = self.config.iou_threshold
        if self.config.matching == "hungarian":
            rows, cols = linear_sum_assignment(scores, maximize=True)
            return [(int(r), int(c)) for r, c in zip(rows, cols) if scores[r, c] >= threshold]

        # Greedy row-major scan: the earlier-indexed pair wins a conflict
        pairs: List[Tuple[int, int]] = []
        used_tracks: Set[int] = set()
        used_dets: Set[int] = set()
        for ti in range(scores.shape[0]):
            for di in range(scores.shape[1]):
                if scores[ti, di] < threshold or ti in used_tracks or di in used_dets:
                    continue
                pairs.append((ti, di))
                used_tracks.add(ti)
                used_dets.add(di)
        return pairs

    def _iou_matrix(self, dets: Sequence[Detection]) -> np.ndarray:
        scores = np.zeros((len(self._tracks), len(dets)), dtype=np.float64)
        for ti, track in enumerate(self._tracks):
            for di, det in enumerate(dets):
                scores[ti, di] = iou(track.box, det.box)
        return scores

    def _birth(self, det: Detection) -> TrackedFace:
        track = TrackedFace(
            track_id=self._next_id,
            box=det.box,
            landmarks=det.landmarks,
            attributes=generate_attributes(self.rng),
        )
        self._next_id += 1
        self._tracks.append(track)
        LOGGER.debug(
            "Born track %d at %s eye_type=%s palette=%s",
            track.track_id,
            track.box,
            track.attributes.eye_type.value,
            track.attributes.palette.name,
        )
        return track

    def _evict(self) -> None:
        max_age = self.config.max_age
        kept: List[TrackedFace] = []
        for track in self._tracks:
            if track.age >= max_age:
                LOGGER.debug("Evicted track %d after %d unmatched ticks", track.track_id, track.age)
                continue
            kept.append(track)
        self._tracks = kept


def _valid_detections(detections: Optional[Iterable[Any]]) -> List[Detection]:
    out: List[Detection] = []
    for idx, det in enumerate(detections or []):
        if not isinstance(det, Detection) or not det.is_valid():
            LOGGER.warning("Dropping malformed detection #%d: %r", idx, det)
            continue
        out.append(det)
    return out
