"""RetinaFace detection via InsightFace."""

from __future__ import annotations

import logging
import os
import platform
from typing import List, Optional, Tuple

import numpy as np

from komyaku.types import Detection

LOGGER = logging.getLogger("komyaku.detectors.face")


def _default_providers() -> Tuple[str, ...]:
    """Choose default ONNX providers for RetinaFace."""
    system = platform.system()
    machine = platform.machine().lower()
    if system == "Darwin" and machine in {"arm64", "aarch64"}:
        return ("CoreMLExecutionProvider", "CPUExecutionProvider")
    return ("CPUExecutionProvider",)


class RetinaFaceDetector:
    """Wrapper around the InsightFace RetinaFace detector producing ``Detection`` lists."""

    def __init__(
        self,
        providers: Optional[Tuple[str, ...]] = None,
        det_size: Tuple[int, int] = (640, 640),
        det_thresh: float = 0.5,
        max_faces: int = 0,
        model_name: str = "buffalo_s",
    ) -> None:
        os.environ.setdefault("OMP_NUM_THREADS", "2")
        os.environ.setdefault("ORT_INTRA_OP_NUM_THREADS", "2")
        try:
            from insightface.app import FaceAnalysis
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "insightface is required for RetinaFaceDetector. "
                "Install it via `pip install komyaku-overlay[detect]`."
            ) from exc

        self.det_size = det_size
        self.det_thresh = det_thresh
        self.max_faces = max_faces
        self.providers = tuple(providers) if providers is not None else _default_providers()
        self.app = FaceAnalysis(name=model_name, allowed_modules=["detection"], providers=list(self.providers))
        self.app.prepare(ctx_id=0, det_size=self.det_size)
        LOGGER.info(
            "Loaded RetinaFace detector model=%s det_size=%s det_thresh=%.2f providers=%s",
            model_name,
            det_size,
            det_thresh,
            self.providers,
        )

    def detect(self, image: np.ndarray) -> List[Detection]:
        """Run RetinaFace on a BGR image and return detections above the score threshold."""
        faces = self.app.get(image, max_num=self.max_faces)
        detections: List[Detection] = []
        for face in faces:
            score = float(face.det_score)
            if score < self.det_thresh:
                continue
            landmarks = np.asarray(face.kps, dtype=np.float32) if face.kps is not None else None
            detections.append(
                Detection.from_xyxy(
                    tuple(float(v) for v in face.bbox[:4]),  # type: ignore[arg-type]
                    landmarks=landmarks,
                    score=score,
                )
            )
        return detections
