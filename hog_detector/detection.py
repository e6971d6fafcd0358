"""
Sliding-window detection

Runs a trained classifier over every window of an image pyramid.

Algorithm:
1. Convert to float gray and build a Gaussian pyramid, stopping once a
   level is smaller than the detection window
2. Compute one dense feature map per level
3. Cut the map into window-sized feature vectors (one cell stride)
4. Score all windows with classifier.predict_batch()
5. Keep windows scoring above the threshold, mapped back to level-0 pixels
6. Greedy non-maximum suppression
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from skimage.transform import pyramid_gaussian

from .features import FeatureExtractor, to_gray
from .ml_config import DETECT

logger = logging.getLogger(__name__)


@dataclass
class Detection:
    """
    One window the classifier accepted.

    Attributes:
        x, y: top-left corner in original image pixels
        width, height: box size in original image pixels
        score: SVM decision value
        level: pyramid level the window came from
        scale: original size / level size
    """

    x: float
    y: float
    width: float
    height: float
    score: float
    level: int = 0
    scale: float = 1.0

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def area(self) -> float:
        return self.width * self.height

    def iou(self, other: "Detection") -> float:
        ix = max(0.0, min(self.x2, other.x2) - max(self.x, other.x))
        iy = max(0.0, min(self.y2, other.y2) - max(self.y, other.y))
        inter = ix * iy
        union = self.area + other.area - inter
        return inter / union if union > 0 else 0.0

    def __repr__(self) -> str:
        cx, cy = self.center
        return (
            f"Detection(center=({cx:.0f}, {cy:.0f}), size={self.width:.0f}x{self.height:.0f}, "
            f"score={self.score:.3f}, level={self.level})"
        )


def build_pyramid(
    image: np.ndarray,
    window_shape: Tuple[int, int],
    downscale: float = DETECT.downscale,
    max_levels: int = DETECT.max_levels,
) -> List[Tuple[np.ndarray, float]]:
    """[(level image, scale)] from full resolution down to the window size.

    ``scale`` is the width ratio original / level. Levels are rounded up per
    axis, so the height ratio can differ slightly; detect() maps each axis
    with its own ratio.
    """
    if downscale <= 1.0:
        raise ValueError(f"downscale must be > 1, got {downscale}")
    if max_levels < 1:
        raise ValueError(f"max_levels must be >= 1, got {max_levels}")
    gray = to_gray(image)
    win_h, win_w = window_shape
    levels: List[Tuple[np.ndarray, float]] = []
    for level in pyramid_gaussian(gray, max_layer=max_levels - 1, downscale=downscale):
        if level.shape[0] < win_h or level.shape[1] < win_w:
            break
        levels.append((level, gray.shape[1] / level.shape[1]))
    return levels


def non_max_suppression(
    detections: Sequence[Detection], iou_threshold: float = DETECT.nms_iou
) -> List[Detection]:
    """Greedy NMS: highest score first, drop boxes overlapping a kept one."""
    ordered = sorted(detections, key=lambda d: d.score, reverse=True)
    kept: List[Detection] = []
    for det in ordered:
        if all(det.iou(k) <= iou_threshold for k in kept):
            kept.append(det)
    return kept


def detect(
    image: np.ndarray,
    extractor: FeatureExtractor,
    classifier,
    threshold: float = DETECT.threshold,
    downscale: float = DETECT.downscale,
    max_levels: int = DETECT.max_levels,
    nms_iou: Optional[float] = DETECT.nms_iou,
    n_jobs: int = DETECT.n_jobs,
) -> List[Detection]:
    """
    Multi-scale sliding-window detection.

    Args:
        image: gray or BGR image
        extractor: feature extractor the classifier was trained with
        classifier: anything with predict_batch(fset, n_jobs=...)
        threshold: keep windows whose score is strictly above this
        nms_iou: overlap threshold for suppression, None disables it

    Returns:
        Detections sorted by descending score
    """
    start_time = time.perf_counter()
    win_h, win_w = extractor.window_shape
    img_h, img_w = np.asarray(image).shape[:2]
    levels = build_pyramid(image, extractor.window_shape, downscale, max_levels)

    candidates: List[Detection] = []
    for level_idx, (level_image, scale) in enumerate(levels):
        scale_y = img_h / level_image.shape[0]
        scale_x = img_w / level_image.shape[1]
        origins, fset = [], []
        for origin, feature in extractor.sliding_windows(extractor.feature_map(level_image)):
            origins.append(origin)
            fset.append(feature)
        if not fset:
            continue

        scores = classifier.predict_batch(fset, n_jobs=n_jobs)
        for (y, x), score in zip(origins, scores):
            if score > threshold:
                candidates.append(
                    Detection(
                        x=x * scale_x,
                        y=y * scale_y,
                        width=win_w * scale_x,
                        height=win_h * scale_y,
                        score=float(score),
                        level=level_idx,
                        scale=scale,
                    )
                )
        logger.debug(
            "Level %d (scale %.2f): %d windows, %d above threshold",
            level_idx,
            scale,
            len(fset),
            sum(1 for s in scores if s > threshold),
        )

    if nms_iou is not None:
        detections = non_max_suppression(candidates, nms_iou)
    else:
        detections = sorted(candidates, key=lambda d: d.score, reverse=True)

    logger.info(
        "Detected %d objects (%d candidates, %d levels) in %.1fms",
        len(detections),
        len(candidates),
        len(levels),
        (time.perf_counter() - start_time) * 1000,
    )
    return detections
