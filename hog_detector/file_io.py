from __future__ import annotations
from pathlib import Path
from typing import Sequence, Union
import csv, logging

from .detection import Detection
from .svm import SupportVectorMachine

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DETECTION_COLUMNS = ["x", "y", "width", "height", "score", "level", "scale"]


def save_svm(filename: PathLike, svm: SupportVectorMachine):
    with open(filename, "wb") as fp:
        svm.save(fp)
    logger.info("Saved SVM model → %s", filename)


def load_svm(filename: PathLike, svm: SupportVectorMachine):
    with open(filename, "rb") as fp:
        svm.load(fp)


def save_detections(filename: PathLike, dets: Sequence[Detection]):
    with open(filename, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, delimiter="\t")
        w.writerow(DETECTION_COLUMNS)
        for d in dets:
            w.writerow([
                f"{d.x:.2f}",
                f"{d.y:.2f}",
                f"{d.width:.2f}",
                f"{d.height:.2f}",
                f"{d.score:.6f}",
                d.level,
                f"{d.scale:.4f}",
            ])
    logger.info("Saved %d detections → %s", len(dets), filename)
