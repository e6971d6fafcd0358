# hog_detector/run_detector.py
# Multi-scale sliding-window detection with a model saved by hog_detector.train.
# Writes one <image stem>_detections.tsv per input image.
#
# Usage:
#   python -m hog_detector.run_detector --model-dir outputs/hog_svm street.png
#   python -m hog_detector.run_detector --model-dir outputs/hog_svm --threshold 0.5 --render *.png

from __future__ import annotations
import argparse, logging
from pathlib import Path

import cv2

from .dataset import read_gray
from .detection import detect
from .features import load_extractor
from .file_io import load_svm, save_detections
from .ml_config import DETECT, OUTPUTS_DIR
from .svm import SupportVectorMachine
from .train import EXTRACTOR_FILENAME, MODEL_FILENAME

logger = logging.getLogger(__name__)


def main(argv=None):
    ap = argparse.ArgumentParser("HOG + SVM sliding-window detector")
    ap.add_argument("images", type=str, nargs="+")
    ap.add_argument("--model-dir", type=str, default=str(OUTPUTS_DIR / "hog_svm"))
    ap.add_argument("--out-dir", type=str, default=str(OUTPUTS_DIR / "detections"))
    ap.add_argument("--threshold", type=float, default=DETECT.threshold)
    ap.add_argument("--downscale", type=float, default=DETECT.downscale)
    ap.add_argument("--max-levels", type=int, default=DETECT.max_levels)
    ap.add_argument("--nms-iou", type=float, default=DETECT.nms_iou)
    ap.add_argument("--n-jobs", type=int, default=DETECT.n_jobs)
    ap.add_argument("--render", action="store_true", help="Also save the HOG visualisation of each image")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-7s | %(message)s")

    model_dir = Path(args.model_dir)
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    with (model_dir / EXTRACTOR_FILENAME).open("r", encoding="utf-8") as f:
        extractor = load_extractor(f)
    svm = SupportVectorMachine()
    load_svm(model_dir / MODEL_FILENAME, svm)
    if svm.feature_dim != extractor.feature_dim:
        raise RuntimeError(
            f"Model expects {svm.feature_dim}-dim features but {extractor!r} "
            f"produces {extractor.feature_dim}"
        )

    for image_path in map(Path, args.images):
        image = read_gray(image_path)
        dets = detect(
            image,
            extractor,
            svm,
            threshold=args.threshold,
            downscale=args.downscale,
            max_levels=args.max_levels,
            nms_iou=args.nms_iou,
            n_jobs=args.n_jobs,
        )
        save_detections(out_dir / f"{image_path.stem}_detections.tsv", dets)
        print(f"{image_path.name}: {len(dets)} detections")
        for d in dets:
            print(f"  {d}")

        if args.render:
            cv2.imwrite(str(out_dir / f"{image_path.stem}_hog.png"), extractor.render(image))


if __name__ == "__main__":
    main()
