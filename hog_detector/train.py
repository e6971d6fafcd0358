# hog_detector/train.py
# HOG + SVM window classifier trainer:
# - Stratified train/val/test split of a labelled metadata TSV (pos / neg crops)
# - Crops resized to the HOG window, one feature vector each
# - libsvm training with configurable kernel / C
# - Precision/recall report on val & test
# - Saves the SVM model + extractor config for hog_detector.run_detector
#
# Usage:
#   python -m hog_detector.train --images-dir data/images --metadata-path data/metadata.tsv
#   python -m hog_detector.train --kernel rbf --C 10 --out-dir outputs

from __future__ import annotations
import argparse, logging, random
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
from sklearn.metrics import classification_report

from .dataset import ImageDatabase, Item, stratified_split
from .features import FeatureExtractor, create_extractor, save_extractor
from .file_io import save_svm
from .ml_config import CLASSES, HOG, SVM, TRAIN, SvmParameters, KERNEL_TYPES, SVM_TYPES
from .svm import SupportVectorMachine

logger = logging.getLogger(__name__)

MODEL_FILENAME = "svm_model.joblib"
EXTRACTOR_FILENAME = "extractor.json"


# ------------------ utils ------------------
def set_seed(seed: int):
    random.seed(seed)
    np.random.seed(seed)


def build_feature_set(extractor: FeatureExtractor, items: List[Item]) -> Tuple[List[np.ndarray], List[float]]:
    db = ImageDatabase(items)
    return extractor.extract_database(db), db.labels


def report(title: str, svm: SupportVectorMachine, fset: Sequence[np.ndarray], labels: Sequence[float], n_jobs: int):
    if not fset:
        print(f"=== {title} === (empty split, skipped)")
        return
    scores = svm.predict_batch(fset, n_jobs=n_jobs)
    y_pred = np.where(scores > 0, 1.0, -1.0)
    print(f"=== {title} ===")
    print(classification_report(
        labels, y_pred,
        labels=CLASSES.label_values,
        target_names=CLASSES.class_names,
        digits=4,
        zero_division=0,
    ))


# ------------------ main ------------------
def main(argv=None):
    ap = argparse.ArgumentParser("HOG + SVM window classifier trainer")
    ap.add_argument("--images-dir", type=str, default=str(TRAIN.images_dir))
    ap.add_argument("--metadata-path", type=str, default=str(TRAIN.metadata_tsv))
    ap.add_argument("--out-dir", type=str, default=str(TRAIN.out_dir.parent))  # base outputs/
    ap.add_argument("--seed", type=int, default=TRAIN.seed)
    ap.add_argument("--n-jobs", type=int, default=TRAIN.n_jobs)
    ap.add_argument("--svm-type", type=str, default=SVM.svm_type, choices=SVM_TYPES)
    ap.add_argument("--kernel", type=str, default=SVM.kernel_type, choices=KERNEL_TYPES)
    ap.add_argument("--C", type=float, default=SVM.C)
    ap.add_argument("--nu", type=float, default=SVM.nu)
    ap.add_argument("--gamma", type=float, default=SVM.gamma, help="<= 0 means 1/num_features")
    ap.add_argument("--orientations", type=int, default=HOG.orientations)
    ap.add_argument("--cell-size", type=int, default=HOG.cell_size)
    ap.add_argument("--window-height", type=int, default=HOG.window_height)
    ap.add_argument("--window-width", type=int, default=HOG.window_width)
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-7s | %(message)s")
    set_seed(args.seed)

    out_dir = Path(args.out_dir) / "hog_svm"
    out_dir.mkdir(parents=True, exist_ok=True)

    # Load & split once
    db = ImageDatabase.from_metadata(Path(args.metadata_path), Path(args.images_dir), CLASSES.class_map)
    if not len(db):
        raise RuntimeError("No items loaded. Check paths, metadata columns, labels, and image filenames.")
    tr, va, te = stratified_split(
        db.items,
        train=TRAIN.split_train,
        val=TRAIN.split_val,
        test=TRAIN.split_test,
        seed=args.seed,
    )
    logger.info("Split: train=%d val=%d test=%d", len(tr), len(va), len(te))

    extractor = create_extractor("hog", {
        "orientations": args.orientations,
        "cell_size": args.cell_size,
        "window_height": args.window_height,
        "window_width": args.window_width,
    })
    X_tr, y_tr = build_feature_set(extractor, tr)
    X_va, y_va = build_feature_set(extractor, va)
    X_te, y_te = build_feature_set(extractor, te)
    logger.info("Extracted %s features: dim=%d", extractor.feature_type, extractor.feature_dim)

    parameter = SvmParameters(
        svm_type=args.svm_type,
        kernel_type=args.kernel,
        C=args.C,
        nu=args.nu,
        gamma=args.gamma,
    )
    svm = SupportVectorMachine()
    svm.train(y_tr, X_tr, parameter)

    report("Validation", svm, X_va, y_va, args.n_jobs)
    report("Test", svm, X_te, y_te, args.n_jobs)

    save_svm(out_dir / MODEL_FILENAME, svm)
    with (out_dir / EXTRACTOR_FILENAME).open("w", encoding="utf-8") as f:
        save_extractor(f, extractor)
    print(f"Saved model → {out_dir}")


if __name__ == "__main__":
    main()
