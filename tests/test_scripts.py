import csv

import cv2
import numpy as np

from hog_detector import SupportVectorMachine
from hog_detector import run_detector as detect_script
from hog_detector import train as train_script
from hog_detector.features import load_extractor
from hog_detector.file_io import DETECTION_COLUMNS


def make_crops(root, n_per_class=8):
    rng = np.random.default_rng(3)
    images_dir = root / "images"
    images_dir.mkdir()
    meta = root / "metadata.tsv"
    with meta.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, delimiter="\t")
        w.writerow(["output_filename", "labels"])
        for i in range(n_per_class):
            pos = (rng.random((48, 24)) * 40).astype(np.uint8)
            pos[:, 9:15] = 220
            cv2.imwrite(str(images_dir / f"pos_{i}.png"), pos)
            w.writerow([f"pos_{i}.png", "['pos']"])

            neg = (rng.random((48, 24)) * 255).astype(np.uint8)
            cv2.imwrite(str(images_dir / f"neg_{i}.png"), neg)
            w.writerow([f"neg_{i}.png", "['neg']"])
    return meta, images_dir


def test_train_then_detect(tmp_path, capsys):
    meta, images_dir = make_crops(tmp_path)
    out = tmp_path / "outputs"

    train_script.main([
        "--images-dir", str(images_dir),
        "--metadata-path", str(meta),
        "--out-dir", str(out),
        "--orientations", "9",
        "--window-height", "48",
        "--window-width", "24",
    ])

    model_dir = out / "hog_svm"
    assert (model_dir / train_script.MODEL_FILENAME).exists()
    with (model_dir / train_script.EXTRACTOR_FILENAME).open(encoding="utf-8") as f:
        extractor = load_extractor(f)
    svm = SupportVectorMachine(str(model_dir / train_script.MODEL_FILENAME))
    assert svm.feature_dim == extractor.feature_dim
    assert "=== Test ===" in capsys.readouterr().out

    scene = np.full((72, 48), 20, dtype=np.uint8)
    scene[12:60, 21:27] = 220
    scene_path = tmp_path / "scene.png"
    cv2.imwrite(str(scene_path), scene)

    det_dir = tmp_path / "dets"
    detect_script.main([
        str(scene_path),
        "--model-dir", str(model_dir),
        "--out-dir", str(det_dir),
        "--threshold", "-100",
        "--render",
    ])

    with (det_dir / "scene_detections.tsv").open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f, delimiter="\t"))
    assert rows[0] == DETECTION_COLUMNS
    assert len(rows) > 1
    assert (det_dir / "scene_hog.png").exists()
