import csv

import cv2
import numpy as np
import pytest

from hog_detector.dataset import (
    ImageDatabase,
    load_items,
    parse_labels_str,
    read_gray,
    stratified_split,
)
from hog_detector.ml_config import CLASSES


def write_dataset(root, rows):
    images_dir = root / "images"
    images_dir.mkdir()
    meta = root / "metadata.tsv"
    with meta.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, delimiter="\t")
        w.writerow(["idx", "output_filename", "labels"])
        for i, (name, label, write_image) in enumerate(rows):
            if write_image:
                cv2.imwrite(str(images_dir / name), np.full((10, 8), 40 * i, dtype=np.uint8))
            w.writerow([i, name, label])
    return meta, images_dir


@pytest.mark.parametrize("raw,expected", [
    ("['pos']", ["pos"]),
    ('["neg"]', ["neg"]),
    ("pos", ["pos"]),
    ("", []),
])
def test_parse_labels_str(raw, expected):
    assert parse_labels_str(raw) == expected


def test_load_items_skips_bad_rows(tmp_path):
    meta, images_dir = write_dataset(tmp_path, [
        ("0.png", "['pos']", True),
        ("1.png", "neg", True),
        ("2.png", "['cat']", True),   # unknown class
        ("3.png", "pos", False),      # missing file
        ("", "pos", False),           # no filename
    ])
    items = load_items(meta, images_dir, CLASSES.class_map)

    assert [(p.name, y) for p, y in items] == [("0.png", 1.0), ("1.png", -1.0)]


def test_image_database_iterates_gray_images(tmp_path):
    meta, images_dir = write_dataset(tmp_path, [
        ("0.png", "pos", True),
        ("1.png", "neg", True),
    ])
    db = ImageDatabase.from_metadata(meta, images_dir, CLASSES.class_map)

    assert len(db) == 2
    assert db.labels == [1.0, -1.0]
    images = [img for img, _ in db]
    assert images[0].shape == (10, 8)
    assert images[1].dtype == np.uint8
    assert int(images[1][0, 0]) == 40


def test_read_gray_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_gray(tmp_path / "nope.png")


def test_stratified_split_keeps_class_balance(tmp_path):
    items = [(tmp_path / f"p{i}.png", 1.0) for i in range(20)] + \
            [(tmp_path / f"n{i}.png", -1.0) for i in range(20)]
    tr, va, te = stratified_split(items, train=0.7, val=0.15, test=0.15, seed=0)

    assert len(tr) + len(va) + len(te) == 40
    assert sum(1 for _, y in tr if y > 0) == 14
    assert sum(1 for _, y in tr if y < 0) == 14
    assert set(tr).isdisjoint(va) and set(tr).isdisjoint(te)

    again = stratified_split(items, train=0.7, val=0.15, test=0.15, seed=0)
    assert again == (tr, va, te)
