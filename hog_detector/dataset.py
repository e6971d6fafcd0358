from __future__ import annotations
from pathlib import Path
from typing import Dict, Iterator, List, Tuple
import ast, csv, logging, random

import cv2
import numpy as np

logger = logging.getLogger(__name__)

Item = Tuple[Path, float]


def read_gray(path: Path) -> np.ndarray:
    img = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if img is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    return img


def parse_labels_str(lbl_str: str) -> List[str]:
    """
    Accepts label strings like "['pos']" (list-like) or "pos" (single token).
    Returns [label] or [] if empty.
    """
    s = (lbl_str or "").strip()
    if not s:
        return []
    try:
        obj = ast.literal_eval(s)
        if isinstance(obj, list) and obj:
            return [str(obj[0])]
    except (ValueError, SyntaxError):
        pass
    return [s]


def load_items(metadata_tsv: Path, images_dir: Path, class_map: Dict[str, float]) -> List[Item]:
    items: List[Item] = []
    dropped = 0
    with Path(metadata_tsv).open("r", encoding="utf-8") as f:
        reader = csv.DictReader(f, delimiter="\t")
        for row in reader:
            out_name = (row.get("output_filename") or "").strip()
            labels_str = (row.get("labels") or "").strip()
            if not out_name:
                dropped += 1
                continue
            img_path = Path(images_dir) / out_name
            if not img_path.exists():
                dropped += 1
                continue
            labels = parse_labels_str(labels_str)
            if not labels or labels[0] not in class_map:
                dropped += 1
                continue
            items.append((img_path, float(class_map[labels[0]])))
    logger.info("Loaded %d items from %s (%d rows dropped)", len(items), metadata_tsv, dropped)
    return items


def stratified_split(
    items: List[Item], train=0.7, val=0.15, test=0.15, seed: int = 42
) -> Tuple[List[Item], List[Item], List[Item]]:
    by_class: Dict[float, List[Item]] = {}
    for it in items:
        by_class.setdefault(it[1], []).append(it)
    rng = random.Random(seed)
    train_set: List[Item] = []
    val_set: List[Item] = []
    test_set: List[Item] = []
    for _, lst in sorted(by_class.items()):
        rng.shuffle(lst)
        n = len(lst)
        n_tr = int(round(n * train))
        n_va = int(round(n * val))
        if n_tr + n_va > n:
            n_va = max(0, n - n_tr)
        train_set.extend(lst[:n_tr])
        val_set.extend(lst[n_tr:n_tr + n_va])
        test_set.extend(lst[n_tr + n_va:])
    rng.shuffle(train_set); rng.shuffle(val_set); rng.shuffle(test_set)
    return train_set, val_set, test_set


class ImageDatabase:
    """Ordered labelled images; iterating yields (gray uint8 image, label)."""

    def __init__(self, items: List[Item]):
        self.items = list(items)

    @classmethod
    def from_metadata(
        cls, metadata_tsv: Path, images_dir: Path, class_map: Dict[str, float]
    ) -> "ImageDatabase":
        return cls(load_items(metadata_tsv, images_dir, class_map))

    @property
    def labels(self) -> List[float]:
        return [y for _, y in self.items]

    def __len__(self):
        return len(self.items)

    def __iter__(self) -> Iterator[Tuple[np.ndarray, float]]:
        for path, y in self.items:
            yield read_gray(path), y
