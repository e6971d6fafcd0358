from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

# ====== GLOBAL PATHS ======
# point DATA_ROOT anywhere you like (scripts accept --images-dir / --metadata-path too)
DATA_ROOT = Path("data")

# folder that contains the images referenced by the metadata
IMAGES_DIR = DATA_ROOT / "images"

# the *file* (not folder) for your metadata: tsv with output_filename / labels columns
METADATA_TSV = DATA_ROOT / "metadata.tsv"

OUTPUTS_DIR = Path("outputs")

# libsvm names for the supported solvers / kernels
SVM_TYPES = ("c_svc", "nu_svc")
KERNEL_TYPES = ("linear", "poly", "rbf", "sigmoid")


# ====== CLASS / LABEL CONFIG ======
@dataclass
class ClassConfig:
    class_names: List[str] = field(default_factory=lambda: ["neg", "pos"])
    label_values: List[float] = field(default_factory=lambda: [-1.0, 1.0])

    @property
    def class_map(self) -> Dict[str, float]:
        return dict(zip(self.class_names, self.label_values))

    @property
    def num_classes(self) -> int:
        return len(self.class_names)


# ====== HOG FEATURE CONFIG ======
@dataclass
class HogConfig:
    orientations: int = 18          # angular bins per cell histogram
    cell_size: int = 6              # square cell side, in pixels
    cells_per_block: int = 2        # square normalization block side, in cells
    block_norm: str = "L2-Hys"
    transform_sqrt: bool = False
    window_height: int = 96         # detection window (H, W), multiple of cell_size
    window_width: int = 48


# ====== SVM CONFIG ======
@dataclass
class SvmParameters:
    """Hyper-parameters handed to the libsvm solver (mirrors ``svm_parameter``)."""
    svm_type: str = "c_svc"
    kernel_type: str = "linear"
    degree: int = 3
    gamma: float = 0.0              # <= 0 means 1 / num_features
    coef0: float = 0.0
    C: float = 1.0
    nu: float = 0.5
    eps: float = 1e-3
    cache_size: float = 100.0       # MB
    shrinking: bool = True
    probability: bool = False
    class_weight: Dict[float, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.svm_type not in SVM_TYPES:
            raise ValueError(f"svm_type must be one of {SVM_TYPES}, got {self.svm_type!r}")
        if self.kernel_type not in KERNEL_TYPES:
            raise ValueError(f"kernel_type must be one of {KERNEL_TYPES}, got {self.kernel_type!r}")
        if self.C <= 0:
            raise ValueError(f"C must be > 0, got {self.C}")
        if not 0.0 < self.nu <= 1.0:
            raise ValueError(f"nu must be in (0, 1], got {self.nu}")
        if self.eps <= 0:
            raise ValueError(f"eps must be > 0, got {self.eps}")
        if self.cache_size <= 0:
            raise ValueError(f"cache_size must be > 0, got {self.cache_size}")


# ====== DETECTION CONFIG ======
@dataclass
class DetectConfig:
    downscale: float = 1.2          # pyramid step between levels
    max_levels: int = 8
    threshold: float = 0.0          # minimum SVM decision value kept
    nms_iou: float = 0.3            # overlap above which the weaker box is dropped
    n_jobs: int = 1                 # joblib threads for window scoring


# ====== TRAINING CONFIG (HOG + SVM) ======
@dataclass
class TrainConfig:
    images_dir: Path = IMAGES_DIR
    metadata_tsv: Path = METADATA_TSV
    out_dir: Path = OUTPUTS_DIR / "hog_svm"
    seed: int = 42
    n_jobs: int = 1
    # split ratios
    split_train: float = 0.7
    split_val: float = 0.15
    split_test: float = 0.15


# SINGLETONS
CLASSES = ClassConfig()
HOG = HogConfig()
SVM = SvmParameters()
DETECT = DetectConfig()
TRAIN = TrainConfig()
