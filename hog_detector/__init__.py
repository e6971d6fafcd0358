"""
HOG + SVM object detection.

Components:
- features: FeatureExtractor interface, HOG extractor, factory by tag
- problem: libsvm node encoding of feature vectors
- svm: SupportVectorMachine (train / predict / weights / persistence)
- detection: image pyramid, sliding windows, NMS
- dataset: labelled image database from a metadata TSV
- file_io: classifier and detection files

Usage:
    from hog_detector import SupportVectorMachine, create_extractor, detect

    extractor = create_extractor("hog")
    svm = SupportVectorMachine("outputs/hog_svm/svm_model.joblib")
    for d in detect(image, extractor, svm):
        print(d)
"""

from .detection import Detection, build_pyramid, detect, non_max_suppression
from .errors import CorruptModelError, NoModelError, SizeMismatchError, SvmError
from .features import (
    EXTRACTOR_REGISTRY,
    FeatureExtractor,
    HOGFeatureExtractor,
    create_extractor,
    get_default_parameters,
)
from .ml_config import SvmParameters
from .svm import SupportVectorMachine

__all__ = [
    "CorruptModelError",
    "Detection",
    "EXTRACTOR_REGISTRY",
    "FeatureExtractor",
    "HOGFeatureExtractor",
    "NoModelError",
    "SizeMismatchError",
    "SupportVectorMachine",
    "SvmError",
    "SvmParameters",
    "build_pyramid",
    "create_extractor",
    "detect",
    "get_default_parameters",
    "non_max_suppression",
]
