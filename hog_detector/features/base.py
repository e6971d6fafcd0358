from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Iterator, List, Tuple

import cv2
import numpy as np
from skimage.util import img_as_float

Feature = np.ndarray
FeatureCollection = List[np.ndarray]
ParametersMap = Dict[str, Any]

# key -> (type, default, effect)
ParameterSpec = Dict[str, Tuple[type, Any, str]]


def to_gray(image: np.ndarray) -> np.ndarray:
    """Float gray image in [0, 1]; colour inputs are expected in OpenCV BGR order."""
    image = np.asarray(image)
    if image.ndim == 3:
        if image.dtype == np.float64:
            # cvtColor has no 64-bit float path
            image = image.astype(np.float32)
        if image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        elif image.shape[2] == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            image = image[:, :, 0]
    if image.ndim != 2:
        raise ValueError(f"Expected a 2-D gray or 3-D colour image, got shape {image.shape}")
    return img_as_float(image)


def _coerce(key: str, typ: type, value: Any) -> Any:
    if typ is bool and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered not in ("1", "0", "true", "false", "yes", "no"):
            raise ValueError(f"Parameter {key!r} expects a boolean, got {value!r}")
        return lowered in ("1", "true", "yes")
    if typ is int and isinstance(value, (float, np.floating)) and not float(value).is_integer():
        raise ValueError(f"Parameter {key!r} expects int, got {value!r}")
    try:
        return typ(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Parameter {key!r} expects {typ.__name__}, got {value!r}") from e


class FeatureExtractor(ABC):
    """
    Turns images into fixed-length feature vectors.

    Subclasses declare ``feature_type`` (the factory tag) and ``PARAMETERS``,
    the table of accepted configuration keys with their types and defaults.
    """

    feature_type: str = ""
    PARAMETERS: ParameterSpec = {}

    def __init__(self, params: ParametersMap | None = None):
        self.params = self.resolve_parameters(params)

    @classmethod
    def get_default_parameters(cls) -> ParametersMap:
        return {key: default for key, (_, default, _) in cls.PARAMETERS.items()}

    @classmethod
    def resolve_parameters(cls, params: ParametersMap | None = None) -> ParametersMap:
        """Defaults overlaid with ``params``; unknown keys are rejected."""
        resolved = cls.get_default_parameters()
        for key, value in (params or {}).items():
            if key not in cls.PARAMETERS:
                raise ValueError(
                    f"Unknown parameter {key!r} for {cls.feature_type!r} features "
                    f"(known: {sorted(cls.PARAMETERS)})"
                )
            typ = cls.PARAMETERS[key][0]
            resolved[key] = _coerce(key, typ, value)
        return resolved

    def get_parameters(self) -> ParametersMap:
        return dict(self.params)

    # ------------------ per-image ------------------
    @abstractmethod
    def __call__(self, image: np.ndarray) -> Feature:
        """Feature vector of one image (resized to the extractor window)."""

    @property
    @abstractmethod
    def feature_dim(self) -> int:
        ...

    @property
    @abstractmethod
    def window_shape(self) -> Tuple[int, int]:
        """(height, width) in pixels of the region one feature vector covers."""

    @abstractmethod
    def scale_factor(self) -> float:
        """Ratio of the response map size to the input image size."""

    # ------------------ dense / sliding-window ------------------
    @abstractmethod
    def feature_map(self, image: np.ndarray) -> np.ndarray:
        """Dense response over a whole image, not flattened."""

    @abstractmethod
    def sliding_windows(
        self, feature_map: np.ndarray
    ) -> Iterator[Tuple[Tuple[int, int], Feature]]:
        """Yield ((y, x) window origin in pixels, feature vector) for every window."""

    def render(self, image: np.ndarray) -> np.ndarray:
        raise NotImplementedError(f"{self.feature_type!r} features have no visualisation")

    # ------------------ collections ------------------
    def extract_database(self, db: Iterable) -> FeatureCollection:
        """One vector per database image, in database order."""
        return [self(image) for image, _ in db]

    def extract_pyramid(self, im_pyr: Iterable[np.ndarray]) -> List[np.ndarray]:
        return [self.feature_map(level) for level in im_pyr]

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
        return f"{type(self).__name__}({args})"
