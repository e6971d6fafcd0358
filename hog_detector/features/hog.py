from __future__ import annotations
from typing import Iterator, Tuple

import numpy as np
from skimage.exposure import rescale_intensity
from skimage.feature import hog
from skimage.transform import resize as sk_resize

from ..ml_config import HOG
from .base import Feature, FeatureExtractor, ParametersMap, to_gray

BLOCK_NORMS = ("L1", "L1-sqrt", "L2", "L2-Hys")


class HOGFeatureExtractor(FeatureExtractor):
    """
    Histogram of Oriented Gradients over square cells.

    Gradients are unsigned (orientation modulo 180 degrees). A window of
    ``window_height x window_width`` pixels yields one flattened vector of
    (blocks_y, blocks_x, cells_per_block, cells_per_block, orientations).
    """

    feature_type = "hog"
    PARAMETERS = {
        "orientations": (int, HOG.orientations, "angular bins per cell histogram"),
        "cell_size": (int, HOG.cell_size, "side of a square cell, in pixels"),
        "cells_per_block": (int, HOG.cells_per_block, "side of a normalization block, in cells"),
        "block_norm": (str, HOG.block_norm, "block normalization, one of " + ", ".join(BLOCK_NORMS)),
        "transform_sqrt": (bool, HOG.transform_sqrt, "power-law compression before gradients"),
        "window_height": (int, HOG.window_height, "detection window height, in pixels"),
        "window_width": (int, HOG.window_width, "detection window width, in pixels"),
    }

    def __init__(self, params: ParametersMap | None = None):
        super().__init__(params)
        p = self.params
        if p["orientations"] < 1:
            raise ValueError(f"orientations must be >= 1, got {p['orientations']}")
        if p["cell_size"] < 1 or p["cells_per_block"] < 1:
            raise ValueError("cell_size and cells_per_block must be >= 1")
        if p["block_norm"] not in BLOCK_NORMS:
            raise ValueError(f"block_norm must be one of {BLOCK_NORMS}, got {p['block_norm']!r}")
        block_px = p["cell_size"] * p["cells_per_block"]
        if p["window_height"] < block_px or p["window_width"] < block_px:
            raise ValueError(
                f"window {p['window_height']}x{p['window_width']} is smaller than one "
                f"{block_px}x{block_px} block"
            )

    def _hog(self, gray: np.ndarray, feature_vector: bool, visualize: bool = False):
        p = self.params
        return hog(
            gray,
            orientations=p["orientations"],
            pixels_per_cell=(p["cell_size"], p["cell_size"]),
            cells_per_block=(p["cells_per_block"], p["cells_per_block"]),
            block_norm=p["block_norm"],
            transform_sqrt=p["transform_sqrt"],
            visualize=visualize,
            feature_vector=feature_vector,
        )

    def _window_gray(self, image: np.ndarray) -> np.ndarray:
        gray = to_gray(image)
        if gray.shape != self.window_shape:
            gray = sk_resize(gray, self.window_shape, anti_aliasing=True)
        return gray

    def __call__(self, image: np.ndarray) -> Feature:
        return self._hog(self._window_gray(image), feature_vector=True).astype(np.float32)

    @property
    def window_shape(self) -> Tuple[int, int]:
        return (self.params["window_height"], self.params["window_width"])

    @property
    def blocks_per_window(self) -> Tuple[int, int]:
        cs, cpb = self.params["cell_size"], self.params["cells_per_block"]
        h, w = self.window_shape
        return (h // cs - cpb + 1, w // cs - cpb + 1)

    @property
    def feature_dim(self) -> int:
        cpb = self.params["cells_per_block"]
        by, bx = self.blocks_per_window
        return by * bx * cpb * cpb * self.params["orientations"]

    def scale_factor(self) -> float:
        return 1.0 / float(self.params["cell_size"])

    def feature_map(self, image: np.ndarray) -> np.ndarray:
        gray = to_gray(image)
        block_px = self.params["cell_size"] * self.params["cells_per_block"]
        if gray.shape[0] < block_px or gray.shape[1] < block_px:
            raise ValueError(f"Image {gray.shape} is smaller than one {block_px}px block")
        return self._hog(gray, feature_vector=False)

    def sliding_windows(self, feature_map: np.ndarray) -> Iterator[Tuple[Tuple[int, int], Feature]]:
        # windows step one cell at a time; block (r, c) starts at pixel (r, c) * cell_size
        cs = self.params["cell_size"]
        wby, wbx = self.blocks_per_window
        n_rows, n_cols = feature_map.shape[:2]
        for r in range(n_rows - wby + 1):
            for c in range(n_cols - wbx + 1):
                window = feature_map[r:r + wby, c:c + wbx]
                yield (r * cs, c * cs), window.ravel().astype(np.float32)

    def render(self, image: np.ndarray) -> np.ndarray:
        """uint8 picture of the dominant gradient orientations per cell."""
        _, hog_image = self._hog(to_gray(image), feature_vector=True, visualize=True)
        return rescale_intensity(hog_image, out_range=(0, 255)).astype(np.uint8)
