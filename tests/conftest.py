from __future__ import annotations

import numpy as np
import pytest

from hog_detector import SupportVectorMachine, SvmParameters, create_extractor

SMALL_HOG = {
    "orientations": 9,
    "cell_size": 6,
    "cells_per_block": 2,
    "window_height": 24,
    "window_width": 24,
}


@pytest.fixture
def separable_set():
    """Two clusters split by the sign of x0 - x1."""
    rng = np.random.default_rng(0)
    pos = rng.normal(loc=(2.0, -2.0, 0.0), scale=0.3, size=(20, 3))
    neg = rng.normal(loc=(-2.0, 2.0, 0.0), scale=0.3, size=(20, 3))
    features = [f.astype(np.float32) for f in np.vstack([pos, neg])]
    labels = [1.0] * 20 + [-1.0] * 20
    return labels, features


@pytest.fixture
def linear_svm(separable_set):
    labels, features = separable_set
    svm = SupportVectorMachine()
    svm.train(labels, features, SvmParameters(kernel_type="linear", C=1.0))
    return svm


@pytest.fixture
def small_extractor():
    return create_extractor("hog", SMALL_HOG)


@pytest.fixture
def textured_image():
    rng = np.random.default_rng(1)
    return (rng.random((48, 48)) * 255).astype(np.uint8)
