"""
libsvm node encoding.

A feature vector of length D is stored as D + 1 ``svm_node`` records:
``(index=i, value=feature[i])`` for every dimension followed by one record
with ``index=-1`` marking the end of the vector. Training sets pack all
vectors into one contiguous buffer and keep an offsets array pointing at the
first node of each vector.

scikit-learn's sparse libsvm path consumes the same nodes as CSR rows, so
the buffers are converted with ``to_csr`` right before a fit or a predict.
"""

from __future__ import annotations
from typing import Optional, Sequence

import numpy as np
import scipy.sparse as sp

from .errors import SizeMismatchError

SVM_NODE = np.dtype([("index", np.int32), ("value", np.float64)])
END_OF_VECTOR = -1


def encode_feature(feature) -> np.ndarray:
    """Encode one feature vector as D + 1 sentinel-terminated nodes."""
    values = np.asarray(feature, dtype=np.float64).ravel()
    dim = values.size
    nodes = np.empty(dim + 1, dtype=SVM_NODE)
    nodes["index"][:dim] = np.arange(dim, dtype=np.int32)
    nodes["value"][:dim] = values
    nodes[dim] = (END_OF_VECTOR, 0.0)
    return nodes


def to_csr(data: np.ndarray, offsets: np.ndarray, dim: int) -> sp.csr_matrix:
    """View packed nodes as a (len(offsets), dim) CSR matrix, sentinels dropped."""
    # libsvm (and sklearn's wrapper of it) only takes 32-bit sparse indices
    keep = data["index"] != END_OF_VECTOR
    n = len(offsets)
    indptr = np.empty(n + 1, dtype=np.int32)
    # every vector before row k contributed exactly one sentinel
    indptr[:-1] = np.asarray(offsets, dtype=np.int64) - np.arange(n, dtype=np.int64)
    indptr[-1] = int(keep.sum())
    return sp.csr_matrix(
        (data["value"][keep], data["index"][keep], indptr), shape=(n, dim)
    )


class TrainingProblem:
    """
    Labels plus packed node buffer for one training call.

    Attributes:
        y: float64 labels, copied verbatim
        x: offsets of each vector's first node inside ``data``
        data: packed nodes, ``l * (dim + 1)`` records
        dim: dimensionality shared by every vector

    Used as a context manager: leaving the block drops ``y`` and ``x``.
    ``data`` survives so the classifier can keep it with the trained model.
    """

    def __init__(self, y: np.ndarray, x: np.ndarray, data: np.ndarray, dim: int):
        self.y: Optional[np.ndarray] = y
        self.x: Optional[np.ndarray] = x
        self.data = data
        self.dim = dim

    @property
    def l(self) -> int:
        return len(self.data) // (self.dim + 1)

    @classmethod
    def build(cls, labels: Sequence[float], fset: Sequence) -> "TrainingProblem":
        if len(labels) != len(fset):
            raise SizeMismatchError(
                f"Database size is different from feature set size! "
                f"({len(labels)} labels, {len(fset)} features)"
            )
        if len(fset) == 0:
            raise ValueError("Cannot build a training problem from an empty feature set")

        n_vecs = len(fset)
        dim = np.asarray(fset[0]).size
        stride = dim + 1

        y = np.asarray(labels, dtype=np.float64).copy()
        x = np.arange(n_vecs, dtype=np.int64) * stride
        data = np.empty(n_vecs * stride, dtype=SVM_NODE)

        for k, feature in enumerate(fset):
            if np.asarray(feature).size != dim:
                raise SizeMismatchError(
                    f"Feature {k} has {np.asarray(feature).size} values, expected {dim}"
                )
            data[x[k]:x[k] + stride] = encode_feature(feature)

        return cls(y=y, x=x, data=data, dim=dim)

    def to_csr(self) -> sp.csr_matrix:
        if self.x is None:
            raise RuntimeError("Training problem already released")
        return to_csr(self.data, self.x, self.dim)

    def release(self):
        self.y = None
        self.x = None

    def __enter__(self) -> "TrainingProblem":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
