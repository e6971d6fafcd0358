"""
Binary SVM classifier over HOG feature vectors.

Wraps the libsvm solver bundled with scikit-learn. Features are marshalled
through the libsvm node encoding in ``problem.py`` and trained on the sparse
code path, so the solver sees exactly the ``svm_node`` rows libsvm expects.

Usage:
    svm = SupportVectorMachine()
    svm.train(labels, features, SvmParameters(kernel_type="linear", C=0.01))
    score = svm.predict(feature)          # > 0 means object
    w, b = svm.get_weights(), svm.get_bias_term()
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from typing import BinaryIO, Optional, Sequence

import joblib
import numpy as np
import scipy.sparse as sp
from joblib import Parallel, delayed
from sklearn.exceptions import NotFittedError
from sklearn.svm import SVC, NuSVC
from sklearn.utils.validation import check_is_fitted

from .errors import CorruptModelError, NoModelError, SizeMismatchError
from .ml_config import SVM, SvmParameters
from .problem import TrainingProblem, encode_feature, to_csr

logger = logging.getLogger(__name__)

MODEL_FORMAT_VERSION = 1


def build_svm(parameter: SvmParameters):
    """Map libsvm-style parameters onto the matching scikit-learn estimator."""
    common = dict(
        kernel=parameter.kernel_type,
        degree=parameter.degree,
        # libsvm treats gamma=0 as 1/num_features, which sklearn calls "auto"
        gamma=parameter.gamma if parameter.gamma > 0 else "auto",
        coef0=parameter.coef0,
        tol=parameter.eps,
        cache_size=parameter.cache_size,
        shrinking=parameter.shrinking,
        class_weight=dict(parameter.class_weight) or None,
    )
    # newer scikit-learn warns whenever probability is passed explicitly
    if parameter.probability:
        common["probability"] = True
    if parameter.svm_type == "nu_svc":
        return NuSVC(nu=parameter.nu, **common)
    return SVC(C=parameter.C, **common)


@dataclass(frozen=True)
class _ModelHandle:
    estimator: object
    feature_dim: int
    data: Optional[np.ndarray] = None   # packed training nodes, None after load()


class SupportVectorMachine:
    """
    Owns at most one trained model.

    train() and load() swap the model handle under a lock; predictions read
    a single handle snapshot and never lock.
    """

    def __init__(self, model_fname: Optional[str] = None):
        self._handle: Optional[_ModelHandle] = None
        self._lock = threading.RLock()
        if model_fname is not None:
            with open(model_fname, "rb") as fp:
                self.load(fp)

    # ------------------ lifecycle ------------------
    @property
    def is_trained(self) -> bool:
        return self._handle is not None

    @property
    def feature_dim(self) -> int:
        return self._require_model("feature dimension").feature_dim

    def close(self):
        """Release the model handle and the retained node buffer."""
        with self._lock:
            self._handle = None

    def __enter__(self) -> "SupportVectorMachine":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _require_model(self, what: str) -> _ModelHandle:
        handle = self._handle
        if handle is None:
            raise NoModelError(
                f"Asking for SVM {what} but there is no model. "
                "Either load one from file or train one before."
            )
        return handle

    # ------------------ training ------------------
    def train(
        self,
        labels: Sequence[float],
        fset: Sequence,
        parameter: Optional[SvmParameters] = None,
    ):
        parameter = parameter or SVM
        with TrainingProblem.build(labels, fset) as problem:
            logger.info(
                "Problem assignment finished: %d vectors, dim=%d",
                problem.l,
                problem.dim,
            )
            estimator = build_svm(parameter)
            estimator.fit(problem.to_csr(), problem.y)
            handle = _ModelHandle(estimator=estimator, feature_dim=problem.dim, data=problem.data)

        with self._lock:
            self._handle = handle

        logger.info(
            "Trained %s (%s kernel): %d support vectors",
            parameter.svm_type,
            parameter.kernel_type,
            int(np.sum(estimator.n_support_)),
        )

    # ------------------ prediction ------------------
    def predict(self, feature) -> float:
        """Decision value for one vector; the sign is the predicted class."""
        handle = self._require_model("prediction")
        return self._predict_with(handle, feature)

    def predict_batch(self, fset: Sequence, n_jobs: int = 1) -> np.ndarray:
        """Decision values for every vector of ``fset``, in order."""
        handle = self._require_model("prediction")
        if n_jobs == 1:
            scores = [self._predict_with(handle, f) for f in fset]
        else:
            scores = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(self._predict_with)(handle, f) for f in fset
            )
        return np.asarray(scores, dtype=np.float64)

    @staticmethod
    def _predict_with(handle: _ModelHandle, feature) -> float:
        nodes = encode_feature(feature)
        dim = len(nodes) - 1
        if dim != handle.feature_dim:
            raise SizeMismatchError(
                f"Feature has {dim} values but the model was trained on {handle.feature_dim}"
            )
        row = to_csr(nodes, np.zeros(1, dtype=np.int64), dim)
        decision = handle.estimator.decision_function(row)
        return float(np.ravel(decision)[0])

    # ------------------ linear decision function ------------------
    def get_bias_term(self) -> float:
        """libsvm's rho: decision(x) = dot(weights, x) - bias."""
        handle = self._require_model("bias term")
        return -float(handle.estimator.intercept_[0])

    def get_weights(self) -> np.ndarray:
        """Sum of signed support-vector coefficients times support vectors."""
        handle = self._require_model("weights")
        estimator = handle.estimator
        if estimator.kernel != "linear":
            logger.warning(
                "Weights of a %s-kernel SVM do not describe its decision boundary",
                estimator.kernel,
            )

        dual_coef = estimator.dual_coef_
        support_vectors = estimator.support_vectors_
        if sp.issparse(dual_coef):
            dual_coef = dual_coef.toarray()
        if sp.issparse(support_vectors):
            support_vectors = support_vectors.toarray()

        weights = np.zeros(handle.feature_dim, dtype=np.float64)
        for coeff, sv in zip(dual_coef[0], support_vectors):
            weights += coeff * sv
        return weights.astype(np.float32)

    # ------------------ persistence ------------------
    def save(self, fp: BinaryIO):
        handle = self._handle
        if handle is None:
            raise NoModelError("No model to be saved")
        joblib.dump(
            {
                "svm": handle.estimator,
                "feature_dim": handle.feature_dim,
                "format_version": MODEL_FORMAT_VERSION,
            },
            fp,
        )

    def load(self, fp: BinaryIO):
        with self._lock:
            self._handle = None
            try:
                payload = joblib.load(fp)
            except OSError:
                raise
            except Exception as e:
                raise CorruptModelError(f"Failed to load SVM model: {e}") from e

            estimator = payload.get("svm") if isinstance(payload, dict) else None
            if not isinstance(estimator, (SVC, NuSVC)):
                raise CorruptModelError("Failed to load SVM model: no SVM estimator in payload")
            try:
                check_is_fitted(estimator)
            except NotFittedError as e:
                raise CorruptModelError("Failed to load SVM model: estimator is not fitted") from e

            feature_dim = payload.get("feature_dim", getattr(estimator, "n_features_in_", None))
            if not isinstance(feature_dim, (int, np.integer)) or feature_dim <= 0:
                raise CorruptModelError("Failed to load SVM model: missing feature dimension")

            self._handle = _ModelHandle(estimator=estimator, feature_dim=int(feature_dim))

        logger.info("Loaded SVM model (dim=%d)", int(feature_dim))
