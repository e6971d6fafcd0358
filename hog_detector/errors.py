"""Exceptions raised by the SVM classifier."""


class SvmError(Exception):
    """Base class for classifier failures."""


class SizeMismatchError(SvmError, ValueError):
    """Label count and feature count (or feature lengths) disagree."""


class NoModelError(SvmError, RuntimeError):
    """A query was made on a classifier that was never trained or loaded."""


class CorruptModelError(SvmError, ValueError):
    """A stored model could not be deserialized."""
