from __future__ import annotations
import json
from typing import Dict, TextIO, Type

from .base import Feature, FeatureCollection, FeatureExtractor, ParametersMap, to_gray
from .hog import HOGFeatureExtractor

# Simple registry of feature extractors, keyed by feature type tag
EXTRACTOR_REGISTRY: Dict[str, Type[FeatureExtractor]] = {
    "hog": HOGFeatureExtractor,
}

DEFAULT_FEATURE_TYPE = "hog"


def _lookup(feature_type: str) -> Type[FeatureExtractor]:
    try:
        return EXTRACTOR_REGISTRY[feature_type.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown feature type {feature_type!r} (known: {sorted(EXTRACTOR_REGISTRY)})"
        ) from None


def create_extractor(
    feature_type: str | None = None, params: ParametersMap | None = None
) -> FeatureExtractor:
    """
    Build an extractor by tag. Without an explicit tag the ``feature_type``
    entry of ``params`` is used, falling back to HOG.
    """
    params = dict(params or {})
    tag = params.pop("feature_type", None)
    if feature_type is None:
        feature_type = tag or DEFAULT_FEATURE_TYPE
    return _lookup(feature_type)(params)


def get_default_parameters(feature_type: str = DEFAULT_FEATURE_TYPE) -> ParametersMap:
    return _lookup(feature_type).get_default_parameters()


def save_extractor(fp: TextIO, extractor: FeatureExtractor):
    json.dump(
        {"feature_type": extractor.feature_type, "parameters": extractor.get_parameters()},
        fp,
        indent=2,
    )


def load_extractor(fp: TextIO) -> FeatureExtractor:
    payload = json.load(fp)
    return create_extractor(payload["feature_type"], payload.get("parameters"))


__all__ = [
    "EXTRACTOR_REGISTRY",
    "Feature",
    "FeatureCollection",
    "FeatureExtractor",
    "HOGFeatureExtractor",
    "ParametersMap",
    "create_extractor",
    "get_default_parameters",
    "load_extractor",
    "save_extractor",
    "to_gray",
]
