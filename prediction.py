# prediction.py

import json
import logging
import os
import traceback
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

import joblib
import numpy as np
import pandas as pd

from errors import LoadError, SchemaMismatchError

__all__ = ["LoadedModel", "load_model", "predict"]


@dataclass(frozen=True)
class LoadedModel:
    """Pre-trained estimator plus the feature schema it was fitted on."""

    estimator: object
    feature_order: Tuple[str, ...]
    version: Optional[str] = None
    path: Optional[str] = None


def _sidecar_metadata(path: str) -> dict:
    """Read `<stem>.meta.json` next to the artifact, if present."""
    meta_path = os.path.splitext(path)[0] + ".meta.json"
    if not os.path.exists(meta_path):
        return {}
    try:
        with open(meta_path, "r", encoding="utf-8") as f:
            metadata = json.load(f)
    except (OSError, ValueError) as exc:
        raise LoadError(f"Could not read model metadata '{meta_path}': {exc}") from exc
    if not isinstance(metadata, dict):
        raise LoadError(f"Model metadata '{meta_path}' must be a JSON object.")
    logging.info("Metadata loaded successfully from '%s'.", meta_path)
    return metadata


def _unbundle(obj) -> Tuple[object, dict]:
    # joblib artifacts may be a bare estimator or {"model": ..., "feature_order": ...}
    if isinstance(obj, dict):
        if "model" not in obj:
            raise LoadError("Model bundle has no 'model' entry.")
        meta = {k: v for k, v in obj.items() if k != "model"}
        return obj["model"], meta
    return obj, {}


def _feature_order(estimator, metadata: dict) -> Tuple[str, ...]:
    order = metadata.get("feature_order")
    if order is None:
        order = getattr(estimator, "feature_names_in_", None)
    if order is None:
        raise LoadError(
            "Model feature schema unknown: provide 'feature_order' metadata "
            "or fit the estimator on a DataFrame."
        )
    order = tuple(str(c) for c in order)
    if len(set(order)) != len(order):
        raise LoadError(f"Model feature schema has duplicate columns: {list(order)}")
    return order


def load_model(path) -> LoadedModel:
    """Load the pre-trained model artifact once at startup."""
    path = os.fspath(path)
    if not os.path.exists(path):
        raise LoadError(f"Model artifact not found: {path}")
    try:
        obj = joblib.load(path)
    except Exception as exc:
        logging.error("Could not load model artifact '%s': %s", path, exc)
        raise LoadError(f"Could not load model artifact '{path}': {exc}") from exc

    estimator, metadata = _unbundle(obj)
    metadata = {**metadata, **_sidecar_metadata(path)}
    if not callable(getattr(estimator, "predict", None)):
        raise LoadError(f"Object in '{path}' has no predict(): {type(estimator).__name__}")

    order = _feature_order(estimator, metadata)
    version = metadata.get("version")
    model = LoadedModel(
        estimator=estimator,
        feature_order=order,
        version=None if version is None else str(version),
        path=path,
    )
    logging.info(
        "Model loaded successfully from '%s' (version=%s, %d features).",
        path,
        model.version,
        len(order),
    )
    return model


def _check_schema(columns: List[str], expected: Tuple[str, ...]) -> None:
    missing = [c for c in expected if c not in columns]
    unexpected = [c for c in columns if c not in expected]
    if missing or unexpected:
        raise SchemaMismatchError(
            f"Feature schema mismatch: missing={missing} unexpected={unexpected}",
            missing=missing,
            unexpected=unexpected,
        )


def predict(model: LoadedModel, features) -> float:
    """Predict a scalar from a one-row feature frame (or mapping) matching the model schema."""
    if isinstance(features, Mapping):
        features = pd.DataFrame([dict(features)])
    if not isinstance(features, pd.DataFrame):
        raise TypeError("predict expects a pandas DataFrame or a mapping")
    if len(features) != 1:
        raise ValueError(f"predict expects exactly one row, got {len(features)}")

    columns = [str(c) for c in features.columns]
    _check_schema(columns, model.feature_order)
    frame = features.copy()
    frame.columns = columns
    frame = frame[list(model.feature_order)]

    try:
        y = model.estimator.predict(frame)
    except Exception as e:
        logging.error(f"Error during prediction: {str(e)}")
        logging.error(traceback.format_exc())
        raise
    value = float(np.asarray(y, dtype=np.float64).reshape(-1)[0])
    logging.debug("Prediction %.4f from model version %s", value, model.version)
    return value
