# service.py
"""In-process request/response cycle around the revenue model.

`load_state` reads the model and geometry artifacts once; the returned state is
passed by reference into every call and never mutated. `handle_json` plays the
part of an HTTP endpoint: JSON text in, (status, JSON text) out.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

import config
import geometry_store
from errors import InvalidParameterError, LoadError, SchemaMismatchError, ValidationError
from feature_engineering import REQUEST_FEATURES, assemble_features
from geo_features import interpolate
from geometry_store import GeometryCollection, QueryPoint
from prediction import LoadedModel, load_model, predict
from request_validation import normalize, parse_json
from response_formatting import PredictionResult, format_response, serialize

__all__ = ["ServiceState", "load_state", "handle_request", "handle_json"]
log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceState:
    collection: GeometryCollection
    model: LoadedModel


def _check_artifacts(collection: GeometryCollection, model: LoadedModel) -> None:
    """The model schema must be exactly the request features plus the geometry attributes."""
    served = set(REQUEST_FEATURES) | set(collection.attribute_names)
    expected = set(model.feature_order)
    if served != expected:
        raise LoadError(
            "Geometry attributes do not match the model schema: "
            f"missing={sorted(expected - served)} unexpected={sorted(served - expected)}"
        )


def load_state(
    model_path: Optional[str] = None,
    geometry_path: Optional[str] = None,
    *,
    attributes: Optional[Sequence[str]] = None,
    id_column: Optional[str] = None,
) -> ServiceState:
    """Load both startup artifacts; any failure or schema disagreement raises LoadError.

    Without an explicit attribute list, the demographic attributes are the model
    features that are not request fields.
    """
    model = load_model(model_path or config.MODEL_PATH)
    if attributes is None:
        attributes = config.DEMOGRAPHIC_ATTRIBUTES
    if attributes is None:
        attributes = [c for c in model.feature_order if c not in REQUEST_FEATURES]
    collection = geometry_store.load(
        geometry_path or config.GEOMETRY_PATH,
        attributes=attributes,
        id_column=id_column if id_column is not None else config.GEOMETRY_ID_COLUMN,
    )
    _check_artifacts(collection, model)
    return ServiceState(collection=collection, model=model)


def _score(request, state: ServiceState) -> PredictionResult:
    point = QueryPoint(latitude=request.latitude, longitude=request.longitude)
    if log.isEnabledFor(logging.DEBUG):
        home = state.collection.containing(point)
        log.debug(
            "Request at (%.6f, %.6f) falls in polygon %s",
            point.latitude,
            point.longitude,
            home.identifier if home is not None else "<none>",
        )
    demography = interpolate(point, state.collection, request.neighbors_to_use)
    features = assemble_features(request, demography)
    estimate = predict(state.model, features)
    return format_response(request, estimate)


def handle_request(payload: Mapping[str, Any], state: ServiceState) -> PredictionResult:
    """Full pipeline for a decoded payload. Errors propagate to the caller."""
    return _score(normalize(payload), state)


def _error_body(kind: str, exc: Exception, field: Optional[str] = None) -> str:
    return json.dumps({"error": kind, "message": str(exc), "field": field})


def handle_json(body: str | bytes, state: ServiceState) -> Tuple[int, str]:
    """Simulated HTTP POST: returns (status code, JSON response text)."""
    try:
        request = parse_json(body)
        result = _score(request, state)
    except ValidationError as exc:
        log.warning("Rejected request (field=%s): %s", exc.field, exc)
        return 400, _error_body("validation_error", exc, exc.field)
    except InvalidParameterError as exc:
        log.warning("Rejected request: %s", exc)
        return 400, _error_body("invalid_parameter", exc, "NeighborsToUse")
    except SchemaMismatchError as exc:
        log.exception("Feature schema mismatch for model version %s", state.model.version)
        return 500, _error_body("schema_mismatch", exc)
    except Exception as exc:
        log.exception("Prediction failed")
        return 500, _error_body("prediction_failed", exc)
    return 200, serialize(result)
