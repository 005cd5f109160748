# request_validation.py
"""Coerce a loosely-typed JSON request into a strictly-typed RequestRecord."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from errors import ValidationError

__all__ = ["RequestRecord", "normalize", "parse_json", "to_payload", "FIELD_NAMES"]

FIELD_NAMES = {
    "latitude": "Latitude",
    "longitude": "Longitude",
    "square_footage": "LocationSquareFootage",
    "population_density": "PopulationDensity",
    "prop_boomers": "PropBoomers",
    "highly_educated": "HighlyEducated",
    "many_widows": "ManyWidows",
    "large_population": "LargePopulation",
    "neighbors_to_use": "NeighborsToUse",
}

_TRUE = {"true", "t", "yes", "y", "1"}
_FALSE = {"false", "f", "no", "n", "0"}


@dataclass(frozen=True)
class RequestRecord:
    latitude: float
    longitude: float
    square_footage: float
    population_density: str
    prop_boomers: str
    highly_educated: bool
    many_widows: bool
    large_population: bool
    neighbors_to_use: int


def _required(raw: Mapping[str, Any], name: str) -> Any:
    value = raw.get(name)
    if value is None:
        raise ValidationError(f"Missing required field '{name}'.", field=name)
    return value


def _canonicalize_number(value: object, name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Field '{name}' must be a number, got a boolean.", field=name)
    if isinstance(value, str):
        value = value.strip()
    try:
        out = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(
            f"Field '{name}' must be a number, got {value!r}.", field=name
        ) from None
    if not math.isfinite(out):
        raise ValidationError(f"Field '{name}' must be finite, got {value!r}.", field=name)
    return out


def _canonicalize_text(value: object, name: str) -> str:
    if isinstance(value, (dict, list)):
        raise ValidationError(f"Field '{name}' must be a string.", field=name)
    text = str(value).strip()
    if not text:
        raise ValidationError(f"Field '{name}' must not be empty.", field=name)
    return text


def _canonicalize_flag(value: object, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in _TRUE:
            return True
        if lower in _FALSE:
            return False
    raise ValidationError(f"Field '{name}' must be a boolean, got {value!r}.", field=name)


def normalize(raw: Mapping[str, Any]) -> RequestRecord:
    """Validate and coerce a decoded request payload; extra fields are ignored."""
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"Request body must be a JSON object, got {type(raw).__name__}."
        )

    def num(attr: str) -> float:
        name = FIELD_NAMES[attr]
        return _canonicalize_number(_required(raw, name), name)

    def text(attr: str) -> str:
        name = FIELD_NAMES[attr]
        return _canonicalize_text(_required(raw, name), name)

    def flag(attr: str) -> bool:
        name = FIELD_NAMES[attr]
        return _canonicalize_flag(_required(raw, name), name)

    lat = num("latitude")
    if not -90.0 <= lat <= 90.0:
        raise ValidationError(f"Latitude {lat} outside [-90, 90].", field="Latitude")
    lon = num("longitude")
    if not -180.0 <= lon <= 180.0:
        raise ValidationError(f"Longitude {lon} outside [-180, 180].", field="Longitude")
    sqft = num("square_footage")
    if sqft < 0:
        raise ValidationError(
            f"LocationSquareFootage must be non-negative, got {sqft}.",
            field="LocationSquareFootage",
        )

    return RequestRecord(
        latitude=lat,
        longitude=lon,
        square_footage=sqft,
        population_density=text("population_density"),
        prop_boomers=text("prop_boomers"),
        highly_educated=flag("highly_educated"),
        many_widows=flag("many_widows"),
        large_population=flag("large_population"),
        # truncated toward zero; range is checked against the geometry at query time
        neighbors_to_use=int(num("neighbors_to_use")),
    )


def parse_json(body: str | bytes) -> RequestRecord:
    try:
        raw = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Request body is not valid JSON: {exc}") from exc
    return normalize(raw)


def to_payload(record: RequestRecord) -> Dict[str, Any]:
    """Wire representation of a RequestRecord (inverse of `normalize`)."""
    return {wire: getattr(record, attr) for attr, wire in FIELD_NAMES.items()}
