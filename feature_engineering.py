# feature_engineering.py
"""Assemble the one-row model frame from a request and its interpolated demography."""

from __future__ import annotations

import logging
from typing import Mapping

import pandas as pd

from errors import SchemaMismatchError
from request_validation import FIELD_NAMES, RequestRecord

__all__ = ["REQUEST_FEATURES", "CATEGORICAL_FEATURES", "assemble_features"]
log = logging.getLogger(__name__)

# Request covariates under their wire names, in model-frame order
REQUEST_FEATURES = tuple(FIELD_NAMES[a] for a in (
    "latitude",
    "longitude",
    "square_footage",
    "population_density",
    "prop_boomers",
    "highly_educated",
    "many_widows",
    "large_population",
))
CATEGORICAL_FEATURES = ("PopulationDensity", "PropBoomers")


def assemble_features(
    request: RequestRecord, demography: Mapping[str, float]
) -> pd.DataFrame:
    """Request covariates (flags as 0/1) followed by one column per demographic attribute."""
    row = {
        "Latitude": request.latitude,
        "Longitude": request.longitude,
        "LocationSquareFootage": request.square_footage,
        "PopulationDensity": request.population_density,
        "PropBoomers": request.prop_boomers,
        "HighlyEducated": int(request.highly_educated),
        "ManyWidows": int(request.many_widows),
        "LargePopulation": int(request.large_population),
    }
    clash = sorted(set(row) & set(demography))
    if clash:
        raise SchemaMismatchError(
            f"Demographic attributes collide with request features: {clash}",
            unexpected=clash,
        )
    row.update({str(k): float(v) for k, v in demography.items()})
    frame = pd.DataFrame([row])
    log.debug("Assembled features: %s", row)
    return frame
