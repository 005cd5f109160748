# geo_features.py
"""Inverse-distance weighted demography from the k nearest polygon centroids."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

import numpy as np
from sklearn.metrics.pairwise import haversine_distances

from config import EARTH_R_KM
from errors import InvalidParameterError
from geometry_store import GeometryCollection, PolygonRecord, QueryPoint

__all__ = [
    "NeighborResult",
    "haversine_km",
    "nearest_neighbors",
    "interpolate",
]
log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborResult:
    record: PolygonRecord
    distance_km: float
    weight: float


# ---------- helpers ----------


def _deg2rad(a: np.ndarray) -> np.ndarray:
    return np.deg2rad(np.asarray(a, dtype=np.float64))


def _check_k(k, n: int) -> int:
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidParameterError(f"Neighbour count must be an integer, got {k!r}.")
    if k < 1 or k > n:
        raise InvalidParameterError(
            f"Neighbour count must be between 1 and {n}, got {int(k)}."
        )
    return int(k)


def _idw_weights(distances: np.ndarray) -> np.ndarray:
    """Normalized 1/d weights; exact matches (d == 0) share the whole weight."""
    zero = distances == 0.0
    if zero.any():
        raw = zero.astype(np.float64)
    else:
        raw = 1.0 / distances
    return raw / raw.sum()


# ---------- public API ----------


def haversine_km(latlon_deg: np.ndarray, point: QueryPoint) -> np.ndarray:
    """Great-circle distance (km) from `point` to each [lat, lon] row."""
    pts = _deg2rad(latlon_deg).reshape(-1, 2)
    q = _deg2rad([[point.latitude, point.longitude]])
    return haversine_distances(pts, q)[:, 0] * EARTH_R_KM


def nearest_neighbors(
    point: QueryPoint, collection: GeometryCollection, k: int
) -> List[NeighborResult]:
    """Return the k nearest polygons by centroid distance, with normalized weights.

    Ties in distance keep the collection order (stable sort).
    """
    k = _check_k(k, len(collection))
    p = point.to_crs(collection.crs)
    dist = haversine_km(collection.centroids(), p)
    order = np.argsort(dist, kind="stable")[:k]
    selected = dist[order]
    weights = _idw_weights(selected)
    return [
        NeighborResult(record=collection[int(i)], distance_km=float(d), weight=float(w))
        for i, d, w in zip(order, selected, weights)
    ]


def interpolate(
    point: QueryPoint, collection: GeometryCollection, k: int
) -> Dict[str, float]:
    """Weighted average of every attribute over the k nearest centroids."""
    neighbors = nearest_neighbors(point, collection, k)
    names = collection.attribute_names
    weights = np.array([n.weight for n in neighbors], dtype=np.float64)
    values = np.array(
        [[n.record.attributes[a] for a in names] for n in neighbors], dtype=np.float64
    )
    mixed = weights @ values
    log.debug(
        "Interpolated (%.6f, %.6f) from %s",
        point.latitude,
        point.longitude,
        [(n.record.identifier, round(n.distance_km, 3), round(n.weight, 4)) for n in neighbors],
    )
    return {name: float(v) for name, v in zip(names, mixed)}
