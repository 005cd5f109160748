# geometry_store.py
"""Polygon dataset with per-polygon demographic attributes.

The store is loaded once at startup from any vector file geopandas can read
(shapefile, GeoJSON, GeoPackage), reprojected to WGS84 lat/long and frozen:
records, centroids and attribute values never change after load.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Sequence, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd
from pyproj import Transformer
from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from config import ATTRIBUTE_PRECISION, GEOMETRY_CRS
from errors import LoadError

__all__ = [
    "PolygonRecord",
    "GeometryCollection",
    "QueryPoint",
    "centroid",
    "containing",
    "load",
    "lookup_attributes",
]
log = logging.getLogger(__name__)

_POLYGON_TYPES = {"Polygon", "MultiPolygon"}


@lru_cache(maxsize=8)
def _transformer(src: str, dst: str) -> Transformer:
    return Transformer.from_crs(src, dst, always_xy=True)


@dataclass(frozen=True)
class QueryPoint:
    """A (latitude, longitude) pair in a given CRS."""

    latitude: float
    longitude: float
    crs: str = GEOMETRY_CRS

    def to_crs(self, target: str) -> "QueryPoint":
        if str(target) == str(self.crs):
            return self
        x, y = _transformer(str(self.crs), str(target)).transform(
            self.longitude, self.latitude
        )
        return QueryPoint(latitude=float(y), longitude=float(x), crs=str(target))


@dataclass(frozen=True)
class PolygonRecord:
    identifier: str
    geometry: BaseGeometry = field(repr=False, compare=False)
    centroid: Tuple[float, float]
    attributes: Mapping[str, float]


def centroid(polygon: BaseGeometry) -> Tuple[float, float]:
    """Return the (x, y) geometric centroid of a polygon."""
    c = polygon.centroid
    return float(c.x), float(c.y)


class GeometryCollection:
    """Ordered, immutable set of polygon records sharing a CRS and attribute schema."""

    def __init__(self, records: Iterable[PolygonRecord], *, crs: str = GEOMETRY_CRS):
        self._records: Tuple[PolygonRecord, ...] = tuple(records)
        if not self._records:
            raise LoadError("Geometry collection holds no polygons.")
        names = tuple(self._records[0].attributes)
        schema = set(names)
        for rec in self._records[1:]:
            if set(rec.attributes) != schema:
                raise LoadError(
                    f"Polygon '{rec.identifier}' attribute schema "
                    f"{sorted(rec.attributes)} differs from {sorted(schema)}."
                )
        self.attribute_names: Tuple[str, ...] = names
        self.crs = str(crs)
        # centroid (x, y) = (lon, lat); kept as (lat, lon) for haversine
        self._centroids = np.array(
            [(rec.centroid[1], rec.centroid[0]) for rec in self._records],
            dtype=np.float64,
        )
        self._centroids.setflags(write=False)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PolygonRecord]:
        return iter(self._records)

    def __getitem__(self, idx: int) -> PolygonRecord:
        return self._records[idx]

    def __repr__(self) -> str:
        return (
            f"GeometryCollection(n={len(self)}, crs={self.crs!r}, "
            f"attributes={list(self.attribute_names)})"
        )

    def centroids(self) -> np.ndarray:
        """Centroids as a read-only (n, 2) array of [latitude, longitude] degrees."""
        return self._centroids

    def containing(self, point: QueryPoint) -> Optional[PolygonRecord]:
        """First polygon (in collection order) covering the point, or None."""
        p = point.to_crs(self.crs)
        probe = Point(p.longitude, p.latitude)
        for rec in self._records:
            if rec.geometry.covers(probe):
                return rec
        return None

    @classmethod
    def from_geodataframe(
        cls,
        gdf: gpd.GeoDataFrame,
        *,
        attributes: Optional[Sequence[str]] = None,
        id_column: Optional[str] = None,
        precision: int = ATTRIBUTE_PRECISION,
    ) -> "GeometryCollection":
        if gdf is None or gdf.empty:
            raise LoadError("Geometry dataset holds no polygons.")

        if gdf.crs is None:
            log.warning("Geometry dataset has no CRS; assuming %s", GEOMETRY_CRS)
            gdf = gdf.set_crs(GEOMETRY_CRS)
        elif gdf.crs.to_epsg() != 4326:
            log.info("Reprojecting geometry from %s to %s", gdf.crs, GEOMETRY_CRS)
            gdf = gdf.to_crs(GEOMETRY_CRS)

        geoms = gdf.geometry
        if geoms.isna().any() or geoms.is_empty.any():
            raise LoadError("Geometry dataset contains missing or empty geometries.")
        bad_types = sorted(set(geoms.geom_type) - _POLYGON_TYPES)
        if bad_types:
            raise LoadError(f"Expected polygon geometries, found: {bad_types}")

        if id_column is not None and id_column not in gdf.columns:
            raise LoadError(f"Identifier column '{id_column}' not found.")

        table = _attribute_table(gdf, attributes, id_column, precision)
        if id_column is not None:
            ids = gdf[id_column].astype(str).tolist()
        else:
            ids = [str(i) for i in range(len(gdf))]

        records = []
        for i, geom in enumerate(geoms):
            values = {col: float(table[col].iloc[i]) for col in table.columns}
            records.append(
                PolygonRecord(
                    identifier=ids[i],
                    geometry=geom,
                    centroid=centroid(geom),
                    attributes=MappingProxyType(values),
                )
            )
        return cls(records, crs=GEOMETRY_CRS)


def _attribute_table(
    gdf: gpd.GeoDataFrame,
    attributes: Optional[Sequence[str]],
    id_column: Optional[str],
    precision: int,
) -> pd.DataFrame:
    """Select, coerce and round the numeric attribute columns."""
    geom_col = gdf.geometry.name
    if attributes is None:
        cols = [
            c
            for c in gdf.columns
            if c not in {geom_col, id_column}
            and pd.api.types.is_numeric_dtype(gdf[c])
            and not pd.api.types.is_bool_dtype(gdf[c])
        ]
        if not cols:
            raise LoadError("Geometry dataset has no numeric attributes.")
    else:
        cols = [str(c) for c in attributes]
        missing = [c for c in cols if c not in gdf.columns]
        if missing:
            raise LoadError(f"Geometry dataset missing attributes: {missing}")

    out = pd.DataFrame(index=gdf.index)
    for col in cols:
        try:
            values = pd.to_numeric(gdf[col], errors="raise")
        except (ValueError, TypeError) as exc:
            raise LoadError(f"Attribute '{col}' is not numeric: {exc}") from exc
        if values.isna().any():
            raise LoadError(f"Attribute '{col}' has missing values.")
        out[col] = values.astype(np.float64).round(precision)
    return out


def load(
    path: str | os.PathLike,
    *,
    attributes: Optional[Sequence[str]] = None,
    id_column: Optional[str] = None,
    precision: int = ATTRIBUTE_PRECISION,
) -> GeometryCollection:
    """Load a polygon dataset into an immutable GeometryCollection."""
    path = os.fspath(path)
    if not os.path.exists(path):
        raise LoadError(f"Geometry file not found: {path}")
    try:
        gdf = gpd.read_file(path)
    except Exception as exc:
        log.error("Could not read geometry file '%s': %s", path, exc)
        raise LoadError(f"Could not read geometry file '{path}': {exc}") from exc

    collection = GeometryCollection.from_geodataframe(
        gdf, attributes=attributes, id_column=id_column, precision=precision
    )
    log.info(
        "Geometry loaded from '%s': %d polygons, attributes=%s",
        path,
        len(collection),
        list(collection.attribute_names),
    )
    return collection


def containing(point: QueryPoint, collection: GeometryCollection) -> Optional[PolygonRecord]:
    return collection.containing(point)


def lookup_attributes(
    point: QueryPoint, collection: GeometryCollection
) -> Optional[Mapping[str, float]]:
    """Attributes of the polygon containing the point, or None when outside all polygons."""
    rec = collection.containing(point)
    return None if rec is None else rec.attributes
