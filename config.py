"""Project configuration (single source of truth).

Default artifact paths and serving knobs. Every value can be overridden from the
environment so the service can point at other artifacts without code changes.
"""

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

DATA_DIR = os.path.join(BASE_DIR, "data")
MODEL_DIR = os.path.join(BASE_DIR, "models")

MODEL_PATH = os.getenv(
    "REVENUE_MODEL_PATH", os.path.join(MODEL_DIR, "revenue_model.joblib")
)
GEOMETRY_PATH = os.getenv(
    "REVENUE_GEOMETRY_PATH", os.path.join(DATA_DIR, "tracts", "tracts.shp")
)

# -------------------- Geometry defaults -------------------- #
# Identifier column in the polygon attribute table (None = use row position)
GEOMETRY_ID_COLUMN = os.getenv("GEOMETRY_ID_COLUMN") or None

# Demographic attributes interpolated from polygon centroids.
# None = every numeric column of the attribute table.
_ATTRS_RAW = os.getenv("DEMOGRAPHIC_ATTRIBUTES", "")
DEMOGRAPHIC_ATTRIBUTES = (
    tuple(s.strip() for s in _ATTRS_RAW.split(",") if s.strip()) or None
)

# Attribute values are rounded at load time so interpolation is reproducible
ATTRIBUTE_PRECISION = int(os.getenv("ATTRIBUTE_PRECISION", "4"))

# All geometries are held in WGS84 lat/long for geodesic distances
GEOMETRY_CRS = "EPSG:4326"
EARTH_R_KM = 6371.0088  # WGS84 mean Earth radius (km)

# -------------------- Response -------------------- #
SQFT_TO_SQM = 0.09290304
