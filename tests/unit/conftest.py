import joblib
import numpy as np
import pandas as pd
import geopandas as gpd
import pytest
from shapely.geometry import box
from sklearn.compose import ColumnTransformer
from sklearn.linear_model import LinearRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from feature_engineering import CATEGORICAL_FEATURES, REQUEST_FEATURES
from geometry_store import GeometryCollection, PolygonRecord


def make_collection(points, half=0.25, **attrs):
    """Square polygons centred on (lat, lon) points with explicit centroids."""
    records = []
    for i, (lat, lon) in enumerate(points):
        values = {name: float(vals[i]) for name, vals in attrs.items()}
        records.append(
            PolygonRecord(
                identifier=f"t{i}",
                geometry=box(lon - half, lat - half, lon + half, lat + half),
                centroid=(float(lon), float(lat)),
                attributes=values,
            )
        )
    return GeometryCollection(records)


@pytest.fixture
def collection_factory():
    return make_collection


@pytest.fixture
def diagonal_collection():
    return make_collection([(0, 0), (1, 1), (2, 2)], pop=[10, 20, 30])


@pytest.fixture
def tract_collection():
    pts = [(43.0, -89.4), (43.1, -89.4), (43.0, -89.3), (43.1, -89.3)]
    return make_collection(
        pts, half=0.05, pop=[1000, 2000, 3000, 4000], income=[50.0, 60.0, 70.0, 80.0]
    )


@pytest.fixture
def tract_gdf():
    pts = [(43.0, -89.4), (43.1, -89.4), (43.0, -89.3), (43.1, -89.3)]
    return gpd.GeoDataFrame(
        {
            "GEOID": ["55025000100", "55025000200", "55025000300", "55025000400"],
            "pop": [1000.123456, 2000.0, 3000.0, 4000.0],
            "income": [50.0, 60.0, 70.0, 80.0],
            "name": ["a", "b", "c", "d"],
        },
        geometry=[box(lon - 0.05, lat - 0.05, lon + 0.05, lat + 0.05) for lat, lon in pts],
        crs="EPSG:4326",
    )


@pytest.fixture
def tract_file(tmp_path, tract_gdf):
    path = tmp_path / "tracts.geojson"
    tract_gdf.to_file(path, driver="GeoJSON")
    return path


def _training_frame(n=40, seed=0):
    rng = np.random.default_rng(seed)
    df = pd.DataFrame(
        {
            "Latitude": rng.uniform(43.0, 43.1, n),
            "Longitude": rng.uniform(-89.4, -89.3, n),
            "LocationSquareFootage": rng.uniform(500, 5000, n),
            "PopulationDensity": rng.choice(["High", "Medium", "Low"], n),
            "PropBoomers": rng.choice(["High", "Low"], n),
            "HighlyEducated": rng.integers(0, 2, n),
            "ManyWidows": rng.integers(0, 2, n),
            "LargePopulation": rng.integers(0, 2, n),
            "pop": rng.uniform(1000, 4000, n),
            "income": rng.uniform(50, 80, n),
        }
    )
    y = 3.0 * df["LocationSquareFootage"] + 5.0 * df["pop"] + 100.0
    return df[list(REQUEST_FEATURES) + ["pop", "income"]], y


@pytest.fixture
def revenue_pipeline():
    X, y = _training_frame()
    pre = ColumnTransformer(
        [("cat", OneHotEncoder(handle_unknown="ignore"), list(CATEGORICAL_FEATURES))],
        remainder="passthrough",
    )
    pipe = Pipeline([("preprocessor", pre), ("model", LinearRegression())])
    return pipe.fit(X, y)


@pytest.fixture
def model_file(tmp_path, revenue_pipeline):
    path = tmp_path / "revenue_model.joblib"
    joblib.dump(revenue_pipeline, path)
    return path


@pytest.fixture
def raw_request():
    return {
        "Latitude": 43.04,
        "Longitude": -89.37,
        "LocationSquareFootage": 1000,
        "PopulationDensity": "High",
        "PropBoomers": "Low",
        "HighlyEducated": True,
        "ManyWidows": False,
        "LargePopulation": "yes",
        "NeighborsToUse": 3,
    }
