import json

import joblib
import pandas as pd
import pytest

from errors import LoadError, SchemaMismatchError
from feature_engineering import REQUEST_FEATURES, assemble_features
from prediction import load_model, predict
from request_validation import normalize


def test_load_model_uses_fitted_feature_names(model_file):
    model = load_model(model_file)
    assert model.feature_order == tuple(REQUEST_FEATURES) + ("pop", "income")
    assert model.version is None
    assert model.path == str(model_file)


def test_load_model_bundle_and_sidecar(tmp_path, revenue_pipeline):
    path = tmp_path / "bundle.joblib"
    order = list(revenue_pipeline.feature_names_in_)
    joblib.dump({"model": revenue_pipeline, "feature_order": order, "version": "1"}, path)
    assert load_model(path).version == "1"
    (tmp_path / "bundle.meta.json").write_text(json.dumps({"version": "2024.03"}))
    model = load_model(path)
    assert model.version == "2024.03"
    assert list(model.feature_order) == order


def test_load_model_missing(tmp_path):
    with pytest.raises(LoadError, match="not found"):
        load_model(tmp_path / "absent.joblib")


def test_load_model_corrupt(tmp_path):
    path = tmp_path / "corrupt.joblib"
    path.write_bytes(b"not a pickle")
    with pytest.raises(LoadError):
        load_model(path)


def test_load_model_requires_predict(tmp_path):
    path = tmp_path / "dict.joblib"
    joblib.dump({"model": {"a": 1}, "feature_order": ["a"]}, path)
    with pytest.raises(LoadError, match="predict"):
        load_model(path)


def test_load_model_requires_schema(tmp_path):
    from sklearn.linear_model import LinearRegression

    path = tmp_path / "bare.joblib"
    joblib.dump(LinearRegression().fit([[0.0], [1.0]], [0.0, 1.0]), path)
    with pytest.raises(LoadError, match="schema"):
        load_model(path)


def test_predict_matches_fitted_relationship(model_file, raw_request):
    model = load_model(model_file)
    features = assemble_features(normalize(raw_request), {"pop": 2500.0, "income": 65.0})
    assert predict(model, features) == pytest.approx(3.0 * 1000 + 5.0 * 2500.0 + 100.0, rel=1e-6)


def test_predict_reorders_columns(model_file, raw_request):
    model = load_model(model_file)
    features = assemble_features(normalize(raw_request), {"pop": 2500.0, "income": 65.0})
    shuffled = features[list(reversed(features.columns))]
    assert predict(model, shuffled) == pytest.approx(predict(model, features))


def test_predict_accepts_mapping(model_file, raw_request):
    model = load_model(model_file)
    features = assemble_features(normalize(raw_request), {"pop": 2500.0, "income": 65.0})
    assert predict(model, features.iloc[0].to_dict()) == pytest.approx(predict(model, features))


def test_predict_schema_mismatch(model_file, raw_request):
    model = load_model(model_file)
    features = assemble_features(normalize(raw_request), {"pop": 2500.0, "median_age": 40.0})
    with pytest.raises(SchemaMismatchError) as info:
        predict(model, features)
    assert info.value.missing == ("income",)
    assert info.value.unexpected == ("median_age",)


def test_assemble_features_layout(raw_request):
    frame = assemble_features(normalize(raw_request), {"pop": 1.5})
    assert list(frame.columns) == list(REQUEST_FEATURES) + ["pop"]
    assert frame.loc[0, "HighlyEducated"] == 1
    assert frame.loc[0, "ManyWidows"] == 0
    assert isinstance(frame, pd.DataFrame) and len(frame) == 1


def test_assemble_features_rejects_colliding_attribute(raw_request):
    with pytest.raises(SchemaMismatchError):
        assemble_features(normalize(raw_request), {"Latitude": 1.0})


@pytest.mark.parametrize("text", ["{not json", "[1, 2]"])
def test_load_model_malformed_sidecar(model_file, text):
    model_file.with_name("revenue_model.meta.json").write_text(text)
    with pytest.raises(LoadError, match="metadata"):
        load_model(model_file)
