import pytest

from prediction.predictor import (
    CrimePredictor,
    DatasetError,
    PredictorNotReady,
    risk_level,
)


@pytest.fixture
def loaded(crime_csv):
    predictor = CrimePredictor()
    predictor.load_dataset(crime_csv)
    return predictor


@pytest.mark.parametrize("rate, level", [
    (0, "Low"), (299.9, "Low"), (300, "Medium"), (499.9, "Medium"),
    (500, "High"), (699.9, "High"), (700, "Critical"), (1500, "Critical"),
])
def test_risk_level_thresholds(rate, level):
    assert risk_level(rate) == level


def test_load_fits_model(loaded):
    assert loaded.ready
    assert loaded.model is not None
    assert len(loaded.model.estimators_) == 25


def test_all_predictions_sorted_by_rate(loaded):
    rows = loaded.all_predictions()

    assert len(rows) == 6
    rates = [r["crimeRate"] for r in rows]
    assert rates == sorted(rates, reverse=True)
    assert rows[0] == {
        "city": "Gotham", "state": "New Jersey", "crimeRate": 910.5,
        "riskLevel": "Critical", "violentCrime": 14200, "propertyCrime": 31000,
    }


def test_top_risk_cities(loaded):
    top = loaded.top_risk_cities(3)

    assert [r["city"] for r in top] == ["Gotham", "Metro City", "Springfield"]
    assert all(a["crimeRate"] >= b["crimeRate"] for a, b in zip(top, top[1:]))
    assert len(loaded.top_risk_cities(100)) == 6
    assert loaded.top_risk_cities(0) == []


def test_city_prediction_is_case_insensitive(loaded):
    row = loaded.city_prediction("  metro CITY ")
    assert row["city"] == "Metro City"
    assert row["riskLevel"] == "Critical"
    assert loaded.city_prediction("Atlantis") is None


def test_model_risk_level(loaded):
    assert loaded.model_risk_level("Gotham") in {"Low", "Medium", "High", "Critical"}
    assert loaded.model_risk_level("Atlantis") is None


def test_crime_distribution_has_all_buckets(loaded):
    buckets = {b["riskLevel"]: b for b in loaded.crime_distribution()}

    assert list(buckets) == ["Low", "Medium", "High", "Critical"]
    assert buckets["Low"]["cities"] == ["Pleasantville"]
    assert buckets["Medium"]["cities"] == ["Riverton", "Lakeside"]
    assert buckets["High"]["count"] == 1
    assert buckets["Critical"]["count"] == 2


def test_statistics(loaded):
    stats = loaded.statistics()

    assert stats["totalCities"] == 6
    assert stats["avgCrimeRate"] == pytest.approx(521.35, abs=0.06)
    assert stats["safestCity"] == {"city": "Pleasantville", "state": "Vermont", "rate": 120.4}
    assert stats["mostDangerous"] == {"city": "Gotham", "state": "New Jersey", "rate": 910.5}


def test_queries_before_load_raise():
    predictor = CrimePredictor()
    assert not predictor.ready
    with pytest.raises(PredictorNotReady):
        predictor.all_predictions()


def test_missing_dataset(tmp_path):
    with pytest.raises(DatasetError):
        CrimePredictor().load_dataset(tmp_path / "nope.csv")


def test_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("City,State,CrimeRate\nGotham,NJ,100\n")
    with pytest.raises(DatasetError, match="missing columns"):
        CrimePredictor().load_dataset(path)


def test_non_numeric_values(tmp_path, crime_csv):
    path = tmp_path / "bad.csv"
    path.write_text(crime_csv.read_text().replace("910.5", "lots"))
    with pytest.raises(DatasetError, match="Non-numeric"):
        CrimePredictor().load_dataset(path)


def test_header_only_dataset(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text(
        "City,State,Population,ViolentCrime,PropertyCrime,Murder,Robbery,"
        "Assault,Burglary,Theft,CrimeRate\n"
    )
    with pytest.raises(DatasetError, match="no rows"):
        CrimePredictor().load_dataset(path)


def test_bundled_dataset_loads():
    from config import Config

    predictor = CrimePredictor()
    predictor.load_dataset(Config.CRIME_DATA_PATH)
    assert predictor.statistics()["totalCities"] > 20
