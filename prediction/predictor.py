import logging
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier

logger = logging.getLogger("records.prediction")

COLUMNS = [
    "City", "State", "Population", "ViolentCrime", "PropertyCrime",
    "Murder", "Robbery", "Assault", "Burglary", "Theft", "CrimeRate",
]
COUNT_COLUMNS = COLUMNS[2:-1]

RISK_LEVELS = ["Low", "Medium", "High", "Critical"]
# upper bounds (exclusive) of Low, Medium, High; anything above is Critical
RISK_THRESHOLDS = [300, 500, 700]


class DatasetError(Exception):
    """The crime dataset is missing or does not have the expected shape."""


class PredictorNotReady(Exception):
    """A query arrived before a dataset was loaded."""


def risk_level(crime_rate):
    for level, bound in zip(RISK_LEVELS, RISK_THRESHOLDS):
        if crime_rate < bound:
            return level
    return RISK_LEVELS[-1]


# ------------------- DATASET -------------------
def _features(frame):
    return np.column_stack([
        frame["Population"] / 1_000_000,
        frame["ViolentCrime"],
        frame["PropertyCrime"],
        frame["Murder"],
        frame["Robbery"],
    ])


def _read(path):
    path = Path(path)
    if not path.exists():
        raise DatasetError(f"Crime dataset not found: {path}")

    try:
        frame = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise DatasetError(f"Could not parse crime dataset {path}: {exc}") from exc

    missing = [c for c in COLUMNS if c not in frame.columns]
    if missing:
        raise DatasetError(f"Crime dataset missing columns: {', '.join(missing)}")
    if frame.empty:
        raise DatasetError(f"Crime dataset {path} has no rows")

    frame = frame[COLUMNS].copy()
    frame["City"] = frame["City"].astype(str).str.strip()
    frame["State"] = frame["State"].astype(str).str.strip()
    for column in COUNT_COLUMNS + ["CrimeRate"]:
        frame[column] = pd.to_numeric(frame[column], errors="coerce")

    bad = frame[COUNT_COLUMNS + ["CrimeRate"]].isna().any(axis=1)
    if bad.any():
        rows = ", ".join(str(i + 2) for i in frame.index[bad.to_numpy()][:5])
        raise DatasetError(f"Non-numeric values in crime dataset at line(s) {rows}")

    frame[COUNT_COLUMNS] = frame[COUNT_COLUMNS].astype(int)
    frame["CrimeRate"] = frame["CrimeRate"].astype(float)
    return frame


# ------------------- PREDICTOR -------------------
class CrimePredictor:

    def __init__(self, n_estimators=25, random_state=3):
        self.n_estimators = n_estimators
        self.random_state = random_state
        self.data = None
        self.model = None

    @property
    def ready(self):
        return self.data is not None

    def load_dataset(self, path):
        frame = _read(path)
        labels = [RISK_LEVELS.index(risk_level(r)) for r in frame["CrimeRate"]]

        model = RandomForestClassifier(
            n_estimators=self.n_estimators,
            max_features=0.8,
            bootstrap=True,
            random_state=self.random_state,
        )
        model.fit(_features(frame), labels)

        self.data = frame
        self.model = model
        logger.info("Crime dataset loaded | %d cities | %s", len(frame), path)

    def _require(self):
        if not self.ready:
            raise PredictorNotReady("Crime prediction data has not been loaded")

    @staticmethod
    def _project(row):
        return {
            "city": row.City,
            "state": row.State,
            "crimeRate": float(row.CrimeRate),
            "riskLevel": risk_level(row.CrimeRate),
            "violentCrime": int(row.ViolentCrime),
            "propertyCrime": int(row.PropertyCrime),
        }

    def all_predictions(self):
        self._require()
        ordered = self.data.sort_values("CrimeRate", ascending=False, kind="stable")
        return [self._project(row) for row in ordered.itertuples(index=False)]

    def top_risk_cities(self, limit=10):
        return self.all_predictions()[:max(limit, 0)]

    def _find(self, city_name):
        self._require()
        matches = self.data[self.data["City"].str.lower() == city_name.strip().lower()]
        if matches.empty:
            return None
        return matches.iloc[[0]]

    def city_prediction(self, city_name):
        match = self._find(city_name)
        if match is None:
            return None
        return self._project(next(match.itertuples(index=False)))

    def model_risk_level(self, city_name):
        """Risk bucket the fitted forest assigns to ``city_name``."""
        match = self._find(city_name)
        if match is None:
            return None
        label = int(self.model.predict(_features(match))[0])
        return RISK_LEVELS[label]

    def crime_distribution(self):
        self._require()
        buckets = {level: [] for level in RISK_LEVELS}
        for row in self.data.itertuples(index=False):
            buckets[risk_level(row.CrimeRate)].append(row.City)
        return [
            {"riskLevel": level, "count": len(cities), "cities": cities}
            for level, cities in buckets.items()
        ]

    def statistics(self):
        self._require()
        rates = self.data["CrimeRate"]
        safest = self.data.loc[rates.idxmin()]
        worst = self.data.loc[rates.idxmax()]
        return {
            "totalCities": int(len(self.data)),
            "avgCrimeRate": round(float(rates.mean()), 1),
            "safestCity": {"city": safest.City, "state": safest.State, "rate": float(safest.CrimeRate)},
            "mostDangerous": {"city": worst.City, "state": worst.State, "rate": float(worst.CrimeRate)},
        }
