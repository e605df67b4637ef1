import pytest

from app import create_app
from config import TestingConfig
from models.models import db
from models.schemas import CriminalDraft, FirDraft, UserDraft

CRIME_CSV = """City,State,Population,ViolentCrime,PropertyCrime,Murder,Robbery,Assault,Burglary,Theft,CrimeRate
Gotham,New Jersey,1200000,14200,31000,310,4100,9000,6200,20500,910.5
Metro City,Illinois,850000,9100,22000,150,2600,6000,4100,15000,702.0
Springfield,Oregon,420000,3800,12800,40,900,2700,2200,8900,640.0
Riverton,Ohio,260000,1900,7400,12,420,1400,1300,5100,455.2
Lakeside,Michigan,180000,900,3900,4,160,700,640,2800,300.0
Pleasantville,Vermont,90000,210,1150,1,30,170,190,850,120.4
"""


@pytest.fixture
def crime_csv(tmp_path):
    path = tmp_path / "crime_data.csv"
    path.write_text(CRIME_CSV)
    return path


@pytest.fixture(params=["memory", "sql"])
def app(request, crime_csv):
    app = create_app(
        TestingConfig,
        STORAGE_BACKEND=request.param,
        CRIME_DATA_PATH=str(crime_csv),
    )
    with app.app_context():
        yield app
        if request.param == "sql":
            db.session.remove()
            db.drop_all()


@pytest.fixture
def store(app):
    return app.extensions['records_store']


@pytest.fixture
def predictor(app):
    return app.extensions['crime_predictor']


def criminal_draft(**fields):
    values = {"name": "John Doe", "age": 30, "gender": "male", "crime_type": "theft"}
    values.update(fields)
    return CriminalDraft(**values)


def fir_draft(**fields):
    values = {"description": "Burglary reported at warehouse"}
    values.update(fields)
    return FirDraft(**values)


def _login(app, store, username, role):
    store.insert_user(UserDraft(username=username, password="secret123", role=role, name=username.title()))
    client = app.test_client()
    response = client.post("/api/auth/login", json={"username": username, "password": "secret123"})
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_client(app, store):
    return _login(app, store, "chief", "admin")


@pytest.fixture
def operator_client(app, store):
    return _login(app, store, "clerk", "operator")
