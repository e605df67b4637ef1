import logging
from datetime import datetime

from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

from config import Config
from controllers.controllers import controllers
from controllers.predictions import predictions
from models.models import db
from models.schemas import CriminalDraft, FirDraft, UserDraft
from prediction.predictor import CrimePredictor, DatasetError
from storage.memory import MemoryStorage
from storage.sql import SqlStorage

logger = logging.getLogger("records")


# ------------------- STORAGE -------------------
def build_storage(app):
    backend = app.config['STORAGE_BACKEND']
    if backend == 'memory':
        return MemoryStorage()
    if backend == 'sql':
        db.create_all()
        return SqlStorage(db)
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}' (expected 'sql' or 'memory')")


# ------------------- DEFAULT ACCOUNTS & SAMPLE DATA -------------------
def seed_defaults(store):
    if store.get_user_by_username('admin'):
        logger.info("Default accounts already exist")
        return

    store.insert_user(UserDraft(username='admin', password='admin123', role='admin', name='John Smith'))
    store.insert_user(UserDraft(username='operator', password='operator123', role='operator', name='Sarah Wilson'))

    robert = store.insert_criminal(CriminalDraft(
        name='Robert Johnson', age=28, gender='male', crime_type='theft',
        fir_number='FIR-2024-001234', case_status='pending',
        arrest_date=datetime(2024, 12, 15), address='123 Main St, City',
    ))
    store.insert_criminal(CriminalDraft(
        name='Maria Garcia', age=35, gender='female', crime_type='fraud',
        fir_number='FIR-2024-001235', case_status='closed',
        arrest_date=datetime(2024, 12, 10), address='456 Oak Ave, City',
    ))
    store.insert_fir(FirDraft(
        fir_number='FIR-2024-001234', criminal_id=robert.id,
        fir_date=datetime(2024, 12, 15),
        description='Theft of electronic items from residential area including '
                    'laptops, mobile phones, and other valuable items',
    ))
    logger.info("Default accounts created (admin | admin123, operator | operator123)")


# ------------------- PREDICTION -------------------
def load_predictor(app):
    predictor = CrimePredictor()
    try:
        predictor.load_dataset(app.config['CRIME_DATA_PATH'])
    except DatasetError as exc:
        logger.error("Crime prediction disabled: %s", exc)
    return predictor


# ------------------- APP FACTORY -------------------
def create_app(config_object=Config, **overrides):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    app.register_blueprint(controllers)
    app.register_blueprint(predictions)

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(exc):
        return jsonify({"message": "Upload exceeds the 5 MB limit"}), 413

    with app.app_context():
        store = build_storage(app)
        app.extensions['records_store'] = store
        if app.config.get('SEED_DEMO_DATA'):
            seed_defaults(store)

    app.extensions['crime_predictor'] = load_predictor(app)
    return app


def close_storage(app):
    with app.app_context():
        app.extensions['records_store'].close()


# ------------------- APP STARTUP -------------------
if __name__ == "__main__":
    app = create_app()
    try:
        app.run(debug=True)
    finally:
        close_storage(app)
