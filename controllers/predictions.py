import logging

from flask import Blueprint, current_app, jsonify, request

from prediction.predictor import PredictorNotReady

logger = logging.getLogger("records.api")

predictions = Blueprint('predictions', __name__, url_prefix='/api/predict')


def get_predictor():
    return current_app.extensions['crime_predictor']


@predictions.errorhandler(PredictorNotReady)
def not_ready(exc):
    logger.warning("Prediction requested before dataset load | %s", request.path)
    return jsonify({"message": "Crime prediction is not available"}), 503


@predictions.route('/all')
def all_predictions():
    return jsonify(get_predictor().all_predictions())


@predictions.route('/top-risk')
def top_risk():
    limit = request.args.get('limit', default=10, type=int)
    return jsonify(get_predictor().top_risk_cities(limit))


@predictions.route('/city/<name>')
def city(name):
    prediction = get_predictor().city_prediction(name)
    if prediction is None:
        return jsonify({"message": "City not found"}), 404
    return jsonify(prediction)


@predictions.route('/distribution')
def distribution():
    return jsonify(get_predictor().crime_distribution())


@predictions.route('/statistics')
def statistics():
    return jsonify(get_predictor().statistics())
