import base64
import logging
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request, session
from pydantic import BaseModel, ValidationError

from models.schemas import (
    CriminalDraft,
    CriminalPatch,
    FirDraft,
    FirPatch,
    Role,
    UserDraft,
    UserPatch,
)
from storage.base import verify_password
from storage.errors import ConflictError, StorageError

logger = logging.getLogger("records.api")

controllers = Blueprint('controllers', __name__, url_prefix='/api')


def get_store():
    return current_app.extensions['records_store']


# ------------------- ERRORS -------------------
@controllers.errorhandler(ValidationError)
def invalid_payload(exc):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return jsonify({"message": "Invalid data", "errors": errors}), 400


@controllers.errorhandler(ValueError)
def bad_request(exc):
    return jsonify({"message": str(exc)}), 400


@controllers.errorhandler(ConflictError)
def conflict(exc):
    logger.info("Conflict | %s", exc)
    return jsonify({"message": str(exc), "field": exc.field}), 409


@controllers.errorhandler(StorageError)
def storage_unavailable(exc):
    logger.error("Storage unavailable | %s %s | %s", request.method, request.path, exc)
    return jsonify({"message": "Record storage is unavailable"}), 503


def not_found(kind):
    return jsonify({"message": f"{kind} not found"}), 404


# ------------------- ACCESS CONTROL -------------------
def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        user_id = session.get('user_id')
        user = get_store().get_user(user_id) if user_id else None
        if user is None or not user.is_active:
            session.clear()
            return jsonify({"message": "Authentication required"}), 401
        g.user = user
        return view(*args, **kwargs)
    return wrapped


def admin_required(view):
    """Only admins may modify or delete; operators create and read."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if g.user.role != Role.ADMIN:
            return jsonify({"message": "Admin access required"}), 403
        return view(*args, **kwargs)
    return wrapped


# ------------------- PAYLOADS -------------------
def payload():
    if request.mimetype != 'application/json':
        return request.form.to_dict()
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Request body must be an object")
    return data


def parse(model, data):
    return model.model_validate(data)


def encode_photo(data):
    """Fold an uploaded ``photo`` file into the payload as a data URL."""
    upload = request.files.get('photo')
    if upload is None or upload.filename == '':
        return data
    if not (upload.mimetype or '').startswith('image/'):
        raise ValueError("Only image files are allowed")

    encoded = base64.b64encode(upload.read()).decode('ascii')
    data['photo'] = f"data:{upload.mimetype};base64,{encoded}"
    return data


def check_criminal_link(fields):
    criminal_id = fields.criminal_id if isinstance(fields, BaseModel) else fields.get('criminal_id')
    if criminal_id and get_store().get_criminal(criminal_id) is None:
        raise ValueError(f"Criminal record '{criminal_id}' does not exist")


# ------------------- AUTH -------------------
@controllers.route('/auth/login', methods=['POST'])
def login():
    data = payload()
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        return jsonify({"message": "Username and password are required"}), 400

    store = get_store()
    user = store.get_user_by_username(username)
    if not user or not user.is_active or not verify_password(user, password):
        logger.info("Failed login | %s", username)
        return jsonify({"message": "Invalid credentials"}), 401

    user = store.record_login(user.id)
    session['user_id'] = user.id
    logger.info("Logged in | %s | %s", user.username, user.role.value)
    return jsonify({"user": user.public()})


@controllers.route('/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({"message": "Logged out successfully"})


@controllers.route('/auth/me')
@login_required
def me():
    return jsonify({"user": g.user.public()})


# ------------------- USERS -------------------
@controllers.route('/users')
@login_required
def list_users():
    return jsonify([u.public() for u in get_store().list_users()])


@controllers.route('/users', methods=['POST'])
@login_required
def create_user():
    draft = parse(UserDraft, payload())
    user = get_store().insert_user(draft)
    return jsonify(user.public()), 201


@controllers.route('/users/<user_id>', methods=['PUT'])
@admin_required
def update_user(user_id):
    patch = parse(UserPatch, payload())
    user = get_store().update_user(user_id, patch)
    if user is None:
        return not_found("User")
    return jsonify(user.public())


@controllers.route('/users/<user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    if user_id == g.user.id:
        return jsonify({"message": "You cannot delete your own account"}), 400
    if not get_store().delete_user(user_id):
        return not_found("User")
    return jsonify({"message": "User deleted successfully"})


# ------------------- CRIMINAL RECORDS -------------------
@controllers.route('/criminals')
@login_required
def list_criminals():
    query = request.args.get('search', '')
    filters = {
        "crime_type": request.args.get('crimeType'),
        "status": request.args.get('status'),
    }
    store = get_store()
    if query or any(filters.values()):
        records = store.search_criminals(query, filters)
    else:
        records = store.list_criminals()
    return jsonify([r.to_json() for r in records])


@controllers.route('/criminals/<record_id>')
@login_required
def get_criminal(record_id):
    record = get_store().get_criminal(record_id)
    if record is None:
        return not_found("Criminal record")
    return jsonify(record.to_json())


@controllers.route('/criminals', methods=['POST'])
@login_required
def create_criminal():
    draft = parse(CriminalDraft, encode_photo(payload()))
    record = get_store().insert_criminal(draft)
    return jsonify(record.to_json()), 201


@controllers.route('/criminals/<record_id>', methods=['PUT'])
@admin_required
def update_criminal(record_id):
    patch = parse(CriminalPatch, encode_photo(payload()))
    record = get_store().update_criminal(record_id, patch)
    if record is None:
        return not_found("Criminal record")
    return jsonify(record.to_json())


@controllers.route('/criminals/<record_id>', methods=['DELETE'])
@admin_required
def delete_criminal(record_id):
    if not get_store().delete_criminal(record_id):
        return not_found("Criminal record")
    return jsonify({"message": "Criminal record deleted successfully"})


# ------------------- FIR RECORDS -------------------
@controllers.route('/firs')
@login_required
def list_firs():
    query = request.args.get('search', '')
    filters = {"criminal_id": request.args.get('criminalId')}
    store = get_store()
    if query or any(filters.values()):
        records = store.search_firs(query, filters)
    else:
        records = store.list_firs()
    return jsonify([r.to_json() for r in records])


@controllers.route('/firs/<record_id>')
@login_required
def get_fir(record_id):
    record = get_store().get_fir(record_id)
    if record is None:
        return not_found("FIR record")
    return jsonify(record.to_json())


@controllers.route('/firs', methods=['POST'])
@login_required
def create_fir():
    draft = parse(FirDraft, payload())
    check_criminal_link(draft)
    record = get_store().insert_fir(draft)
    return jsonify(record.to_json()), 201


@controllers.route('/firs/<record_id>', methods=['PUT'])
@admin_required
def update_fir(record_id):
    patch = parse(FirPatch, payload())
    check_criminal_link(patch.changes())
    record = get_store().update_fir(record_id, patch)
    if record is None:
        return not_found("FIR record")
    return jsonify(record.to_json())


@controllers.route('/firs/<record_id>', methods=['DELETE'])
@admin_required
def delete_fir(record_id):
    if not get_store().delete_fir(record_id):
        return not_found("FIR record")
    return jsonify({"message": "FIR record deleted successfully"})


# ------------------- STATISTICS -------------------
@controllers.route('/statistics')
@login_required
def statistics():
    return jsonify(get_store().statistics().to_json())


# ------------------- HEALTH -------------------
@controllers.route('/health')
def health():
    get_store().ping()
    predictor = current_app.extensions.get('crime_predictor')
    return jsonify({
        "status": "ok",
        "storage": current_app.config['STORAGE_BACKEND'],
        "prediction": bool(predictor and predictor.ready),
    })
