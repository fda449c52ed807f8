"""Emergency info blueprint: PIN / password gated identity, insurance and contact data."""
from flask import Blueprint, jsonify, g
import logging
from pydantic.alias_generators import to_camel
from werkzeug.security import generate_password_hash, check_password_hash
from ..models import db, EmergencyInfo
from ..services import emergency_access
from ..utils import (
    api_error, handle_api_exception, get_json_data, get_int_arg, get_owned_recipient, validate_schema,
    NotFoundError
)
from shared.schemas import (
    EmergencyInfoCreate, EmergencyInfoUpdate, EmergencyInfoResponse, PinRequest, PasswordRequest,
    SENSITIVE_EMERGENCY_FIELDS
)
from shared.validation import ValidationError

bp = Blueprint('emergency_info', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)


def serialize_emergency_info(info, unlocked):
    """Full record when unlocked; otherwise only identifiers and lock state."""
    data = EmergencyInfoResponse.model_validate(info).model_dump(mode='json', by_alias=True)
    if not unlocked:
        hidden = {to_camel(name) for name in SENSITIVE_EMERGENCY_FIELDS}
        data = {key: value for key, value in data.items() if key not in hidden}
    data['hasPin'] = bool(info.pin_hash)
    data['locked'] = not unlocked
    return data


def get_owned_emergency_info(emergency_info_id):
    info = db.session.get(EmergencyInfo, emergency_info_id)
    if info is None:
        raise NotFoundError('Emergency info not found')
    get_owned_recipient(info.care_recipient_id)
    return info


@bp.route('/emergency-info', methods=['GET'])
def get_emergency_info():
    """Emergency info of a care recipient, or a not_found status asking the client to create it."""
    try:
        care_recipient_id = get_int_arg('careRecipientId')
        recipient = get_owned_recipient(care_recipient_id)
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    info = EmergencyInfo.query.filter_by(care_recipient_id=care_recipient_id).first()
    if info is None:
        return jsonify({
            'status': 'not_found',
            'message': f'No emergency information has been created for {recipient.name} yet. Please create a new record.',
            'careRecipient': {'id': recipient.id, 'name': recipient.name},
            'needsCreation': True,
            'emergencyInfo': None
        })

    unlocked = emergency_access.has_access(g.token, info.id)
    return jsonify({
        'status': 'success',
        'emergencyInfo': serialize_emergency_info(info, unlocked)
    })


@bp.route('/emergency-info', methods=['POST'])
def create_emergency_info():
    """Create the record, or update it when the care recipient already has one."""
    try:
        data = get_json_data()
        validated = validate_schema(EmergencyInfoCreate, data)
        get_owned_recipient(validated['care_recipient_id'])
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    pin = validated.pop('pin', None)
    existing = EmergencyInfo.query.filter_by(care_recipient_id=validated['care_recipient_id']).first()

    if existing is not None:
        # Overwriting sensitive data needs the same access as reading it
        if not emergency_access.has_access(g.token, existing.id):
            return api_error('Verify the PIN or password before editing emergency info', 403)
        try:
            for key, value in validated.items():
                setattr(existing, key, value)
            if pin:
                existing.pin_hash = generate_password_hash(pin)
            db.session.commit()
            logger.info(f"Updated emergency info {existing.id} for care recipient {existing.care_recipient_id}")
            return jsonify({
                'status': 'success',
                'message': 'Emergency info updated successfully',
                'emergencyInfo': serialize_emergency_info(existing, True)
            })
        except Exception as e:
            return handle_api_exception(e, 'update emergency info')

    try:
        info = EmergencyInfo(**validated)
        if pin:
            info.pin_hash = generate_password_hash(pin)
        db.session.add(info)
        db.session.flush()
        # The author of the record can see what they just entered
        emergency_access.grant_access(g.token, info.id)
        db.session.commit()
        logger.info(f"Created emergency info {info.id} for care recipient {info.care_recipient_id}")
        return jsonify({
            'status': 'success',
            'message': 'Emergency info created successfully',
            'emergencyInfo': serialize_emergency_info(info, True)
        }), 201
    except Exception as e:
        return handle_api_exception(e, 'create emergency info')


@bp.route('/emergency-info/<int:emergency_info_id>', methods=['GET'])
def get_emergency_info_by_id(emergency_info_id):
    try:
        info = get_owned_emergency_info(emergency_info_id)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')
    return jsonify(serialize_emergency_info(info, emergency_access.has_access(g.token, info.id)))


@bp.route('/emergency-info/<int:emergency_info_id>', methods=['PATCH', 'PUT'])
def update_emergency_info(emergency_info_id):
    try:
        info = get_owned_emergency_info(emergency_info_id)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    if not emergency_access.has_access(g.token, info.id):
        return api_error('Verify the PIN or password before editing emergency info', 403)

    try:
        data = get_json_data()
        validated = validate_schema(EmergencyInfoUpdate, data, partial=True)
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        for key, value in validated.items():
            setattr(info, key, value)
        db.session.commit()
        logger.info(f"Updated emergency info {info.id}")
        return jsonify(serialize_emergency_info(info, True))
    except Exception as e:
        return handle_api_exception(e, 'update emergency info')


@bp.route('/emergency-info/<int:emergency_info_id>/verify-pin', methods=['POST'])
def verify_pin(emergency_info_id):
    """Check a PIN; success grants this token access to the record for a limited time."""
    info = db.session.get(EmergencyInfo, emergency_info_id)
    if info is None:
        return jsonify({
            'verified': False,
            'needsCreation': True,
            'error': 'Emergency information not found. Please create a new record first.'
        }), 404
    try:
        get_owned_recipient(info.care_recipient_id)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        pin = validate_schema(PinRequest, get_json_data())['pin']
    except ValidationError as e:
        return api_error(str(e), 400)

    if not info.pin_hash or not check_password_hash(info.pin_hash, pin):
        logger.warning(f"Failed PIN verification for emergency info {info.id}")
        return jsonify({'verified': False, 'error': 'Invalid PIN'}), 401

    try:
        expires_at = emergency_access.grant_access(g.token, info.id)
        db.session.commit()
        return jsonify({'verified': True, 'expiresAt': expires_at.isoformat()})
    except Exception as e:
        return handle_api_exception(e, 'verify PIN')


@bp.route('/emergency-info/<int:emergency_info_id>/set-pin', methods=['POST'])
def set_pin(emergency_info_id):
    """Set or change the PIN. Changing an existing PIN requires current access."""
    try:
        info = get_owned_emergency_info(emergency_info_id)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    if info.pin_hash and not emergency_access.has_access(g.token, info.id):
        return api_error('Verify the current PIN or password before changing it', 403)

    try:
        pin = validate_schema(PinRequest, get_json_data())['pin']
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        info.pin_hash = generate_password_hash(pin)
        emergency_access.grant_access(g.token, info.id)
        db.session.commit()
        logger.info(f"PIN set for emergency info {info.id}")
        return jsonify({'success': True, 'message': 'PIN set successfully'})
    except Exception as e:
        return handle_api_exception(e, 'set PIN')


def _verify_password():
    try:
        password = validate_schema(PasswordRequest, get_json_data())['password']
    except ValidationError as e:
        return api_error(str(e), 400)

    if not check_password_hash(g.user.password_hash, password):
        logger.warning(f"Failed emergency password verification for user {g.user.id}")
        return jsonify({'verified': False, 'error': 'Invalid password'}), 401

    try:
        expires_at = emergency_access.grant_access(g.token)
        db.session.commit()
        return jsonify({'verified': True, 'expiresAt': expires_at.isoformat()})
    except Exception as e:
        return handle_api_exception(e, 'verify password')


@bp.route('/emergency-info/verify-password', methods=['POST'])
def verify_password():
    """Re-authenticate with the account password; unlocks all of the user's records."""
    return _verify_password()


@bp.route('/emergency-reauth', methods=['POST'])
def emergency_reauth():
    return _verify_password()


@bp.route('/emergency-info/verify-status', methods=['GET'])
def verify_status():
    return jsonify({'verified': emergency_access.has_any_access(g.token)})
