"""Care recipients blueprint: the people whose care is tracked, owned by the current user."""
from flask import Blueprint, jsonify, g
import logging
from ..models import db, CareRecipient
from ..utils import (
    api_error, handle_api_exception, get_json_data, validate_schema, get_owned_recipient,
    cascade_delete_care_recipient, NotFoundError
)
from shared.schemas import CareRecipientCreate, CareRecipientUpdate, CareRecipientResponse
from shared.validation import ValidationError

bp = Blueprint('care_recipients', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)


def serialize_recipient(recipient):
    return CareRecipientResponse.model_validate(recipient).model_dump(mode='json', by_alias=True)


@bp.route('/care-recipients', methods=['GET'])
def get_care_recipients():
    """Care recipients of the current user in creation order."""
    recipients = (
        CareRecipient.query.filter_by(user_id=g.user.id)
        .order_by(CareRecipient.created_at, CareRecipient.id)
        .all()
    )
    return jsonify([serialize_recipient(recipient) for recipient in recipients])


@bp.route('/care-recipients/<int:care_recipient_id>', methods=['GET'])
def get_care_recipient(care_recipient_id):
    try:
        return jsonify(serialize_recipient(get_owned_recipient(care_recipient_id)))
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')


@bp.route('/care-recipients', methods=['POST'])
def create_care_recipient():
    try:
        data = get_json_data()
        validated = validate_schema(CareRecipientCreate, data)
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        recipient = CareRecipient(user_id=g.user.id, **validated)
        db.session.add(recipient)
        db.session.commit()
        logger.info(f"Created care recipient {recipient.id} for user {g.user.id}")
        return jsonify(serialize_recipient(recipient)), 201
    except Exception as e:
        return handle_api_exception(e, 'create care recipient')


@bp.route('/care-recipients/<int:care_recipient_id>', methods=['PATCH', 'PUT'])
def update_care_recipient(care_recipient_id):
    try:
        recipient = get_owned_recipient(care_recipient_id)
        data = get_json_data()
        validated = validate_schema(CareRecipientUpdate, data, partial=True)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        for key, value in validated.items():
            if value is not None:
                setattr(recipient, key, value)
        db.session.commit()
        logger.info(f"Updated care recipient {recipient.id}")
        return jsonify(serialize_recipient(recipient))
    except Exception as e:
        return handle_api_exception(e, 'update care recipient')


@bp.route('/care-recipients/<int:care_recipient_id>', methods=['DELETE'])
def delete_care_recipient(care_recipient_id):
    """Delete a care recipient together with every record that belongs to them."""
    try:
        get_owned_recipient(care_recipient_id)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        summary = cascade_delete_care_recipient(care_recipient_id)
        db.session.commit()
        return jsonify({
            'message': 'Care recipient deleted successfully',
            'summary': summary
        })
    except Exception as e:
        return handle_api_exception(e, 'delete care recipient')
