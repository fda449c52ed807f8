"""Dashboard blueprint: daily statistics and the upcoming events feed."""
from flask import Blueprint, jsonify, request
from ..services.care_stats import get_date_stats, get_upcoming_events
from ..utils import api_error, handle_api_exception, get_int_arg, get_owned_recipient, NotFoundError
from shared.models import now
from shared.utils import parse_iso_date
from shared.validation import ValidationError

bp = Blueprint('care_stats', __name__, url_prefix='/api')


def _owned_recipient_from_args():
    care_recipient_id = get_int_arg('careRecipientId')
    get_owned_recipient(care_recipient_id)
    return care_recipient_id


@bp.route('/care-stats/today', methods=['GET'])
def today_stats():
    try:
        care_recipient_id = _owned_recipient_from_args()
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        return jsonify(get_date_stats(care_recipient_id, now().date()))
    except Exception as e:
        return handle_api_exception(e, 'load care stats')


@bp.route('/care-stats/date', methods=['GET'])
def date_stats():
    try:
        care_recipient_id = _owned_recipient_from_args()
        day = parse_iso_date(request.args.get('date'))
        if day is None:
            raise ValidationError('date must be in YYYY-MM-DD format')
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        return jsonify(get_date_stats(care_recipient_id, day))
    except Exception as e:
        return handle_api_exception(e, 'load care stats')


@bp.route('/events/upcoming', methods=['GET'])
def upcoming_events():
    try:
        care_recipient_id = _owned_recipient_from_args()
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        return jsonify(get_upcoming_events(care_recipient_id))
    except Exception as e:
        return handle_api_exception(e, 'load upcoming events')
