"""Appointments blueprint."""
from flask import Blueprint, jsonify, request
from ..base.generic_crud import GenericCRUD, register_crud_routes
from ..models import Appointment
from ..utils import api_error, get_int_arg, get_owned_recipient, NotFoundError
from shared.schemas import AppointmentCreate, AppointmentUpdate, AppointmentResponse
from shared.utils import parse_iso_date, month_bounds
from shared.validation import ValidationError

bp = Blueprint('appointments', __name__, url_prefix='/api')


def filter_by_date(query):
    """Optional ?date=YYYY-MM-DD narrows the list to one day."""
    raw = request.args.get('date')
    if not raw:
        return query
    day = parse_iso_date(raw)
    if day is None:
        raise ValidationError('date must be in YYYY-MM-DD format')
    return query.filter(Appointment.date == day)


appointment_crud = GenericCRUD(
    model=Appointment,
    create_schema=AppointmentCreate,
    update_schema=AppointmentUpdate,
    response_schema=AppointmentResponse,
    logger_name='appointments',
    order_by=(Appointment.date, Appointment.time),
    list_filter_hook=filter_by_date
)


@bp.route('/appointments/month', methods=['GET'])
def appointments_for_month():
    """Appointments of one calendar month, for the calendar view."""
    try:
        care_recipient_id = get_int_arg('careRecipientId')
        get_owned_recipient(care_recipient_id)
        try:
            first, following = month_bounds(request.args.get('month') or '')
        except ValueError:
            raise ValidationError('month must be in YYYY-MM format')
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    appointments = (
        Appointment.query.filter(
            Appointment.care_recipient_id == care_recipient_id,
            Appointment.date >= first,
            Appointment.date < following,
        )
        .order_by(Appointment.date, Appointment.time)
        .all()
    )
    return jsonify([appointment_crud.serialize(appointment) for appointment in appointments])


register_crud_routes(bp, appointment_crud, 'appointments')
