"""Backend utility functions for the care tracker API."""
from flask import jsonify, request, g
from pydantic import ValidationError as PydanticValidationError
from shared.validation import ValidationError
from .models import db, CareRecipient, Medication, Supply
import logging


logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when a record does not exist or belongs to another user."""
    pass


def api_error(message, status_code=400, log_level='warning', details=None, **extra):
    """
    Standardized API error response with consistent logging.

    Args:
        message (str): Error message for the client
        status_code (int): HTTP status code
        log_level (str): Logging level ('debug', 'info', 'warning', 'error', 'critical')
        details (dict, optional): Additional details for logging
        **extra: Additional keys merged into the JSON body

    Returns:
        Flask response: JSON error response
    """
    log_func = getattr(logger, log_level, logger.warning)
    if details:
        log_func(f"API Error ({status_code}): {message} - Details: {details}")
    else:
        log_func(f"API Error ({status_code}): {message}")

    body = {'error': message}
    body.update(extra)
    return jsonify(body), status_code


def handle_api_exception(e, operation="operation", status_code=500):
    """
    Handle exceptions in API endpoints with consistent logging and responses.

    The session is rolled back so the request leaves no partial writes behind.

    Args:
        e (Exception): The exception that occurred
        operation (str): Description of the operation being performed
        status_code (int): HTTP status code to return

    Returns:
        Flask response: JSON error response
    """
    logger.error(f"Exception during {operation}: {str(e)}", exc_info=True)
    db.session.rollback()
    return api_error(f"Failed to {operation}", status_code, 'error')


def format_pydantic_errors(error):
    """Flatten a pydantic ValidationError into "field: message; ..." text."""
    errors = []
    for item in error.errors():
        field = '.'.join(str(x) for x in item['loc'])
        errors.append(f"{field}: {item['msg']}" if field else item['msg'])
    return '; '.join(errors)


def validate_schema(schema, data, partial=False):
    """Validate `data` with a pydantic schema and return snake_case field values.

    Creation drops unset optional values; partial updates keep only the fields
    the client actually sent.

    Raises:
        ValidationError: If validation fails
    """
    try:
        validated = schema(**data)
    except PydanticValidationError as e:
        raise ValidationError(format_pydantic_errors(e))
    if partial:
        return validated.model_dump(exclude_unset=True)
    return validated.model_dump(exclude_none=True)


def get_json_data():
    """Get and validate JSON data from request.

    Raises:
        ValidationError: If JSON is invalid or not a dict
    """
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError('Request body must contain valid JSON')
    if not isinstance(data, dict):
        raise ValidationError('Request data must be a JSON object')
    return data


def get_int_arg(name, required=True):
    """Read an integer query-string parameter such as careRecipientId."""
    raw = request.args.get(name)
    if raw is None or raw == '':
        if required:
            raise ValidationError(f'{name} is required')
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')


def get_owned_recipient(care_recipient_id):
    """Return the care recipient if it belongs to the current user.

    Raises:
        NotFoundError: If the recipient does not exist or has another owner
    """
    if care_recipient_id is None:
        raise ValidationError('careRecipientId is required')
    recipient = db.session.get(CareRecipient, int(care_recipient_id))
    user = getattr(g, 'user', None)
    if recipient is None or user is None or recipient.user_id != user.id:
        raise NotFoundError('Care recipient not found')
    return recipient


def get_owned_medication(medication_id):
    """Return a medication whose care recipient belongs to the current user."""
    medication = db.session.get(Medication, int(medication_id)) if medication_id is not None else None
    if medication is None:
        raise NotFoundError('Medication not found')
    get_owned_recipient(medication.care_recipient_id)
    return medication


def get_owned_supply(supply_id):
    """Return a supply whose care recipient belongs to the current user."""
    supply = db.session.get(Supply, int(supply_id)) if supply_id is not None else None
    if supply is None:
        raise NotFoundError('Supply not found')
    get_owned_recipient(supply.care_recipient_id)
    return supply


def cascade_delete_care_recipient(care_recipient_id):
    """
    Delete a care recipient and every record scoped to them.

    Args:
        care_recipient_id (int): ID of the care recipient to delete

    Returns:
        dict: Summary of deleted records per table
    """
    summary = {'care_recipients': 0}

    try:
        recipient = db.session.get(CareRecipient, care_recipient_id)
        if not recipient:
            return summary

        medications = list(recipient.medications)
        summary['medications'] = len(medications)
        summary['medication_schedules'] = sum(len(m.schedules) for m in medications)
        summary['medication_pharmacies'] = sum(len(m.pharmacy_links) for m in medications)
        summary['medication_logs'] = len(recipient.medication_logs)
        summary['appointments'] = len(recipient.appointments)
        summary['meals'] = len(recipient.meals)
        summary['bowel_movements'] = len(recipient.bowel_movements)
        summary['urination'] = len(recipient.urination_records)
        summary['supplies'] = len(recipient.supplies)
        summary['supply_usages'] = sum(len(s.usages) for s in recipient.supplies)
        summary['sleep'] = len(recipient.sleep_records)
        summary['notes'] = len(recipient.notes)
        summary['doctors'] = len(recipient.doctors)
        summary['pharmacies'] = len(recipient.pharmacies)
        summary['emergency_info'] = len(recipient.emergency_info)
        summary['blood_pressure'] = len(recipient.blood_pressure_readings)
        summary['glucose'] = len(recipient.glucose_readings)
        summary['insulin'] = len(recipient.insulin_records)

        # ORM cascades remove the dependent rows together with the recipient
        db.session.delete(recipient)
        summary['care_recipients'] = 1

        logger.info(f"Cascading delete completed for care recipient {care_recipient_id}: {summary}")

    except Exception as e:
        logger.error(f"Error in cascade delete of care recipient {care_recipient_id}: {e}")
        raise

    return summary


def register_error_handlers(app):
    """Answer NotFoundError, ValidationError and stray 404/405s with JSON bodies."""

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return api_error(str(e), 404, 'info')

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return api_error(str(e), 400)

    @app.errorhandler(404)
    def handle_404(e):
        return api_error('Resource not found', 404, 'info')

    @app.errorhandler(405)
    def handle_405(e):
        return api_error('Method not allowed', 405, 'info')
