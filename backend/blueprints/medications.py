"""Medications blueprint: medications, schedules, dose logs, inventory and pharmacy links."""
from flask import Blueprint, jsonify, request
import logging
from ..base.generic_crud import GenericCRUD, Scope, register_crud_routes
from ..models import db, Medication, MedicationSchedule, MedicationLog, MedicationPharmacy, Doctor, Pharmacy
from ..services import drug_reference
from ..services.care_stats import get_reorder_alerts
from ..utils import (
    api_error, handle_api_exception, get_json_data, get_int_arg, validate_schema,
    get_owned_recipient, get_owned_medication, NotFoundError
)
from shared.models import now
from shared.schemas import (
    MedicationCreate, MedicationUpdate, MedicationResponse,
    MedicationScheduleCreate, MedicationScheduleUpdate, MedicationScheduleResponse,
    MedicationLogCreate, MedicationLogUpdate, MedicationLogResponse,
    MedicationPharmacyCreate, MedicationPharmacyResponse,
    MedicationInventoryUpdate, MedicationRefill
)
from shared.validation import ValidationError

bp = Blueprint('medications', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

MEDICATION_SCOPE = Scope('medicationId', 'medication_id', get_owned_medication)


def serialize_medication(medication):
    data = MedicationResponse.model_validate(medication).model_dump(mode='json', by_alias=True)
    data['schedules'] = [
        MedicationScheduleResponse.model_validate(schedule).model_dump(mode='json', by_alias=True)
        for schedule in medication.schedules
    ]
    return data


def check_doctor(validated_data, care_recipient_id):
    doctor_id = validated_data.get('doctor_id')
    if doctor_id is not None:
        doctor = db.session.get(Doctor, doctor_id)
        if doctor is None or doctor.care_recipient_id != care_recipient_id:
            raise ValidationError('doctorId must reference a doctor of the same care recipient')
    return validated_data


def check_medication_log(validated_data, care_recipient_id, medication_id):
    medication = db.session.get(Medication, medication_id)
    if medication is None or medication.care_recipient_id != care_recipient_id:
        raise ValidationError('medicationId must reference a medication of the same care recipient')
    schedule_id = validated_data.get('schedule_id')
    if schedule_id is not None:
        schedule = db.session.get(MedicationSchedule, schedule_id)
        if schedule is None or schedule.medication_id != medication_id:
            raise ValidationError('scheduleId must reference a schedule of the logged medication')
    return validated_data


medication_crud = GenericCRUD(
    model=Medication,
    create_schema=MedicationCreate,
    update_schema=MedicationUpdate,
    response_schema=MedicationResponse,
    logger_name='medications',
    order_by=Medication.name,
    pre_create_hook=lambda data: check_doctor(data, data['care_recipient_id']),
    pre_update_hook=lambda data, medication: check_doctor(data, medication.care_recipient_id),
    serialize_hook=serialize_medication
)

schedule_crud = GenericCRUD(
    model=MedicationSchedule,
    create_schema=MedicationScheduleCreate,
    update_schema=MedicationScheduleUpdate,
    response_schema=MedicationScheduleResponse,
    logger_name='medication_schedules',
    scope=MEDICATION_SCOPE,
    order_by=MedicationSchedule.time
)

log_crud = GenericCRUD(
    model=MedicationLog,
    create_schema=MedicationLogCreate,
    update_schema=MedicationLogUpdate,
    response_schema=MedicationLogResponse,
    logger_name='medication_logs',
    order_by=MedicationLog.taken_at.desc(),
    pre_create_hook=lambda data: check_medication_log(data, data['care_recipient_id'], data['medication_id']),
    pre_update_hook=lambda data, log: check_medication_log(data, log.care_recipient_id, log.medication_id)
)


@bp.route('/medications/reorder-alerts', methods=['GET'])
def reorder_alerts():
    """Medications at or near their reorder threshold."""
    try:
        care_recipient_id = get_int_arg('careRecipientId')
        get_owned_recipient(care_recipient_id)
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        return jsonify(get_reorder_alerts(care_recipient_id))
    except Exception as e:
        return handle_api_exception(e, 'load reorder alerts')


@bp.route('/medications/suggestions', methods=['GET'])
def medication_suggestions():
    partial = (request.args.get('name') or '').strip()
    if len(partial) < drug_reference.MIN_SUGGESTION_LENGTH:
        return api_error('Name parameter must be at least 2 characters', 400)
    return jsonify(drug_reference.get_suggestions(partial))


@bp.route('/medications/normalize-name', methods=['GET'])
def normalize_medication_name():
    name = (request.args.get('name') or '').strip()
    if not name:
        return api_error('Name parameter is required', 400)
    return jsonify({'original': name, 'normalized': drug_reference.normalize_name(name)})


@bp.route('/medications/interactions', methods=['POST'])
def medication_interactions():
    """Known interactions among `medicationNames`."""
    try:
        data = get_json_data()
        names = data.get('medicationNames')
        if not isinstance(names, list) or not names or not all(isinstance(n, str) for n in names):
            raise ValidationError('Medication names array is required')
    except ValidationError as e:
        return api_error(str(e), 400)

    logger.info(f"Checking interactions for {len(names)} medications")
    return jsonify(drug_reference.check_interactions(names))


register_crud_routes(bp, medication_crud, 'medications')
register_crud_routes(bp, schedule_crud, 'medication-schedules')
register_crud_routes(bp, log_crud, 'medication-logs')


@bp.route('/medications/<int:medication_id>/inventory', methods=['PATCH'])
def update_inventory(medication_id):
    """Update stock fields; daysToReorder is clamped to 1..30."""
    try:
        medication = get_owned_medication(medication_id)
        validated = validate_schema(MedicationInventoryUpdate, get_json_data(), partial=True)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        for key, value in validated.items():
            if value is not None or key == 'last_refill_date':
                setattr(medication, key, value)
        db.session.commit()
        logger.info(f"Updated inventory for medication {medication.id}")
        return jsonify(serialize_medication(medication))
    except Exception as e:
        return handle_api_exception(e, 'update medication inventory')


@bp.route('/medications/<int:medication_id>/refill', methods=['POST'])
def refill_medication(medication_id):
    """Add a refill to stock and use up one remaining refill (never below zero)."""
    try:
        medication = get_owned_medication(medication_id)
        validated = validate_schema(MedicationRefill, get_json_data())
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        medication.current_quantity = (medication.current_quantity or 0) + validated['refill_amount']
        medication.refills_remaining = max(0, (medication.refills_remaining or 0) - 1)
        medication.last_refill_date = validated.get('refill_date') or now().date()
        db.session.commit()
        logger.info(
            f"Refilled medication {medication.id} with {validated['refill_amount']}, "
            f"{medication.refills_remaining} refills remaining"
        )
        return jsonify(serialize_medication(medication))
    except Exception as e:
        return handle_api_exception(e, 'refill medication')


@bp.route('/medication-pharmacies', methods=['GET'])
def get_medication_pharmacies():
    try:
        medication = get_owned_medication(get_int_arg('medicationId'))
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    items = []
    for link in medication.pharmacy_links:
        item = MedicationPharmacyResponse.model_validate(link).model_dump(mode='json', by_alias=True)
        item['pharmacy'] = {'id': link.pharmacy.id, 'name': link.pharmacy.name, 'phoneNumber': link.pharmacy.phone_number}
        items.append(item)
    return jsonify(items)


@bp.route('/medication-pharmacies', methods=['POST'])
def create_medication_pharmacy():
    try:
        validated = validate_schema(MedicationPharmacyCreate, get_json_data())
        medication = get_owned_medication(validated['medication_id'])
        pharmacy = db.session.get(Pharmacy, validated['pharmacy_id'])
        if pharmacy is None or pharmacy.care_recipient_id != medication.care_recipient_id:
            raise ValidationError('pharmacyId must reference a pharmacy of the same care recipient')
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        link = MedicationPharmacy(**validated)
        db.session.add(link)
        db.session.commit()
        logger.info(f"Linked medication {link.medication_id} to pharmacy {link.pharmacy_id}")
        return jsonify(MedicationPharmacyResponse.model_validate(link).model_dump(mode='json', by_alias=True)), 201
    except Exception as e:
        return handle_api_exception(e, 'link pharmacy')


@bp.route('/medication-pharmacies/<int:link_id>', methods=['DELETE'])
def delete_medication_pharmacy(link_id):
    link = db.session.get(MedicationPharmacy, link_id)
    try:
        if link is None:
            raise NotFoundError('Medication pharmacy not found')
        get_owned_medication(link.medication_id)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        db.session.delete(link)
        db.session.commit()
        return jsonify({'message': 'Medication pharmacy deleted successfully'})
    except Exception as e:
        return handle_api_exception(e, 'delete medication pharmacy')
