"""Dashboard statistics, upcoming events and reorder alerts for one care recipient."""
from datetime import timedelta
import logging
from ..models import (
    Medication, MedicationSchedule, MedicationLog, Meal, BowelMovement, Sleep, BloodPressure,
    Glucose, Insulin, Note, Supply, Appointment
)
from shared.enums import EventType, TRACKED_MEAL_TYPES
from shared.models import naive_now
from shared.schemas import (
    MedicationLogResponse, MealResponse, BowelMovementResponse, SleepResponse, BloodPressureResponse,
    GlucoseResponse, InsulinResponse, NoteResponse, MedicationResponse, MedicationScheduleResponse
)
from shared.utils import day_bounds, is_scheduled_on, format_sleep_duration, format_time_ago, estimate_daily_usage

logger = logging.getLogger(__name__)

# Supply whose stock is surfaced on the dashboard
DASHBOARD_SUPPLY_NAME = 'Depends'
UPCOMING_APPOINTMENT_DAYS = 7
UPCOMING_APPOINTMENT_LIMIT = 5
DEFAULT_REORDER_THRESHOLD = 5
DEFAULT_DAYS_TO_REORDER = 7


def _dump(schema, items):
    return [schema.model_validate(item).model_dump(mode='json', by_alias=True) for item in items]


def _in_day(query, column, start, end):
    return query.filter(column >= start, column < end)


def is_medication_complete(schedules, day_logs):
    """Decide whether a medication's doses for the day are done.

    Every regular (not as-needed) schedule needs a log carrying its schedule id.
    A medication with no schedules needs any logged dose; one with only as-needed
    schedules is always complete.
    """
    if not schedules:
        return len(day_logs) > 0
    required = [schedule for schedule in schedules if not schedule.as_needed]
    if not required:
        return True
    taken_schedule_ids = {log.schedule_id for log in day_logs if log.schedule_id is not None}
    return all(schedule.id in taken_schedule_ids for schedule in required)


def get_date_stats(care_recipient_id, day, reference=None):
    """Build the dashboard summary for a calendar day.

    Args:
        care_recipient_id: Owner-checked care recipient id
        day: date to summarize
        reference: "now" used for relative times (defaults to current application time)
    """
    reference = reference or naive_now()
    start, end = day_bounds(day)

    medications = Medication.query.filter_by(care_recipient_id=care_recipient_id).all()
    medication_logs = _in_day(
        MedicationLog.query.filter_by(care_recipient_id=care_recipient_id),
        MedicationLog.taken_at, start, end
    ).order_by(MedicationLog.taken_at).all()

    logs_by_medication = {}
    for log in medication_logs:
        logs_by_medication.setdefault(log.medication_id, []).append(log)

    completed_medications = sum(
        1 for medication in medications
        if is_medication_complete(medication.schedules, logs_by_medication.get(medication.id, []))
    )

    meals = _in_day(
        Meal.query.filter_by(care_recipient_id=care_recipient_id), Meal.consumed_at, start, end
    ).order_by(Meal.consumed_at).all()
    bowel_movements = _in_day(
        BowelMovement.query.filter_by(care_recipient_id=care_recipient_id), BowelMovement.occured_at, start, end
    ).order_by(BowelMovement.occured_at.desc()).all()
    sleep_records = _in_day(
        Sleep.query.filter_by(care_recipient_id=care_recipient_id), Sleep.start_time, start, end
    ).order_by(Sleep.start_time.desc()).all()
    blood_pressure = _in_day(
        BloodPressure.query.filter_by(care_recipient_id=care_recipient_id), BloodPressure.time_of_reading, start, end
    ).order_by(BloodPressure.time_of_reading.desc()).all()
    glucose = _in_day(
        Glucose.query.filter_by(care_recipient_id=care_recipient_id), Glucose.time_of_reading, start, end
    ).order_by(Glucose.time_of_reading.desc()).all()
    insulin = _in_day(
        Insulin.query.filter_by(care_recipient_id=care_recipient_id), Insulin.time_administered, start, end
    ).order_by(Insulin.time_administered.desc()).all()
    notes = _in_day(
        Note.query.filter_by(care_recipient_id=care_recipient_id), Note.created_at, start, end
    ).order_by(Note.created_at.desc()).all()
    dashboard_supply = Supply.query.filter_by(
        care_recipient_id=care_recipient_id, name=DASHBOARD_SUPPLY_NAME
    ).first()

    medication_log_items = []
    medication_names = {medication.id: medication for medication in medications}
    for log in medication_logs:
        item = MedicationLogResponse.model_validate(log).model_dump(mode='json', by_alias=True)
        medication = medication_names.get(log.medication_id)
        if medication is not None:
            item['medication'] = {'id': medication.id, 'name': medication.name, 'dosage': medication.dosage}
        medication_log_items.append(item)

    total_meals = len(TRACKED_MEAL_TYPES)
    total_medications = len(medications)

    logger.debug(
        f"Stats for recipient {care_recipient_id} on {day}: "
        f"{completed_medications}/{total_medications} medications, {len(meals)} meals"
    )

    return {
        'date': day.isoformat(),
        'medications': {
            'completed': completed_medications,
            'total': total_medications,
            'progress': round(completed_medications / total_medications * 100) if total_medications else 0,
            'logs': medication_log_items,
        },
        'meals': {
            'completed': len(meals),
            'total': total_meals,
            'progress': round(min(len(meals), total_meals) / total_meals * 100),
            'logs': _dump(MealResponse, meals),
        },
        'bowelMovements': _dump(BowelMovementResponse, bowel_movements),
        'sleepRecords': _dump(SleepResponse, sleep_records),
        'bloodPressure': _dump(BloodPressureResponse, blood_pressure),
        'glucose': _dump(GlucoseResponse, glucose),
        'insulin': _dump(InsulinResponse, insulin),
        'notes': _dump(NoteResponse, notes),
        'supplies': {
            'depends': dashboard_supply.quantity if dashboard_supply else 0,
        },
        'bowelMovement': {
            'lastTime': (
                format_time_ago(bowel_movements[0].occured_at, reference)
                if bowel_movements else 'None recorded'
            ),
        },
        'sleep': {
            'duration': (
                format_sleep_duration(sleep_records[0].start_time, sleep_records[0].end_time)
                if sleep_records else 'No data'
            ),
            'quality': (sleep_records[0].quality or '') if sleep_records else '',
        },
    }


def get_upcoming_events(care_recipient_id, reference=None):
    """Scheduled doses still ahead today and tomorrow plus appointments in the next week.

    Returns a list sorted by date then time.
    """
    reference = reference or naive_now()
    today = reference.date()
    tomorrow = today + timedelta(days=1)

    schedules = (
        MedicationSchedule.query.join(Medication)
        .filter(Medication.care_recipient_id == care_recipient_id, MedicationSchedule.as_needed.is_(False))
        .all()
    )

    events = []
    for schedule in schedules:
        medication = schedule.medication
        for day in (today, tomorrow):
            if not is_scheduled_on(schedule, day):
                continue
            if day == today and schedule.time <= reference.time().replace(second=0, microsecond=0):
                continue
            events.append({
                'id': f'med_{schedule.id}_{day.isoformat()}',
                'type': EventType.MEDICATION.value,
                'title': medication.name,
                'date': day.isoformat(),
                'time': schedule.time.strftime('%H:%M'),
                'details': medication.dosage or 'Take as directed',
                'notes': medication.instructions or '',
                'reminder': bool(schedule.reminder_enabled),
                'source': 'schedule',
                'canEdit': False,
            })

    appointments = (
        Appointment.query.filter(
            Appointment.care_recipient_id == care_recipient_id,
            Appointment.date >= today,
            Appointment.date <= today + timedelta(days=UPCOMING_APPOINTMENT_DAYS),
        )
        .order_by(Appointment.date, Appointment.time)
        .limit(UPCOMING_APPOINTMENT_LIMIT)
        .all()
    )
    for appointment in appointments:
        events.append({
            'id': f'apt_{appointment.id}',
            'type': EventType.APPOINTMENT.value,
            'title': appointment.title,
            'date': appointment.date.isoformat(),
            'time': appointment.time.strftime('%H:%M'),
            'details': appointment.location or '',
            'notes': appointment.notes or '',
            'reminder': bool(appointment.reminder_enabled),
            'source': 'manual',
            'canEdit': True,
        })

    events.sort(key=lambda event: (event['date'], event['time']))
    return events


def needs_reorder(medication):
    """True when stock is at the threshold or will reach it within days_to_reorder."""
    threshold = medication.reorder_threshold if medication.reorder_threshold is not None else DEFAULT_REORDER_THRESHOLD
    quantity = medication.current_quantity or 0
    if medication.current_quantity is not None and quantity <= threshold:
        return True

    daily_usage = estimate_daily_usage(medication.schedules)
    if daily_usage <= 0:
        return False

    days_to_reorder = medication.days_to_reorder or DEFAULT_DAYS_TO_REORDER
    days_until_threshold = (quantity - threshold) // daily_usage
    return days_until_threshold <= days_to_reorder


def get_reorder_alerts(care_recipient_id):
    """Medications that need reordering, ordered by name, each with its schedules."""
    medications = (
        Medication.query.filter_by(care_recipient_id=care_recipient_id)
        .order_by(Medication.name)
        .all()
    )
    alerts = []
    for medication in medications:
        if not needs_reorder(medication):
            continue
        item = MedicationResponse.model_validate(medication).model_dump(mode='json', by_alias=True)
        item['schedules'] = _dump(MedicationScheduleResponse, medication.schedules)
        item['estimatedDailyUsage'] = round(estimate_daily_usage(medication.schedules), 2)
        alerts.append(item)
    return alerts
