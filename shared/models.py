import os
from datetime import datetime
from zoneinfo import ZoneInfo
from sqlalchemy import (
    Column, Integer, String, Boolean, Text, Date, Time, DateTime, ForeignKey, Index, text, Enum, CheckConstraint, JSON
)
from sqlalchemy.orm import relationship, declarative_base
from shared.enums import CareRecipientStatus

Base = declarative_base()

# Application timezone used for "today" boundaries and stored timestamps.
# Override with the APP_TIMEZONE environment variable.
APP_TIMEZONE = ZoneInfo(os.getenv('APP_TIMEZONE', 'America/New_York'))


def now():
    """Return current datetime in application timezone (timezone-aware).

    Note: When stored in SQLite, timezone info is stripped (SQLite limitation).
    All stored datetimes should be treated as application time, even though they're stored naive.
    """
    return datetime.now(APP_TIMEZONE)


def naive_now():
    """Current application time without tzinfo, as stored in the database."""
    return now().replace(tzinfo=None)


def to_app_naive(value):
    """Convert an aware datetime to naive application time; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(APP_TIMEZONE).replace(tzinfo=None)


class TimestampMixin:
    """Mixin providing created/updated timestamps shared by every table."""

    created_at = Column(DateTime, default=naive_now, nullable=False)
    updated_at = Column(DateTime, default=naive_now, onupdate=naive_now, nullable=False)


class User(Base, TimestampMixin):
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True, nullable=False)
    username = Column(String(80), unique=True, nullable=False)
    password_hash = Column(String(256), nullable=False, server_default="")
    name = Column(String(200), server_default="")
    email = Column(String(255), unique=True, nullable=True)
    phone = Column(String(40), server_default="")
    email_notifications = Column(Boolean, default=True, server_default='1')
    sms_notifications = Column(Boolean, default=False, server_default='0')
    medication_reminders = Column(Boolean, default=True, server_default='1')
    care_recipients = relationship(
        'CareRecipient', backref='user', lazy='select',
        cascade="all, delete-orphan", order_by='CareRecipient.id'
    )


class CareRecipient(Base, TimestampMixin):
    __tablename__ = 'care_recipients'
    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(200), nullable=False)
    color = Column(String(20), nullable=False, default='#4F46E5', server_default='#4F46E5')
    status = Column(
        Enum(CareRecipientStatus, values_callable=lambda e: [m.value for m in e]),
        default=CareRecipientStatus.ACTIVE, nullable=False, server_default=text("'active'")
    )
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    medications = relationship('Medication', backref='care_recipient', cascade="all, delete-orphan")
    medication_logs = relationship('MedicationLog', backref='care_recipient', cascade="all, delete-orphan")
    appointments = relationship('Appointment', backref='care_recipient', cascade="all, delete-orphan")
    meals = relationship('Meal', backref='care_recipient', cascade="all, delete-orphan")
    bowel_movements = relationship('BowelMovement', backref='care_recipient', cascade="all, delete-orphan")
    urination_records = relationship('Urination', backref='care_recipient', cascade="all, delete-orphan")
    supplies = relationship('Supply', backref='care_recipient', cascade="all, delete-orphan")
    sleep_records = relationship('Sleep', backref='care_recipient', cascade="all, delete-orphan")
    notes = relationship('Note', backref='care_recipient', cascade="all, delete-orphan")
    doctors = relationship('Doctor', backref='care_recipient', cascade="all, delete-orphan")
    pharmacies = relationship('Pharmacy', backref='care_recipient', cascade="all, delete-orphan")
    emergency_info = relationship('EmergencyInfo', backref='care_recipient', cascade="all, delete-orphan")
    blood_pressure_readings = relationship('BloodPressure', backref='care_recipient', cascade="all, delete-orphan")
    glucose_readings = relationship('Glucose', backref='care_recipient', cascade="all, delete-orphan")
    insulin_records = relationship('Insulin', backref='care_recipient', cascade="all, delete-orphan")


class Doctor(Base, TimestampMixin):
    __tablename__ = 'doctors'
    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(200), nullable=False)
    specialty = Column(String(200), nullable=False, server_default="")
    phone_number = Column(String(40), nullable=False, server_default="")
    address = Column(Text, server_default="")
    email = Column(String(255), server_default="")
    notes = Column(Text, server_default="")
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    prescriptions = relationship('Medication', backref='prescribing_doctor', lazy='select')


class Pharmacy(Base, TimestampMixin):
    __tablename__ = 'pharmacies'
    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(200), nullable=False)
    address = Column(Text, nullable=False, server_default="")
    phone_number = Column(String(40), nullable=False, server_default="")
    notes = Column(Text, server_default="")
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    medication_links = relationship('MedicationPharmacy', backref='pharmacy', cascade="all, delete-orphan")


class Medication(Base, TimestampMixin):
    __tablename__ = 'medications'
    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(200), nullable=False)
    dosage = Column(String(200), nullable=False, server_default="")
    instructions = Column(Text, server_default="")
    icon = Column(String(50), default='pills', server_default='pills')
    icon_color = Column(String(20), default='#4F46E5', server_default='#4F46E5')
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey('doctors.id', ondelete='SET NULL'), nullable=True)
    prescription_number = Column(String(100), server_default="")
    expiration_date = Column(Date)
    current_quantity = Column(Integer, default=0, server_default="0")
    reorder_threshold = Column(Integer, default=5, server_default="5")
    days_to_reorder = Column(Integer, default=7, server_default="7")
    original_quantity = Column(Integer, default=0, server_default="0")
    refills_remaining = Column(Integer, default=0, server_default="0")
    last_refill_date = Column(Date)
    schedules = relationship(
        'MedicationSchedule', backref='medication', cascade="all, delete-orphan",
        order_by='MedicationSchedule.time'
    )
    logs = relationship('MedicationLog', backref='medication', cascade="all, delete-orphan")
    pharmacy_links = relationship('MedicationPharmacy', backref='medication', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('days_to_reorder >= 1 AND days_to_reorder <= 30', name='chk_medication_days_to_reorder'),
    )


class MedicationSchedule(Base, TimestampMixin):
    __tablename__ = 'medication_schedules'
    id = Column(Integer, primary_key=True, nullable=False)
    medication_id = Column(Integer, ForeignKey('medications.id', ondelete='CASCADE'), nullable=False, index=True)
    time = Column(Time, nullable=False)
    days_of_week = Column(JSON, nullable=False, default=list)  # 0-6, Sunday-Saturday
    quantity = Column(String(50), nullable=False, server_default="1")
    with_food = Column(Boolean, default=False, server_default='0')
    active = Column(Boolean, default=True, server_default='1')
    reminder_enabled = Column(Boolean, default=True, server_default='1')
    as_needed = Column(Boolean, default=False, server_default='0')
    specific_days = Column(JSON, default=list)
    is_tapering = Column(Boolean, default=False, server_default='0')
    tapering_schedule = Column(JSON, default=list)


class MedicationLog(Base, TimestampMixin):
    __tablename__ = 'medication_logs'
    id = Column(Integer, primary_key=True, nullable=False)
    medication_id = Column(Integer, ForeignKey('medications.id', ondelete='CASCADE'), nullable=False, index=True)
    schedule_id = Column(Integer, ForeignKey('medication_schedules.id', ondelete='SET NULL'), nullable=True)
    taken = Column(Boolean, nullable=False, default=True, server_default='1')
    taken_at = Column(DateTime, nullable=False, default=naive_now)
    notes = Column(Text, server_default="")
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)

Index('idx_medication_log_recipient_taken', MedicationLog.care_recipient_id, MedicationLog.taken_at)


class MedicationPharmacy(Base, TimestampMixin):
    __tablename__ = 'medication_pharmacies'
    id = Column(Integer, primary_key=True, nullable=False)
    medication_id = Column(Integer, ForeignKey('medications.id', ondelete='CASCADE'), nullable=False, index=True)
    pharmacy_id = Column(Integer, ForeignKey('pharmacies.id', ondelete='CASCADE'), nullable=False, index=True)
    refill_info = Column(Text, server_default="")
    last_refill_date = Column(Date)
    next_refill_date = Column(Date)


class Appointment(Base, TimestampMixin):
    __tablename__ = 'appointments'
    id = Column(Integer, primary_key=True, nullable=False)
    title = Column(String(200), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    location = Column(Text, server_default="")
    notes = Column(Text, server_default="")
    reminder_enabled = Column(Boolean, default=True, server_default='1')
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)

Index('idx_appointment_recipient_date', Appointment.care_recipient_id, Appointment.date)


class Meal(Base, TimestampMixin):
    __tablename__ = 'meals'
    id = Column(Integer, primary_key=True, nullable=False)
    type = Column(String(20), nullable=False)
    food = Column(Text, nullable=False)
    notes = Column(Text, server_default="")
    consumed_at = Column(DateTime, nullable=False, default=naive_now)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)

Index('idx_meal_recipient_consumed', Meal.care_recipient_id, Meal.consumed_at)


class BowelMovement(Base, TimestampMixin):
    __tablename__ = 'bowel_movements'
    id = Column(Integer, primary_key=True, nullable=False)
    type = Column(String(50), server_default="")
    notes = Column(Text, server_default="")
    occured_at = Column(DateTime, nullable=False, default=naive_now)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)


class Urination(Base, TimestampMixin):
    __tablename__ = 'urination'
    id = Column(Integer, primary_key=True, nullable=False)
    color = Column(String(50), server_default="")
    frequency = Column(String(50), server_default="")
    volume = Column(Integer)  # milliliters
    urgency = Column(String(50), server_default="")
    notes = Column(Text, server_default="")
    occured_at = Column(DateTime, nullable=False, default=naive_now)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)


class Supply(Base, TimestampMixin):
    __tablename__ = 'supplies'
    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=0, server_default="0")
    threshold = Column(Integer)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    usages = relationship('SupplyUsage', backref='supply', cascade="all, delete-orphan")


class SupplyUsage(Base, TimestampMixin):
    __tablename__ = 'supply_usages'
    id = Column(Integer, primary_key=True, nullable=False)
    supply_id = Column(Integer, ForeignKey('supplies.id', ondelete='CASCADE'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1, server_default="1")
    used_at = Column(DateTime, nullable=False, default=naive_now)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)


class Sleep(Base, TimestampMixin):
    __tablename__ = 'sleep'
    id = Column(Integer, primary_key=True, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime)
    quality = Column(String(20), server_default="")
    interruptions = Column(Integer, default=0, server_default="0")
    notes = Column(Text, server_default="")
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)


class Note(Base, TimestampMixin):
    __tablename__ = 'notes'
    id = Column(Integer, primary_key=True, nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)


class BloodPressure(Base, TimestampMixin):
    __tablename__ = 'blood_pressure'
    id = Column(Integer, primary_key=True, nullable=False)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    systolic = Column(Integer, nullable=False)
    diastolic = Column(Integer, nullable=False)
    pulse = Column(Integer)
    oxygen_level = Column(Integer)
    time_of_reading = Column(DateTime, nullable=False, default=naive_now)
    position = Column(String(20), server_default="")
    notes = Column(Text, server_default="")

    __table_args__ = (
        CheckConstraint('oxygen_level IS NULL OR (oxygen_level >= 0 AND oxygen_level <= 100)', name='chk_bp_oxygen_range'),
    )


class Glucose(Base, TimestampMixin):
    __tablename__ = 'glucose'
    id = Column(Integer, primary_key=True, nullable=False)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    level = Column(Integer, nullable=False)  # mg/dL
    time_of_reading = Column(DateTime, nullable=False, default=naive_now)
    reading_type = Column(String(50), nullable=False)
    notes = Column(Text, server_default="")


class Insulin(Base, TimestampMixin):
    __tablename__ = 'insulin'
    id = Column(Integer, primary_key=True, nullable=False)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    units = Column(Integer, nullable=False)
    insulin_type = Column(String(100), nullable=False)
    time_administered = Column(DateTime, nullable=False, default=naive_now)
    site = Column(String(100), server_default="")
    notes = Column(Text, server_default="")


class EmergencyInfo(Base, TimestampMixin):
    """Sensitive identity, insurance and contact data, gated behind a PIN or password check."""
    __tablename__ = 'emergency_info'
    id = Column(Integer, primary_key=True, nullable=False)
    care_recipient_id = Column(Integer, ForeignKey('care_recipients.id', ondelete='CASCADE'), nullable=False, index=True)
    date_of_birth = Column(Date)
    social_security_number = Column(String(20), server_default="")
    insurance_provider = Column(String(200), server_default="")
    insurance_policy_number = Column(String(100), server_default="")
    insurance_group_number = Column(String(100), server_default="")
    insurance_phone = Column(String(40), server_default="")
    emergency_contact1_name = Column(String(200), server_default="")
    emergency_contact1_phone = Column(String(40), server_default="")
    emergency_contact1_relation = Column(String(100), server_default="")
    emergency_contact2_name = Column(String(200), server_default="")
    emergency_contact2_phone = Column(String(40), server_default="")
    emergency_contact2_relation = Column(String(100), server_default="")
    allergies = Column(Text, server_default="")
    medication_allergies = Column(Text, server_default="")
    additional_info = Column(Text, server_default="")
    blood_type = Column(String(10), server_default="")
    advance_directives = Column(Boolean, default=False, server_default='0')
    dnr_order = Column(Boolean, default=False, server_default='0')
    pin_hash = Column(String(256), nullable=True)


class AppConfig(Base):
    """Key/value rows; also stores bearer tokens and emergency access grants."""
    __tablename__ = 'app_config'
    id = Column(Integer, primary_key=True, nullable=False)
    key = Column(String(150), unique=True, nullable=False, server_default="")
    value = Column(Text, server_default="")
    description = Column(String(300), server_default="")
    category = Column(String(50), server_default="", index=True)
    updated_at = Column(DateTime, default=naive_now, onupdate=naive_now)


# Tables whose rows are scoped directly by care_recipient_id, in cascade order
RECIPIENT_SCOPED_MODELS = (
    MedicationLog, Medication, Appointment, Meal, BowelMovement, Urination, SupplyUsage, Supply,
    Sleep, Note, Doctor, Pharmacy, EmergencyInfo, BloodPressure, Glucose, Insulin
)
