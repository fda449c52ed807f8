"""Pydantic schemas for validation and serialization.

Request and response bodies use camelCase keys on the wire (``careRecipientId``,
``occuredAt``); Python code and the database use snake_case. Every schema accepts
either spelling on input.
"""
from datetime import datetime, date, time
from typing import Optional, List, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict, create_model
from pydantic.alias_generators import to_camel
from shared.enums import CareRecipientStatus, MealType
from shared.models import to_app_naive
from shared.validation import Validator, ValidationError


REQUEST_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)
RESPONSE_CONFIG = ConfigDict(
    alias_generator=to_camel, populate_by_name=True, use_enum_values=True, from_attributes=True
)


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace and unsafe markup from free text."""
    if value is None:
        return value
    return Validator.sanitize_html(value.strip())


def normalize_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    """Convert timezone-aware input to naive application time."""
    return to_app_naive(value)


def check_range(value, field_name: str, min_val=None, max_val=None):
    if value is None:
        return value
    if min_val is not None and value < min_val:
        raise ValueError(f"{field_name} must be at least {min_val}")
    if max_val is not None and value > max_val:
        raise ValueError(f"{field_name} must be no more than {max_val}")
    return value


def check_required_text(value: Optional[str], field_name: str, max_length: int = 200) -> Optional[str]:
    if value is None:
        return value
    value = sanitize_text(value)
    if not value:
        raise ValueError(f"{field_name} is required")
    if len(value) > max_length:
        raise ValueError(f"{field_name} must be no more than {max_length} characters")
    return value


def make_update_schema(base: type, name: str, exclude: tuple = ('care_recipient_id',)) -> type:
    """Build a partial-update schema where every field of `base` is optional.

    Validators declared on `base` still run, and they receive None for fields
    explicitly cleared by the client.
    """
    fields = {
        field_name: (Optional[info.annotation], None)
        for field_name, info in base.model_fields.items()
        if field_name not in exclude
    }
    return create_model(name, __base__=base, **fields)


class RecordResponse(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = RESPONSE_CONFIG


# User Schemas
class UserResponse(BaseModel):
    id: int
    username: str
    name: Optional[str] = ""
    email: Optional[str] = None
    phone: Optional[str] = ""
    email_notifications: bool = True
    sms_notifications: bool = False
    medication_reminders: bool = True

    model_config = RESPONSE_CONFIG


class NotificationPreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    medication_reminders: Optional[bool] = None
    phone: Optional[str] = Field(None, max_length=40)

    model_config = REQUEST_CONFIG


# Care Recipient Schemas
class CareRecipientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    color: Optional[str] = Field(default='#4F46E5', pattern=r'^#[0-9a-fA-F]{6}$')
    status: CareRecipientStatus = Field(default=CareRecipientStatus.ACTIVE)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_required_text(v, 'name')

    model_config = REQUEST_CONFIG


class CareRecipientCreate(CareRecipientBase):
    pass


class CareRecipientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    color: Optional[str] = Field(None, pattern=r'^#[0-9a-fA-F]{6}$')
    status: Optional[CareRecipientStatus] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_required_text(v, 'name')

    model_config = REQUEST_CONFIG


class CareRecipientResponse(RecordResponse, CareRecipientBase):
    user_id: int

    model_config = RESPONSE_CONFIG


# Contact Schemas
class DoctorBase(BaseModel):
    care_recipient_id: int
    name: str
    specialty: Optional[str] = ""
    phone_number: Optional[str] = ""
    address: Optional[str] = ""
    email: Optional[str] = ""
    notes: Optional[str] = ""

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_required_text(v, 'name')

    @field_validator('specialty', 'phone_number', 'address', 'email', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    model_config = REQUEST_CONFIG


class DoctorCreate(DoctorBase):
    pass


DoctorUpdate = make_update_schema(DoctorBase, 'DoctorUpdate')


class DoctorResponse(RecordResponse, DoctorBase):
    model_config = RESPONSE_CONFIG


class PharmacyBase(BaseModel):
    care_recipient_id: int
    name: str
    address: Optional[str] = ""
    phone_number: Optional[str] = ""
    notes: Optional[str] = ""

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_required_text(v, 'name')

    @field_validator('address', 'phone_number', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    model_config = REQUEST_CONFIG


class PharmacyCreate(PharmacyBase):
    pass


PharmacyUpdate = make_update_schema(PharmacyBase, 'PharmacyUpdate')


class PharmacyResponse(RecordResponse, PharmacyBase):
    model_config = RESPONSE_CONFIG


# Medication Schemas
def clamp_days_to_reorder(value: Optional[int]) -> Optional[int]:
    """Days-to-reorder is kept within 1..30."""
    if value is None:
        return value
    return max(1, min(30, value))


class MedicationBase(BaseModel):
    care_recipient_id: int
    name: str
    dosage: Optional[str] = ""
    instructions: Optional[str] = ""
    icon: Optional[str] = "pills"
    icon_color: Optional[str] = "#4F46E5"
    doctor_id: Optional[int] = None
    prescription_number: Optional[str] = ""
    expiration_date: Optional[date] = None
    current_quantity: Optional[int] = 0
    reorder_threshold: Optional[int] = 5
    days_to_reorder: Optional[int] = 7
    original_quantity: Optional[int] = 0
    refills_remaining: Optional[int] = 0
    last_refill_date: Optional[date] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_required_text(v, 'name')

    @field_validator('dosage', 'instructions', 'prescription_number')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('current_quantity', 'reorder_threshold', 'original_quantity', 'refills_remaining')
    @classmethod
    def validate_counts(cls, v, info):
        return check_range(v, info.field_name, min_val=0)

    @field_validator('days_to_reorder')
    @classmethod
    def validate_days_to_reorder(cls, v):
        return clamp_days_to_reorder(v)

    model_config = REQUEST_CONFIG


class MedicationCreate(MedicationBase):
    pass


MedicationUpdate = make_update_schema(MedicationBase, 'MedicationUpdate')


class MedicationResponse(RecordResponse, MedicationBase):
    model_config = RESPONSE_CONFIG


class MedicationInventoryUpdate(BaseModel):
    current_quantity: Optional[int] = None
    reorder_threshold: Optional[int] = None
    days_to_reorder: Optional[int] = None
    original_quantity: Optional[int] = None
    refills_remaining: Optional[int] = None
    last_refill_date: Optional[date] = None

    @field_validator('current_quantity', 'reorder_threshold', 'original_quantity', 'refills_remaining')
    @classmethod
    def validate_counts(cls, v, info):
        return check_range(v, info.field_name, min_val=0)

    @field_validator('days_to_reorder')
    @classmethod
    def validate_days_to_reorder(cls, v):
        return clamp_days_to_reorder(v)

    model_config = REQUEST_CONFIG


class MedicationRefill(BaseModel):
    refill_amount: int = Field(..., gt=0)
    refill_date: Optional[date] = None

    model_config = REQUEST_CONFIG


class MedicationScheduleBase(BaseModel):
    medication_id: int
    time: time
    days_of_week: List[int] = Field(default_factory=lambda: list(range(7)))
    quantity: Optional[str] = "1"
    with_food: Optional[bool] = False
    active: Optional[bool] = True
    reminder_enabled: Optional[bool] = True
    as_needed: Optional[bool] = False
    specific_days: Optional[List[str]] = Field(default_factory=list)
    is_tapering: Optional[bool] = False
    tapering_schedule: Optional[List[Any]] = Field(default_factory=list)

    @field_validator('days_of_week')
    @classmethod
    def validate_days_of_week(cls, v):
        if v is None:
            return v
        for day in v:
            if day < 0 or day > 6:
                raise ValueError("days of week must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    model_config = REQUEST_CONFIG


class MedicationScheduleCreate(MedicationScheduleBase):
    pass


MedicationScheduleUpdate = make_update_schema(
    MedicationScheduleBase, 'MedicationScheduleUpdate', exclude=('medication_id',)
)


class MedicationScheduleResponse(RecordResponse, MedicationScheduleBase):
    model_config = RESPONSE_CONFIG


class MedicationLogBase(BaseModel):
    care_recipient_id: int
    medication_id: int
    schedule_id: Optional[int] = None
    taken: Optional[bool] = True
    taken_at: Optional[datetime] = None
    notes: Optional[str] = ""

    @field_validator('notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('taken_at')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class MedicationLogCreate(MedicationLogBase):
    pass


MedicationLogUpdate = make_update_schema(
    MedicationLogBase, 'MedicationLogUpdate', exclude=('care_recipient_id', 'medication_id')
)


class MedicationLogResponse(RecordResponse, MedicationLogBase):
    model_config = RESPONSE_CONFIG


class MedicationPharmacyBase(BaseModel):
    medication_id: int
    pharmacy_id: int
    refill_info: Optional[str] = ""
    last_refill_date: Optional[date] = None
    next_refill_date: Optional[date] = None

    @field_validator('refill_info')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    model_config = REQUEST_CONFIG


class MedicationPharmacyCreate(MedicationPharmacyBase):
    pass


class MedicationPharmacyResponse(RecordResponse, MedicationPharmacyBase):
    model_config = RESPONSE_CONFIG


# Appointment Schemas
class AppointmentBase(BaseModel):
    care_recipient_id: int
    title: str
    date: date
    time: time
    location: Optional[str] = ""
    notes: Optional[str] = ""
    reminder_enabled: Optional[bool] = True

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return check_required_text(v, 'title')

    @field_validator('location', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    model_config = REQUEST_CONFIG


class AppointmentCreate(AppointmentBase):
    pass


AppointmentUpdate = make_update_schema(AppointmentBase, 'AppointmentUpdate')


class AppointmentResponse(RecordResponse, AppointmentBase):
    model_config = RESPONSE_CONFIG


# Daily tracking Schemas
class MealBase(BaseModel):
    care_recipient_id: int
    type: MealType
    food: str
    notes: Optional[str] = ""
    consumed_at: Optional[datetime] = None

    @field_validator('food')
    @classmethod
    def validate_food(cls, v):
        return check_required_text(v, 'food', max_length=2000)

    @field_validator('notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('consumed_at')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class MealCreate(MealBase):
    pass


MealUpdate = make_update_schema(MealBase, 'MealUpdate')


class MealResponse(RecordResponse, MealBase):
    model_config = RESPONSE_CONFIG


class BowelMovementBase(BaseModel):
    care_recipient_id: int
    type: Optional[str] = ""
    notes: Optional[str] = ""
    occured_at: Optional[datetime] = None

    @field_validator('type', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('occured_at')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class BowelMovementCreate(BowelMovementBase):
    pass


BowelMovementUpdate = make_update_schema(BowelMovementBase, 'BowelMovementUpdate')


class BowelMovementResponse(RecordResponse, BowelMovementBase):
    model_config = RESPONSE_CONFIG


class UrinationBase(BaseModel):
    care_recipient_id: int
    color: Optional[str] = ""
    frequency: Optional[str] = ""
    volume: Optional[int] = None
    urgency: Optional[str] = ""
    notes: Optional[str] = ""
    occured_at: Optional[datetime] = None

    @field_validator('color', 'frequency', 'urgency', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('volume')
    @classmethod
    def validate_volume(cls, v):
        return check_range(v, 'volume', min_val=0, max_val=5000)

    @field_validator('occured_at')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class UrinationCreate(UrinationBase):
    pass


UrinationUpdate = make_update_schema(UrinationBase, 'UrinationUpdate')


class UrinationResponse(RecordResponse, UrinationBase):
    model_config = RESPONSE_CONFIG


class SleepBase(BaseModel):
    care_recipient_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    quality: Optional[str] = ""
    interruptions: Optional[int] = 0
    notes: Optional[str] = ""

    @field_validator('quality', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('interruptions')
    @classmethod
    def validate_interruptions(cls, v):
        return check_range(v, 'interruptions', min_val=0)

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    @model_validator(mode='after')
    def validate_period(self):
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end time must not be before start time")
        return self

    model_config = REQUEST_CONFIG


class SleepCreate(SleepBase):
    pass


SleepUpdate = make_update_schema(SleepBase, 'SleepUpdate')


class SleepResponse(RecordResponse, SleepBase):
    model_config = RESPONSE_CONFIG


class NoteBase(BaseModel):
    care_recipient_id: int
    title: str
    content: str

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return check_required_text(v, 'title')

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        return check_required_text(v, 'content', max_length=10000)

    model_config = REQUEST_CONFIG


class NoteCreate(NoteBase):
    pass


NoteUpdate = make_update_schema(NoteBase, 'NoteUpdate')


class NoteResponse(RecordResponse, NoteBase):
    model_config = RESPONSE_CONFIG


class SupplyBase(BaseModel):
    care_recipient_id: int
    name: str
    quantity: Optional[int] = 0
    threshold: Optional[int] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_required_text(v, 'name')

    @field_validator('quantity', 'threshold')
    @classmethod
    def validate_counts(cls, v, info):
        return check_range(v, info.field_name, min_val=0)

    model_config = REQUEST_CONFIG


class SupplyCreate(SupplyBase):
    pass


SupplyUpdate = make_update_schema(SupplyBase, 'SupplyUpdate')


class SupplyResponse(RecordResponse, SupplyBase):
    model_config = RESPONSE_CONFIG


class SupplyUsageCreate(BaseModel):
    supply_id: int
    quantity: int = Field(default=1, ge=1)
    used_at: Optional[datetime] = None

    @field_validator('used_at')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class SupplyUsageResponse(RecordResponse):
    supply_id: int
    care_recipient_id: int
    quantity: int
    used_at: datetime

    model_config = RESPONSE_CONFIG


# Vitals Schemas
class BloodPressureBase(BaseModel):
    care_recipient_id: int
    systolic: int
    diastolic: int
    pulse: Optional[int] = None
    oxygen_level: Optional[int] = None
    time_of_reading: Optional[datetime] = None
    position: Optional[str] = ""
    notes: Optional[str] = ""

    @field_validator('systolic')
    @classmethod
    def validate_systolic(cls, v):
        return check_range(v, 'systolic', 40, 300)

    @field_validator('diastolic')
    @classmethod
    def validate_diastolic(cls, v):
        return check_range(v, 'diastolic', 20, 200)

    @field_validator('pulse')
    @classmethod
    def validate_pulse(cls, v):
        return check_range(v, 'pulse', 20, 250)

    @field_validator('oxygen_level')
    @classmethod
    def validate_oxygen_level(cls, v):
        return check_range(v, 'oxygen level', 0, 100)

    @field_validator('position', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('time_of_reading')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class BloodPressureCreate(BloodPressureBase):
    pass


BloodPressureUpdate = make_update_schema(BloodPressureBase, 'BloodPressureUpdate')


class BloodPressureResponse(RecordResponse, BloodPressureBase):
    model_config = RESPONSE_CONFIG


class GlucoseBase(BaseModel):
    care_recipient_id: int
    level: int
    reading_type: str
    time_of_reading: Optional[datetime] = None
    notes: Optional[str] = ""

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        return check_range(v, 'level', 10, 1000)

    @field_validator('reading_type')
    @classmethod
    def validate_reading_type(cls, v):
        return check_required_text(v, 'reading type', max_length=50)

    @field_validator('notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('time_of_reading')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class GlucoseCreate(GlucoseBase):
    pass


GlucoseUpdate = make_update_schema(GlucoseBase, 'GlucoseUpdate')


class GlucoseResponse(RecordResponse, GlucoseBase):
    model_config = RESPONSE_CONFIG


class InsulinBase(BaseModel):
    care_recipient_id: int
    units: int
    insulin_type: str
    time_administered: Optional[datetime] = None
    site: Optional[str] = ""
    notes: Optional[str] = ""

    @field_validator('units')
    @classmethod
    def validate_units(cls, v):
        return check_range(v, 'units', 0, 300)

    @field_validator('insulin_type')
    @classmethod
    def validate_insulin_type(cls, v):
        return check_required_text(v, 'insulin type', max_length=100)

    @field_validator('site', 'notes')
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    @field_validator('time_administered')
    @classmethod
    def normalize_timestamps(cls, v):
        return normalize_timestamp(v)

    model_config = REQUEST_CONFIG


class InsulinCreate(InsulinBase):
    pass


InsulinUpdate = make_update_schema(InsulinBase, 'InsulinUpdate')


class InsulinResponse(RecordResponse, InsulinBase):
    model_config = RESPONSE_CONFIG


# Emergency Info Schemas
SENSITIVE_EMERGENCY_FIELDS = (
    'date_of_birth', 'social_security_number', 'insurance_provider', 'insurance_policy_number',
    'insurance_group_number', 'insurance_phone', 'emergency_contact1_name', 'emergency_contact1_phone',
    'emergency_contact1_relation', 'emergency_contact2_name', 'emergency_contact2_phone',
    'emergency_contact2_relation', 'allergies', 'medication_allergies', 'additional_info',
    'blood_type', 'advance_directives', 'dnr_order',
)


class EmergencyInfoBase(BaseModel):
    care_recipient_id: int
    date_of_birth: Optional[date] = None
    social_security_number: Optional[str] = ""
    insurance_provider: Optional[str] = ""
    insurance_policy_number: Optional[str] = ""
    insurance_group_number: Optional[str] = ""
    insurance_phone: Optional[str] = ""
    emergency_contact1_name: Optional[str] = ""
    emergency_contact1_phone: Optional[str] = ""
    emergency_contact1_relation: Optional[str] = ""
    emergency_contact2_name: Optional[str] = ""
    emergency_contact2_phone: Optional[str] = ""
    emergency_contact2_relation: Optional[str] = ""
    allergies: Optional[str] = ""
    medication_allergies: Optional[str] = ""
    additional_info: Optional[str] = ""
    blood_type: Optional[str] = ""
    advance_directives: Optional[bool] = False
    dnr_order: Optional[bool] = False

    @field_validator(
        'social_security_number', 'insurance_provider', 'insurance_policy_number', 'insurance_group_number',
        'insurance_phone', 'emergency_contact1_name', 'emergency_contact1_phone', 'emergency_contact1_relation',
        'emergency_contact2_name', 'emergency_contact2_phone', 'emergency_contact2_relation', 'allergies',
        'medication_allergies', 'additional_info', 'blood_type'
    )
    @classmethod
    def sanitize_text_fields(cls, v):
        return sanitize_text(v)

    model_config = REQUEST_CONFIG


class EmergencyInfoCreate(EmergencyInfoBase):
    pin: Optional[str] = None

    @field_validator('pin', mode='before')
    @classmethod
    def validate_pin(cls, v):
        if v is None or v == "":
            return None
        try:
            return Validator.validate_pin(v)
        except ValidationError as e:
            raise ValueError(str(e))


EmergencyInfoUpdate = make_update_schema(EmergencyInfoBase, 'EmergencyInfoUpdate')


class EmergencyInfoResponse(RecordResponse, EmergencyInfoBase):
    model_config = RESPONSE_CONFIG


class PinRequest(BaseModel):
    pin: str

    @field_validator('pin', mode='before')
    @classmethod
    def validate_pin(cls, v):
        try:
            return Validator.validate_pin(v)
        except ValidationError as e:
            raise ValueError(str(e))

    model_config = REQUEST_CONFIG


class PasswordRequest(BaseModel):
    password: str = Field(..., min_length=1)

    model_config = REQUEST_CONFIG
