"""Vitals blueprint: blood pressure, glucose and insulin."""
from flask import Blueprint
from ..base.generic_crud import GenericCRUD, register_crud_routes
from ..models import BloodPressure, Glucose, Insulin
from shared.schemas import (
    BloodPressureCreate, BloodPressureUpdate, BloodPressureResponse,
    GlucoseCreate, GlucoseUpdate, GlucoseResponse,
    InsulinCreate, InsulinUpdate, InsulinResponse
)

bp = Blueprint('vitals', __name__, url_prefix='/api')

blood_pressure_crud = GenericCRUD(
    model=BloodPressure,
    create_schema=BloodPressureCreate,
    update_schema=BloodPressureUpdate,
    response_schema=BloodPressureResponse,
    logger_name='blood_pressure',
    order_by=BloodPressure.time_of_reading.desc()
)

glucose_crud = GenericCRUD(
    model=Glucose,
    create_schema=GlucoseCreate,
    update_schema=GlucoseUpdate,
    response_schema=GlucoseResponse,
    logger_name='glucose',
    order_by=Glucose.time_of_reading.desc()
)

insulin_crud = GenericCRUD(
    model=Insulin,
    create_schema=InsulinCreate,
    update_schema=InsulinUpdate,
    response_schema=InsulinResponse,
    logger_name='insulin',
    order_by=Insulin.time_administered.desc()
)

register_crud_routes(bp, blood_pressure_crud, 'blood-pressure')
register_crud_routes(bp, glucose_crud, 'glucose')
register_crud_routes(bp, insulin_crud, 'insulin')
