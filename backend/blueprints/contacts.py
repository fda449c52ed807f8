"""Contacts blueprint: doctors and pharmacies of a care recipient."""
from flask import Blueprint
from ..base.generic_crud import GenericCRUD, register_crud_routes
from ..models import Doctor, Pharmacy
from shared.schemas import (
    DoctorCreate, DoctorUpdate, DoctorResponse,
    PharmacyCreate, PharmacyUpdate, PharmacyResponse
)

bp = Blueprint('contacts', __name__, url_prefix='/api')

doctor_crud = GenericCRUD(
    model=Doctor,
    create_schema=DoctorCreate,
    update_schema=DoctorUpdate,
    response_schema=DoctorResponse,
    logger_name='doctors',
    order_by=Doctor.name
)

pharmacy_crud = GenericCRUD(
    model=Pharmacy,
    create_schema=PharmacyCreate,
    update_schema=PharmacyUpdate,
    response_schema=PharmacyResponse,
    logger_name='pharmacies',
    order_by=Pharmacy.name
)

register_crud_routes(bp, doctor_crud, 'doctors')
register_crud_routes(bp, pharmacy_crud, 'pharmacies')
