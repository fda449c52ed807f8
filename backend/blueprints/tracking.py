"""Daily tracking blueprint: bowel movements, urination and sleep."""
from flask import Blueprint
from ..base.generic_crud import GenericCRUD, register_crud_routes
from ..models import BowelMovement, Urination, Sleep
from shared.schemas import (
    BowelMovementCreate, BowelMovementUpdate, BowelMovementResponse,
    UrinationCreate, UrinationUpdate, UrinationResponse,
    SleepCreate, SleepUpdate, SleepResponse
)
from shared.validation import ValidationError

bp = Blueprint('tracking', __name__, url_prefix='/api')


def check_sleep_period(validated_data, sleep):
    """A partial update may move only one end of the period; compare against the stored other end."""
    start_time = validated_data.get('start_time', sleep.start_time)
    end_time = validated_data.get('end_time', sleep.end_time)
    if start_time and end_time and end_time < start_time:
        raise ValidationError('end time must not be before start time')
    return validated_data


bowel_movement_crud = GenericCRUD(
    model=BowelMovement,
    create_schema=BowelMovementCreate,
    update_schema=BowelMovementUpdate,
    response_schema=BowelMovementResponse,
    logger_name='bowel_movements',
    order_by=BowelMovement.occured_at.desc()
)

urination_crud = GenericCRUD(
    model=Urination,
    create_schema=UrinationCreate,
    update_schema=UrinationUpdate,
    response_schema=UrinationResponse,
    logger_name='urination',
    order_by=Urination.occured_at.desc()
)

sleep_crud = GenericCRUD(
    model=Sleep,
    create_schema=SleepCreate,
    update_schema=SleepUpdate,
    response_schema=SleepResponse,
    logger_name='sleep',
    order_by=Sleep.start_time.desc(),
    pre_update_hook=check_sleep_period
)

register_crud_routes(bp, bowel_movement_crud, 'bowel-movements')
register_crud_routes(bp, urination_crud, 'urination')
register_crud_routes(bp, sleep_crud, 'sleep')
