"""Meals blueprint."""
from datetime import timedelta
from flask import Blueprint, request
from ..base.generic_crud import GenericCRUD, register_crud_routes
from ..models import Meal
from shared.models import now
from shared.schemas import MealCreate, MealUpdate, MealResponse
from shared.utils import day_bounds, parse_iso_date
from shared.validation import ValidationError

bp = Blueprint('meals', __name__, url_prefix='/api')


def filter_meals_by_period(query):
    """Today's meals by default; ?all=true for everything or ?startDate=&endDate= (inclusive)."""
    if request.args.get('all', '').lower() == 'true':
        return query

    start_raw = request.args.get('startDate')
    end_raw = request.args.get('endDate')
    if start_raw or end_raw:
        start_day = parse_iso_date(start_raw)
        end_day = parse_iso_date(end_raw) if end_raw else start_day
        if start_day is None or end_day is None:
            raise ValidationError('startDate and endDate must be in YYYY-MM-DD format')
        if end_day < start_day:
            raise ValidationError('endDate must not be before startDate')
        start, _ = day_bounds(start_day)
        end = day_bounds(end_day)[0] + timedelta(days=1)
    else:
        start, end = day_bounds(now().date())

    return query.filter(Meal.consumed_at >= start, Meal.consumed_at < end)


meal_crud = GenericCRUD(
    model=Meal,
    create_schema=MealCreate,
    update_schema=MealUpdate,
    response_schema=MealResponse,
    logger_name='meals',
    order_by=Meal.consumed_at.desc(),
    list_filter_hook=filter_meals_by_period
)

register_crud_routes(bp, meal_crud, 'meals')
