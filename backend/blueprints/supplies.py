"""Supplies blueprint: stock of care supplies and their usage."""
from flask import Blueprint, jsonify
import logging
from ..base.generic_crud import GenericCRUD, register_crud_routes
from ..models import db, Supply, SupplyUsage
from ..utils import api_error, handle_api_exception, get_json_data, validate_schema, get_owned_supply, NotFoundError
from shared.schemas import SupplyCreate, SupplyUpdate, SupplyResponse, SupplyUsageCreate, SupplyUsageResponse
from shared.validation import ValidationError

bp = Blueprint('supplies', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

supply_crud = GenericCRUD(
    model=Supply,
    create_schema=SupplyCreate,
    update_schema=SupplyUpdate,
    response_schema=SupplyResponse,
    logger_name='supplies',
    order_by=Supply.name
)

register_crud_routes(bp, supply_crud, 'supplies')


@bp.route('/supply-usages', methods=['POST'])
def record_supply_usage():
    """Record use of a supply and take the quantity out of stock."""
    try:
        validated = validate_schema(SupplyUsageCreate, get_json_data())
        supply = get_owned_supply(validated['supply_id'])
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    try:
        usage = SupplyUsage(care_recipient_id=supply.care_recipient_id, **validated)
        supply.quantity = max(0, (supply.quantity or 0) - validated['quantity'])
        db.session.add(usage)
        db.session.commit()
        logger.info(f"Used {usage.quantity} of supply {supply.id}, {supply.quantity} left")
        body = SupplyUsageResponse.model_validate(usage).model_dump(mode='json', by_alias=True)
        body['supply'] = supply_crud.serialize(supply)
        return jsonify(body), 201
    except Exception as e:
        return handle_api_exception(e, 'record supply usage')
