"""Generic CRUD class for records scoped to a care recipient (or a medication/supply they own)."""
from flask import jsonify
from shared.validation import ValidationError
from ..models import db
from ..utils import NotFoundError, validate_schema, get_json_data, get_int_arg, get_owned_recipient
import logging
from typing import Optional, Callable, Any, Dict, NamedTuple


class Scope(NamedTuple):
    """How a resource is tied back to the requesting user.

    `param` is the query-string parameter for list requests, `column` the model
    attribute holding the parent id and `loader` a function returning the owned
    parent or raising NotFoundError.
    """
    param: str
    column: str
    loader: Callable[[int], Any]


RECIPIENT_SCOPE = Scope('careRecipientId', 'care_recipient_id', get_owned_recipient)


class GenericCRUD:
    """Generic CRUD class that handles Pydantic validation, ownership checks and serialization.

    Every read and write first resolves the record's parent through `scope`, so a
    user can never see or touch another user's care recipients.

    Usage:
        crud = GenericCRUD(
            model=Meal,
            create_schema=MealCreate,
            update_schema=MealUpdate,
            response_schema=MealResponse,
            order_by=Meal.consumed_at.desc(),
            logger_name='meals'
        )
    """

    def __init__(
        self,
        model: type,
        create_schema: type,
        update_schema: type,
        response_schema: type,
        logger_name: Optional[str] = None,
        scope: Scope = RECIPIENT_SCOPE,
        order_by: Any = None,
        list_filter_hook: Optional[Callable[[Any], Any]] = None,
        pre_create_hook: Optional[Callable[[Dict], Dict]] = None,
        pre_update_hook: Optional[Callable[[Dict, Any], Dict]] = None,
        serialize_hook: Optional[Callable[[Any], Dict]] = None,
        cascade_delete_func: Optional[Callable[[int], Dict]] = None
    ):
        """Initialize generic CRUD class.

        Args:
            model: SQLAlchemy model class
            create_schema: Pydantic schema for creation (e.g., MealCreate)
            update_schema: Pydantic schema for partial updates (e.g., MealUpdate)
            response_schema: Pydantic schema for responses (e.g., MealResponse)
            logger_name: Optional logger name (defaults to model table name)
            scope: Parent scope used for list filtering and ownership checks
            order_by: Ordering clause or tuple of clauses for list results (defaults to newest id first)
            list_filter_hook: Takes the scoped list query, returns a narrowed query.
                              May read extra request arguments.
            pre_create_hook: Runs after validation, before creation. Takes validated_data, returns dict.
            pre_update_hook: Runs after validation, before update. Takes (validated_data, resource).
            serialize_hook: Optional function to customize serialization.
            cascade_delete_func: Optional function to handle cascade deletion.
                                 Takes resource_id, returns summary dict.
        """
        self.model = model
        self.create_schema = create_schema
        self.update_schema = update_schema
        self.response_schema = response_schema
        self.scope = scope
        if order_by is None:
            order_by = model.id.desc()
        self.order_by = tuple(order_by) if isinstance(order_by, (tuple, list)) else (order_by,)
        self.list_filter_hook = list_filter_hook
        self.pre_create_hook = pre_create_hook
        self.pre_update_hook = pre_update_hook
        self.serialize_hook = serialize_hook
        self.cascade_delete_func = cascade_delete_func
        self.logger = logging.getLogger(logger_name or model.__tablename__)

    def get_list(self):
        """List the records of one parent, e.g. GET /api/meals?careRecipientId=7.

        Returns:
            Flask JSON response with a list of records
        """
        try:
            parent_id = get_int_arg(self.scope.param)
            self.scope.loader(parent_id)

            query = self.model.query.filter(getattr(self.model, self.scope.column) == parent_id)
            if self.list_filter_hook:
                query = self.list_filter_hook(query)
            items = query.order_by(*self.order_by).all()

            return jsonify([self.serialize(item) for item in items])
        except ValidationError as e:
            self.logger.warning(f"Invalid {self.get_singular_name()} list request: {e}")
            return jsonify({'error': str(e)}), 400
        except NotFoundError as e:
            return jsonify({'error': str(e)}), 404

    def get_detail(self, resource_id):
        """Get a single owned record by ID."""
        try:
            resource = self.load_owned(resource_id)
            return jsonify(self.serialize(resource))
        except NotFoundError as e:
            return jsonify({'error': str(e)}), 404

    def create(self):
        """Create a new record after validation and ownership checks.

        Returns:
            Flask JSON response with the created record
        """
        try:
            data = get_json_data()
            validated_data = validate_schema(self.create_schema, data)
            self.scope.loader(validated_data.get(self.scope.column))

            if self.pre_create_hook:
                validated_data = self.pre_create_hook(validated_data)

            resource = self.model(**validated_data)
            db.session.add(resource)
            db.session.commit()

            self.logger.info(f"Created {self.get_singular_name()}: {resource.id}")
            return jsonify(self.serialize(resource)), 201

        except ValidationError as e:
            self.logger.warning(f"Validation error in {self.get_singular_name()} creation: {e}")
            return jsonify({'error': str(e)}), 400
        except NotFoundError as e:
            return jsonify({'error': str(e)}), 404
        except Exception as e:
            self.logger.error(f"Failed to create {self.get_singular_name()}: {e}", exc_info=True)
            db.session.rollback()
            return jsonify({'error': f'Failed to create {self.get_singular_name()}'}), 500

    def update(self, resource_id):
        """Apply a partial update to an owned record.

        Fields the client did not send are left untouched; explicit nulls clear
        nullable columns only.
        """
        try:
            data = get_json_data()
            resource = self.load_owned(resource_id)

            validated_data = validate_schema(self.update_schema, data, partial=True)
            columns = self.model.__table__.columns
            validated_data = {
                key: value for key, value in validated_data.items()
                if value is not None or (key in columns and columns[key].nullable)
            }

            if self.pre_update_hook:
                validated_data = self.pre_update_hook(validated_data, resource)

            for key, value in validated_data.items():
                setattr(resource, key, value)

            db.session.commit()

            self.logger.info(f"Updated {self.get_singular_name()}: {resource_id}")
            return jsonify(self.serialize(resource))

        except ValidationError as e:
            self.logger.warning(f"Validation error in {self.get_singular_name()} update: {e}")
            return jsonify({'error': str(e)}), 400
        except NotFoundError as e:
            return jsonify({'error': str(e)}), 404
        except Exception as e:
            self.logger.error(f"Failed to update {self.get_singular_name()}: {e}", exc_info=True)
            db.session.rollback()
            return jsonify({'error': f'Failed to update {self.get_singular_name()}'}), 500

    def delete(self, resource_id):
        """Delete an owned record.

        Returns:
            Flask JSON response with deletion summary
        """
        try:
            resource = self.load_owned(resource_id)

            if self.cascade_delete_func:
                summary = self.cascade_delete_func(resource_id)
            else:
                db.session.delete(resource)
                summary = {}

            db.session.commit()

            self.logger.info(f"Deleted {self.get_singular_name()}: {resource_id}")
            return jsonify({
                'message': f'{self.get_singular_name().replace("_", " ").title()} deleted successfully',
                'summary': summary
            })
        except NotFoundError as e:
            return jsonify({'error': str(e)}), 404
        except Exception as e:
            self.logger.error(f"Failed to delete {self.get_singular_name()}: {e}", exc_info=True)
            db.session.rollback()
            return jsonify({'error': f'Failed to delete {self.get_singular_name()}'}), 500

    def load_owned(self, resource_id):
        """Fetch a record and verify its parent belongs to the current user.

        Raises:
            NotFoundError: Missing record or foreign owner; both look the same to the client
        """
        resource = db.session.get(self.model, resource_id)
        if resource is None:
            raise NotFoundError(f'{self.get_singular_name().replace("_", " ").title()} not found')
        self.scope.loader(getattr(resource, self.scope.column))
        return resource

    def serialize(self, resource):
        """Serialize resource to a camelCase dict using the Pydantic response schema."""
        if self.serialize_hook:
            return self.serialize_hook(resource)

        return self.response_schema.model_validate(resource).model_dump(mode='json', by_alias=True)

    def get_singular_name(self):
        """Singular resource name for messages (e.g., 'meal', 'medication_log')."""
        table_name = self.model.__tablename__
        if table_name.endswith('ies'):
            return table_name[:-3] + 'y'
        if table_name.endswith('s'):
            return table_name[:-1]
        return table_name


def register_crud_routes(bp, crud_instance, resource_path, include=('list', 'detail', 'create', 'update', 'delete')):
    """Register standard CRUD routes for a blueprint.

    Args:
        bp: Flask Blueprint instance
        crud_instance: GenericCRUD instance
        resource_path: URL segment of the resource (e.g., 'meals', 'blood-pressure')
        include: Which of the standard routes to register

    This function registers:
        GET /api/{resource_path}?careRecipientId= - List records of a care recipient
        POST /api/{resource_path} - Create record
        GET /api/{resource_path}/<id> - Get single record
        PATCH|PUT /api/{resource_path}/<id> - Update record
        DELETE /api/{resource_path}/<id> - Delete record
    """
    endpoint = resource_path.replace('-', '_')
    rule = f'/{resource_path}'
    item_rule = f'/{resource_path}/<int:resource_id>'

    if 'list' in include:
        bp.add_url_rule(rule, f'{endpoint}_list', crud_instance.get_list, methods=['GET'])
    if 'create' in include:
        bp.add_url_rule(rule, f'{endpoint}_create', crud_instance.create, methods=['POST'])
    if 'detail' in include:
        bp.add_url_rule(item_rule, f'{endpoint}_detail', crud_instance.get_detail, methods=['GET'])
    if 'update' in include:
        bp.add_url_rule(item_rule, f'{endpoint}_update', crud_instance.update, methods=['PATCH', 'PUT'])
    if 'delete' in include:
        bp.add_url_rule(item_rule, f'{endpoint}_delete', crud_instance.delete, methods=['DELETE'])
