"""Notes blueprint."""
from flask import Blueprint, jsonify
from ..base.generic_crud import GenericCRUD, register_crud_routes
from ..models import Note
from ..utils import api_error, get_int_arg, get_owned_recipient, NotFoundError
from shared.schemas import NoteCreate, NoteUpdate, NoteResponse
from shared.validation import ValidationError

bp = Blueprint('notes', __name__, url_prefix='/api')

RECENT_NOTES_LIMIT = 3

note_crud = GenericCRUD(
    model=Note,
    create_schema=NoteCreate,
    update_schema=NoteUpdate,
    response_schema=NoteResponse,
    logger_name='notes',
    order_by=(Note.created_at.desc(), Note.id.desc())
)


@bp.route('/notes/recent', methods=['GET'])
def recent_notes():
    """The latest few notes for the dashboard."""
    try:
        care_recipient_id = get_int_arg('careRecipientId')
        get_owned_recipient(care_recipient_id)
    except ValidationError as e:
        return api_error(str(e), 400)
    except NotFoundError as e:
        return api_error(str(e), 404, 'info')

    notes = (
        Note.query.filter_by(care_recipient_id=care_recipient_id)
        .order_by(Note.created_at.desc(), Note.id.desc())
        .limit(RECENT_NOTES_LIMIT)
        .all()
    )
    return jsonify([note_crud.serialize(note) for note in notes])


register_crud_routes(bp, note_crud, 'notes')
