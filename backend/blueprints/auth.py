"""Authentication blueprint: registration, bearer tokens and notification preferences."""
from flask import Blueprint, request, jsonify, g, current_app
from datetime import timedelta
import secrets
import logging
from werkzeug.security import generate_password_hash, check_password_hash
from ..models import db, AppConfig
from ..utils import api_error, handle_api_exception, get_json_data, validate_schema
from shared.models import User, naive_now
from shared.schemas import UserResponse, NotificationPreferencesUpdate
from shared.validation import Validator, ValidationError

bp = Blueprint('auth', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

RESET_CATEGORY = 'password_reset'
DEFAULT_RESET_TTL_SECONDS = 3600

# Routes reachable without a bearer token
PUBLIC_PATHS = (
    '/api/auth/login', '/api/auth/register', '/api/auth/forgot-password', '/api/auth/reset-password', '/api/health'
)


def serialize_user(user):
    return UserResponse.model_validate(user).model_dump(mode='json', by_alias=True)


def get_bearer_token():
    """Return the bearer token of the current request, or None."""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        token = auth_header[len('Bearer '):].strip()
        return token or None
    return None


@bp.route('/auth/register', methods=['POST'])
def register():
    """Register a new user."""
    try:
        data = get_json_data()
        validated = Validator.validate_registration_data(data)
    except ValidationError as e:
        return api_error(str(e), 400)

    query = User.query.filter(User.username == validated['username'])
    if validated.get('email'):
        query = User.query.filter(
            (User.username == validated['username']) | (User.email == validated['email'])
        )
    if query.first():
        return api_error('User already exists', 400)

    try:
        user = User(
            username=validated['username'],
            email=validated.get('email'),
            name=validated.get('name', ''),
            password_hash=generate_password_hash(validated['password'])
        )
        db.session.add(user)
        db.session.commit()
        logger.info(f"Registered user {user.id} ({user.username})")

        return jsonify({
            'message': 'User registered successfully',
            'user': serialize_user(user)
        }), 201
    except Exception as e:
        return handle_api_exception(e, 'register user')


@bp.route('/auth/login', methods=['POST'])
def login():
    """Login user and return token."""
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    password = data.get('password')

    if not username or not password:
        return api_error('Username and password are required', 400)

    user = User.query.filter_by(username=username).first()

    if not user or not check_password_hash(user.password_hash, password):
        return api_error('Invalid username or password', 401, 'info')

    token = secrets.token_urlsafe(32)

    # Tokens live in AppConfig: key 'token_<token>', value user id
    try:
        config_entry = AppConfig(
            key=f'token_{token}',
            value=str(user.id),
            description=f'Token for user {user.username}',
            category='user_token'
        )
        db.session.add(config_entry)
        db.session.commit()
        logger.info(f"User {user.id} logged in")

        return jsonify({
            'token': token,
            'user': serialize_user(user)
        })
    except Exception as e:
        return handle_api_exception(e, 'log in')


@bp.route('/auth/logout', methods=['POST'])
def logout():
    """Logout user by invalidating the token and any emergency grants bound to it."""
    token = get_bearer_token()
    if not token:
        return api_error('Token required', 400)

    try:
        config_entry = AppConfig.query.filter_by(key=f'token_{token}', category='user_token').first()
        if not config_entry:
            return api_error('Invalid token', 400)
        db.session.delete(config_entry)
        AppConfig.query.filter(
            AppConfig.category == 'emergency_grant',
            AppConfig.key.like(f'grant_{token}_%')
        ).delete(synchronize_session=False)
        db.session.commit()
        return jsonify({'message': 'Logged out successfully'})
    except Exception as e:
        return handle_api_exception(e, 'log out')


def _live_reset_entry(token):
    """The reset row for `token` if it has not expired; expired rows are deleted."""
    entry = AppConfig.query.filter_by(key=f'reset_{token}', category=RESET_CATEGORY).first()
    if entry is None:
        return None
    ttl = timedelta(seconds=int(current_app.config.get('PASSWORD_RESET_TTL_SECONDS', DEFAULT_RESET_TTL_SECONDS)))
    if entry.updated_at is None or entry.updated_at + ttl <= naive_now():
        db.session.delete(entry)
        db.session.commit()
        return None
    return entry


@bp.route('/auth/forgot-password', methods=['POST'])
def forgot_password():
    """Issue a one-time reset token. The answer never reveals whether the user exists."""
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    if not username:
        return api_error('Username is required', 400)

    message = {'message': 'If the username exists, password reset instructions have been sent'}
    user = User.query.filter_by(username=username).first()
    if user is None:
        logger.info(f"Password reset requested for unknown user {username}")
        return jsonify(message)

    try:
        AppConfig.query.filter_by(category=RESET_CATEGORY, value=str(user.id)).delete(synchronize_session=False)
        token = secrets.token_urlsafe(32)
        db.session.add(AppConfig(
            key=f'reset_{token}',
            value=str(user.id),
            description=f'Password reset for user {user.username}',
            category=RESET_CATEGORY
        ))
        db.session.commit()
        # No mail delivery; the operator passes the token on
        logger.info(f"Password reset token for user {user.id} ({user.username}): {token}")
        return jsonify(message)
    except Exception as e:
        return handle_api_exception(e, 'request password reset')


@bp.route('/auth/reset-password', methods=['POST'])
def reset_password():
    data = request.get_json(silent=True) or {}
    token = data.get('token')
    new_password = data.get('newPassword')
    if not token or not new_password:
        return api_error('Token and new password are required', 400)

    try:
        Validator.validate_password(new_password)
    except ValidationError as e:
        return api_error(str(e), 400)

    entry = _live_reset_entry(token)
    user = db.session.get(User, int(entry.value)) if entry is not None else None
    if user is None:
        return api_error('Invalid or expired reset token', 400)

    try:
        user.password_hash = generate_password_hash(new_password)
        db.session.delete(entry)
        # Sessions opened with the old password end here
        AppConfig.query.filter_by(category='user_token', value=str(user.id)).delete(synchronize_session=False)
        db.session.commit()
        logger.info(f"Password reset for user {user.id}")
        return jsonify({'message': 'Password reset successfully'})
    except Exception as e:
        return handle_api_exception(e, 'reset password')


@bp.route('/auth/me', methods=['GET'])
def me():
    """Get current user info."""
    return jsonify(serialize_user(g.user))


@bp.route('/user/notifications', methods=['GET'])
def get_notification_preferences():
    user = g.user
    return jsonify({
        'emailNotifications': user.email_notifications,
        'smsNotifications': user.sms_notifications,
        'medicationReminders': user.medication_reminders,
        'phone': user.phone or '',
    })


@bp.route('/user/notifications', methods=['PUT', 'PATCH'])
def update_notification_preferences():
    try:
        data = get_json_data()
        validated = validate_schema(NotificationPreferencesUpdate, data, partial=True)
    except ValidationError as e:
        return api_error(str(e), 400)

    try:
        for key, value in validated.items():
            if value is not None:
                setattr(g.user, key, value)
        db.session.commit()
        return get_notification_preferences()
    except Exception as e:
        return handle_api_exception(e, 'update notification preferences')


@bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


def init_auth(app):
    """Require a valid bearer token on every /api route except the public ones."""
    @app.before_request
    def check_auth():
        if not request.path.startswith('/api'):
            return
        if request.path.startswith(PUBLIC_PATHS):
            return

        token = get_bearer_token()
        if token:
            config_entry = AppConfig.query.filter_by(key=f'token_{token}', category='user_token').first()
            if config_entry:
                user = db.session.get(User, int(config_entry.value))
                if user is not None:
                    g.user = user
                    g.token = token
                    return

        return jsonify({'error': 'Authentication required'}), 401
