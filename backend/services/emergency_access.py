"""Time-limited grants that let a bearer token read protected emergency info.

A grant is an AppConfig row in category 'emergency_grant'. The key binds it to
the token and either one emergency-info record (PIN check) or every record of
the user (password check); the value is the expiry timestamp.
"""
from datetime import datetime, timedelta
import logging
from flask import current_app
from ..models import db, AppConfig
from shared.models import naive_now

logger = logging.getLogger(__name__)

GRANT_CATEGORY = 'emergency_grant'
ALL_RECORDS = 'all'
DEFAULT_GRANT_TTL_SECONDS = 900


def grant_ttl():
    return timedelta(seconds=int(current_app.config.get('EMERGENCY_GRANT_TTL_SECONDS', DEFAULT_GRANT_TTL_SECONDS)))


def grant_key(token, emergency_info_id=None):
    return f'grant_{token}_{emergency_info_id if emergency_info_id is not None else ALL_RECORDS}'


def grant_access(token, emergency_info_id=None):
    """Create or refresh a grant; returns its expiry. The caller commits."""
    expires_at = naive_now() + grant_ttl()
    key = grant_key(token, emergency_info_id)
    entry = AppConfig.query.filter_by(key=key, category=GRANT_CATEGORY).first()
    if entry is None:
        entry = AppConfig(
            key=key,
            category=GRANT_CATEGORY,
            description=f'Emergency info access for {emergency_info_id or ALL_RECORDS}'
        )
        db.session.add(entry)
    entry.value = expires_at.isoformat()
    logger.info(f"Granted emergency info access ({emergency_info_id or ALL_RECORDS}) until {entry.value}")
    return expires_at


def _live_entry(key):
    entry = AppConfig.query.filter_by(key=key, category=GRANT_CATEGORY).first()
    if entry is None:
        return None
    try:
        expires_at = datetime.fromisoformat(entry.value)
    except (TypeError, ValueError):
        expires_at = None
    if expires_at is None or expires_at <= naive_now():
        logger.debug(f"Removing expired emergency grant {entry.id}")
        db.session.delete(entry)
        db.session.commit()
        return None
    return entry


def has_access(token, emergency_info_id):
    """True while the token holds a record grant or an all-records grant."""
    if not token:
        return False
    return (
        _live_entry(grant_key(token, emergency_info_id)) is not None
        or _live_entry(grant_key(token)) is not None
    )


def has_any_access(token):
    """True while the token holds an all-records grant (password re-authentication)."""
    if not token:
        return False
    return _live_entry(grant_key(token)) is not None
