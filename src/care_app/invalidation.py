"""Which cached queries a successful mutation makes stale.

Each resource maps to the resource paths whose entries for the same care
recipient are invalidated after a create, update or delete. Resources not
listed invalidate their own list plus today's dashboard stats.
"""
import logging
from .query_cache import make_key

logger = logging.getLogger(__name__)

CARE_RECIPIENTS = '/api/care-recipients'
STATS_TODAY = '/api/care-stats/today'
UPCOMING_EVENTS = '/api/events/upcoming'
REORDER_ALERTS = '/api/medications/reorder-alerts'
EMERGENCY_INFO = '/api/emergency-info'

INVALIDATION_TABLE = {
    '/api/medications': ('/api/medications', REORDER_ALERTS, STATS_TODAY, UPCOMING_EVENTS),
    '/api/medication-schedules': (
        '/api/medication-schedules', '/api/medications', REORDER_ALERTS, STATS_TODAY, UPCOMING_EVENTS
    ),
    '/api/medication-logs': ('/api/medication-logs', STATS_TODAY),
    '/api/medication-pharmacies': ('/api/medication-pharmacies', '/api/medications'),
    '/api/appointments': ('/api/appointments', '/api/appointments/month', UPCOMING_EVENTS),
    '/api/meals': ('/api/meals', STATS_TODAY),
    '/api/bowel-movements': ('/api/bowel-movements', STATS_TODAY),
    '/api/urination': ('/api/urination', STATS_TODAY),
    '/api/sleep': ('/api/sleep', STATS_TODAY),
    '/api/notes': ('/api/notes', '/api/notes/recent', STATS_TODAY),
    '/api/blood-pressure': ('/api/blood-pressure', STATS_TODAY),
    '/api/glucose': ('/api/glucose', STATS_TODAY),
    '/api/insulin': ('/api/insulin', STATS_TODAY),
    '/api/supplies': ('/api/supplies', STATS_TODAY),
    '/api/supply-usages': ('/api/supplies', STATS_TODAY),
    '/api/doctors': ('/api/doctors', '/api/medications'),
    '/api/pharmacies': ('/api/pharmacies', '/api/medication-pharmacies'),
    EMERGENCY_INFO: (EMERGENCY_INFO,),
}


def keys_to_invalidate(resource, care_recipient_id):
    """Cache key prefixes made stale by a mutation of `resource` for one recipient."""
    if resource == CARE_RECIPIENTS:
        # the directory itself plus everything cached for that recipient
        keys = [make_key(CARE_RECIPIENTS)]
        if care_recipient_id is not None:
            keys.extend(
                make_key(path, care_recipient_id)
                for path in sorted({p for paths in INVALIDATION_TABLE.values() for p in paths})
            )
        return keys

    paths = INVALIDATION_TABLE.get(resource, (resource, STATS_TODAY))
    return [make_key(path, care_recipient_id) for path in paths]


def after_mutation(cache, resource, care_recipient_id):
    """Invalidate the declared keys; call only once the mutation is known to have succeeded."""
    removed = []
    for prefix in keys_to_invalidate(resource, care_recipient_id):
        removed.extend(cache.invalidate(prefix))
    logger.debug(f"Mutation of {resource} for recipient {care_recipient_id} invalidated {len(removed)} entries")
    return removed
