"""Dashboard handler: today's stats, upcoming events and recent notes for the active recipient."""

import logging
from ..errors import APIError
from ..invalidation import STATS_TODAY, UPCOMING_EVENTS
from .record_handler import no_recipient_view

RECENT_NOTES = '/api/notes/recent'
STATS_BY_DATE = '/api/care-stats/date'


class DashboardHandler:

    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)

    def load(self):
        """Everything the home screen shows, or an explicit no_recipient / error state."""
        empty = no_recipient_view(self.app.context)
        if empty:
            return empty

        resources = self.app.resources
        try:
            view = {
                'state': 'ready',
                'stats': resources.fetch(STATS_TODAY),
                'upcoming': resources.fetch(UPCOMING_EVENTS),
                'recentNotes': resources.fetch(RECENT_NOTES),
            }
        except APIError as e:
            self.logger.error(f"Failed to load dashboard: {e}")
            return {'state': 'error', 'error': e.message}

        self.app.state.dashboard[self.app.context.active_care_recipient_id] = view
        return view

    def stats_for(self, day):
        """Stats of another day (YYYY-MM-DD), cached separately from today's."""
        empty = no_recipient_view(self.app.context)
        if empty:
            return empty
        try:
            return self.app.resources.fetch(STATS_BY_DATE, params={'date': day}, extra=(day,))
        except APIError as e:
            self.app.state.notify(f'Could not load stats for {day}: {e.message}')
            return None
