"""Application state management for CareApp."""
from dataclasses import dataclass, field
from typing import Optional, List, Dict


@dataclass
class SessionState:
    """State the views share that is not persisted.

    The active care recipient and the unlock set live in durable storage
    (see context.py and unlock_store.py), not here.
    """
    current_user: Optional[dict] = None

    # Transient messages for the UI to show, oldest first
    notifications: List[Dict[str, str]] = field(default_factory=list)

    # Last dashboard payload shown, by care recipient id
    dashboard: Dict[str, dict] = field(default_factory=dict)

    def notify(self, message, level='error'):
        self.notifications.append({'level': level, 'message': message})

    def pop_notifications(self):
        """Return and clear pending notifications."""
        pending, self.notifications = self.notifications, []
        return pending

    def reset(self):
        """Forget everything tied to the signed-in user."""
        self.current_user = None
        self.notifications = []
        self.dashboard = {}
