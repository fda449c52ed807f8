"""Active care recipient context.

Every recipient-scoped query and mutation in the client reads the active id
from here. The selection is persisted in durable storage so it survives
restarts and is shared by every view; once the recipient list is loaded the
selection always names one of its members.
"""
import logging
from typing import Callable, List, Optional
from .errors import APIError, MissingCareRecipientError
from .invalidation import CARE_RECIPIENTS
from .query_cache import key_matches, make_key


class CareRecipientContext:
    """Current selection, the recipient directory and the resolved recipient.

    Args:
        storage: Durable storage (see storage.py)
        fetch_recipients: Callable returning the owned recipients in server
            (creation) order; raises APIError on failure
        is_authenticated: Callable; the directory is not fetched while it returns False
        cache: Optional QueryCache; invalidating the directory key reloads it
    """

    STORAGE_KEY = 'activeCareRecipientId'

    def __init__(self, storage, fetch_recipients: Callable[[], List[dict]],
                 is_authenticated: Callable[[], bool] = lambda: True, cache=None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.storage = storage
        self.fetch_recipients = fetch_recipients
        self.is_authenticated = is_authenticated
        self._active_id: Optional[str] = storage.get(self.STORAGE_KEY)
        self._recipients: Optional[List[dict]] = None
        self.error: Optional[APIError] = None
        self.loading = False
        self._subscribers = []

        storage.subscribe(self._on_storage_change)
        if cache is not None:
            cache.subscribe(self._on_cache_invalidated)

    @property
    def active_care_recipient_id(self) -> Optional[str]:
        return self._active_id

    @property
    def care_recipients(self) -> Optional[List[dict]]:
        """Loaded recipients; None while loading, before the first load, or after a failed fetch."""
        return self._recipients

    @property
    def selected_care_recipient(self) -> Optional[dict]:
        if self._active_id is None or not self._recipients:
            return None
        for recipient in self._recipients:
            if str(recipient['id']) == self._active_id:
                return recipient
        return None

    def set_active_care_recipient_id(self, care_recipient_id):
        """Select a recipient (None clears the selection); persisted before subscribers hear of it."""
        new_id = None if care_recipient_id is None else str(care_recipient_id)
        if new_id is None:
            self.storage.remove(self.STORAGE_KEY)
        else:
            self.storage.set(self.STORAGE_KEY, new_id)
        changed = new_id != self._active_id
        self._active_id = new_id
        if changed:
            self.logger.info(f"Active care recipient set to {new_id}")
            self._notify()

    def require_active_id(self) -> str:
        """The active id, or MissingCareRecipientError when nothing is selected."""
        if self._active_id is None:
            raise MissingCareRecipientError()
        return self._active_id

    def refresh(self):
        """Fetch the recipient directory and repair the selection.

        Skipped entirely while no user is signed in. On failure the list stays
        None, `error` is set and the selection is left alone.
        """
        if not self.is_authenticated():
            self.logger.debug("Not authenticated, skipping care recipient fetch")
            self._recipients = None
            return None

        self.loading = True
        self._recipients = None
        try:
            recipients = self.fetch_recipients()
        except APIError as e:
            self.logger.error(f"Failed to load care recipients: {e}")
            self.error = e
            return None
        finally:
            self.loading = False

        self.error = None
        self._recipients = list(recipients)
        self.logger.debug(f"Loaded {len(self._recipients)} care recipients")
        self._self_heal()
        return self._recipients

    def _self_heal(self):
        if not self._recipients:
            return
        valid_ids = [str(r['id']) for r in self._recipients]
        if self._active_id in valid_ids:
            return
        self.logger.info(f"Selection {self._active_id!r} not among recipients, selecting {valid_ids[0]}")
        self.set_active_care_recipient_id(valid_ids[0])

    def subscribe(self, callback):
        """Register `callback(active_id)`; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self):
        for callback in list(self._subscribers):
            callback(self._active_id)

    def _on_storage_change(self, key):
        if key != self.STORAGE_KEY:
            return
        stored = self.storage.get(self.STORAGE_KEY)
        if stored != self._active_id:
            self.logger.debug(f"Active care recipient changed elsewhere to {stored}")
            self._active_id = stored
            self._notify()
            self._self_heal()

    def _on_cache_invalidated(self, removed_keys):
        directory_key = make_key(CARE_RECIPIENTS)
        if any(key_matches(key, directory_key) and len(key) == 1 for key in removed_keys):
            self.refresh()
