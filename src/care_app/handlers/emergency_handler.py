"""Emergency information handler.

Sensitive fields are revealed only after the caregiver verifies the record's
PIN or their account password. The server enforces this; the unlock store
remembers which records the caregiver opened so every view shows them the
same way, and locking hides them again.
"""

import logging
from ..errors import APIError, DuplicateSubmissionError, MissingCareRecipientError
from ..invalidation import EMERGENCY_INFO
from ..query_cache import make_key
from ..unlock_store import UnlockState
from .record_handler import no_recipient_view


class EmergencyHandler:
    """Handles loading, unlocking and editing of emergency info.

    Checks and saves are queued on the network thread. Their outcome (unlocking,
    notifications, the optional callbacks) arrives when `CareApp.poll()` runs;
    `busy` is True until then.

    Attributes:
        app: Reference to the main CareApp instance
        logger: Logger instance for this handler
    """

    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)
        self.save_mutation = app.resources.create(EMERGENCY_INFO)
        self._mutations = {}

    @property
    def unlock_store(self):
        return self.app.unlock_store

    @property
    def busy(self):
        return self.save_mutation.pending or any(m.pending for m in self._mutations.values())

    def load(self):
        """Emergency info of the active recipient.

        Returns:
            dict: state 'needs_creation', 'locked', 'unlocked', 'no_recipient' or 'error',
            plus 'info' when a record exists
        """
        empty = no_recipient_view(self.app.context)
        if empty:
            return empty
        try:
            body = self.app.resources.fetch(EMERGENCY_INFO)
        except APIError as e:
            self.logger.error(f"Failed to load emergency info: {e}")
            return {'state': 'error', 'error': e.message}

        if body.get('needsCreation'):
            return {'state': 'needs_creation', 'message': body.get('message')}

        info = body['emergencyInfo']
        if info.get('locked') and self.unlock_store.is_unlocked(info['id']):
            # Remembered as unlocked but the server grant has lapsed
            self.logger.info(f"Server access to emergency info {info['id']} expired, locking")
            self.unlock_store.lock(info['id'])
        elif not info.get('locked') and not self.unlock_store.is_unlocked(info['id']):
            info = self._redact(info)

        return {'state': self.unlock_store.state(info['id']).value, 'info': info}

    def state(self, record_id) -> UnlockState:
        return self.unlock_store.state(record_id)

    def verify_pin(self, record_id, pin, on_verified=None):
        """Queue a PIN check; a correct PIN unlocks the record.

        Returns:
            The request id, or None when nothing was sent
        """
        def failed(e):
            if e.status_code == 401:
                self.app.state.notify('Incorrect PIN', 'warning')
            else:
                self.app.state.notify(f'Could not verify PIN: {e.message}')

        mutation = self._action('verify-pin', record_id, f'{EMERGENCY_INFO}/{record_id}/verify-pin')
        return self._submit(mutation, {'pin': pin}, self._on_verified(record_id, on_verified), failed)

    def verify_password(self, password, record_id=None, on_verified=None):
        """Queue a password re-authentication that unlocks `record_id` (or the active recipient's record).

        The record is loaded first when it is not cached yet. Returns the
        request id, or None when there is no record to unlock.
        """
        if record_id is None:
            record_id = self._loaded_record_id()
        if record_id is None:
            record_id = self.load().get('info', {}).get('id')
        if record_id is None:
            self.app.state.notify('There is no emergency info to unlock', 'info')
            return None

        def failed(e):
            if e.status_code == 401:
                self.app.state.notify('Incorrect password', 'warning')
            else:
                self.app.state.notify(f'Could not verify password: {e.message}')

        mutation = self._action('verify-password', None, f'{EMERGENCY_INFO}/verify-password')
        return self._submit(mutation, {'password': password}, self._on_verified(record_id, on_verified), failed)

    def lock(self, record_id):
        self.unlock_store.lock(record_id)
        self._invalidate()

    def lock_all(self):
        self.unlock_store.clear()
        self._invalidate()

    def save(self, form_data, on_saved=None):
        """Queue a create or update of the active recipient's record; `on_saved(info)` runs after success."""
        def saved(body):
            info = body['emergencyInfo']
            self.unlock_store.unlock(info['id'])
            if on_saved:
                on_saved(info)

        def failed(e):
            if e.status_code == 403:
                self.app.state.notify('Unlock the emergency info before editing it', 'warning')
            else:
                self.app.state.notify(f'Could not save emergency info: {e.message}')

        return self._submit(self.save_mutation, form_data, saved, failed)

    def set_pin(self, record_id, pin):
        def failed(e):
            self.app.state.notify(f'Could not set PIN: {e.message}')

        mutation = self._action('set-pin', record_id, f'{EMERGENCY_INFO}/{record_id}/set-pin')
        return self._submit(mutation, {'pin': pin}, lambda body: self.unlock_store.unlock(record_id), failed)

    def _on_verified(self, record_id, on_verified):
        def verified(body):
            if not body.get('verified'):
                return
            self.unlock_store.unlock(record_id)
            if on_verified:
                on_verified(record_id)
        return verified

    def _action(self, name, record_id, endpoint):
        key = (name, record_id)
        if key not in self._mutations:
            self._mutations[key] = self.app.resources.action(endpoint, EMERGENCY_INFO)
        return self._mutations[key]

    def _submit(self, mutation, data, on_success, on_error):
        try:
            request_id = mutation.submit(data)
        except MissingCareRecipientError as e:
            self.app.state.notify(str(e), 'warning')
            return None
        except DuplicateSubmissionError:
            self.app.state.notify('Still waiting for the previous request', 'info')
            return None
        mutation.on_success = on_success
        mutation.on_error = on_error
        return request_id

    def _invalidate(self):
        care_recipient_id = self.app.context.active_care_recipient_id
        if care_recipient_id is not None:
            self.app.cache.invalidate(make_key(EMERGENCY_INFO, care_recipient_id))

    def _loaded_record_id(self):
        care_recipient_id = self.app.context.active_care_recipient_id
        if care_recipient_id is None:
            return None
        body = self.app.cache.peek(make_key(EMERGENCY_INFO, care_recipient_id))
        if body and body.get('emergencyInfo'):
            return body['emergencyInfo']['id']
        return None

    @staticmethod
    def _redact(info):
        """Show a server-unlocked record as locked until this client unlocks it."""
        visible = {'id', 'careRecipientId', 'hasPin', 'locked', 'createdAt', 'updatedAt'}
        redacted = {key: value for key, value in info.items() if key in visible}
        redacted['locked'] = True
        return redacted
