"""Handlers for the recipient-scoped record lists (meals, vitals, notes, ...)."""

import logging
from ..errors import APIError, DuplicateSubmissionError, MissingCareRecipientError

NO_RECIPIENT = {'state': 'no_recipient', 'items': []}


def no_recipient_view(context):
    """The explicit empty state shown when there is nobody to record for, or None."""
    if context.care_recipients == [] or context.active_care_recipient_id is None:
        return dict(NO_RECIPIENT)
    return None


class RecordHandler:
    """List and edit one resource for the active care recipient.

    Saves are queued on the network thread and finish when `CareApp.poll()`
    runs; `saving` is True meanwhile. A form keeps its own data: a save that
    cannot be sent returns None, a save the server rejects queues a
    notification, and in both cases the caller can leave the form filled in.

    Args:
        app: The main CareApp instance
        resource: Resource path such as '/api/meals'
        label: Human name for messages ('meal')
    """

    def __init__(self, app, resource, label):
        self.app = app
        self.resource = resource
        self.label = label
        self.logger = logging.getLogger(f"{self.__class__.__name__}[{label}]")
        self.create_mutation = app.resources.create(resource)
        self._mutations = {}

    def load(self, params=None, extra=()):
        """Fetch the list for the active recipient.

        Returns:
            dict: {'state': 'ready', 'items': [...]} or a no_recipient / error state
        """
        empty = no_recipient_view(self.app.context)
        if empty:
            return empty
        try:
            items = self.app.resources.fetch(self.resource, params=params, extra=extra)
        except APIError as e:
            self.logger.error(f"Failed to load {self.label} list: {e}")
            return {'state': 'error', 'items': [], 'error': e.message}
        return {'state': 'ready', 'items': items}

    @property
    def saving(self):
        return self.create_mutation.pending or any(m.pending for m in self._mutations.values())

    def create(self, form_data, on_saved=None):
        """Queue a new record; `on_saved(record)` runs once the server stored it."""
        return self._submit(self.create_mutation, form_data, 'add', on_saved)

    def update(self, record_id, form_data, on_saved=None):
        mutation = self._mutation('update', record_id, self.app.resources.update)
        return self._submit(mutation, form_data, 'update', on_saved)

    def delete(self, record_id, on_deleted=None):
        def deleted(result):
            self._mutations.pop(('update', record_id), None)
            self._mutations.pop(('delete', record_id), None)
            if on_deleted:
                on_deleted(result)

        mutation = self._mutation('delete', record_id, self.app.resources.delete)
        return self._submit(mutation, None, 'delete', deleted)

    def _mutation(self, verb, record_id, factory):
        key = (verb, record_id)
        if key not in self._mutations:
            self._mutations[key] = factory(self.resource, record_id)
        return self._mutations[key]

    def _submit(self, mutation, data, verb, on_done=None):
        """Hand the mutation to the network queue. Returns the request id, or None if nothing was sent."""
        try:
            request_id = mutation.submit(data)
        except MissingCareRecipientError as e:
            self.app.state.notify(str(e), 'warning')
            return None
        except DuplicateSubmissionError:
            self.app.state.notify(f'Still saving the previous {self.label}', 'info')
            return None

        def succeeded(result):
            self.logger.info(f"{verb} {self.label} done")
            if on_done:
                on_done(result)

        def failed(error):
            self.app.state.notify(f'Could not {verb} {self.label}: {error.message}')

        mutation.on_success = succeeded
        mutation.on_error = failed
        return request_id

    def close(self):
        """The view went away; its pending saves still reach the server but not the view."""
        self.create_mutation.detach()
        for mutation in self._mutations.values():
            mutation.detach()
        self._mutations.clear()
        # The handler is reused when the view opens again
        self.create_mutation = self.app.resources.create(self.resource)
