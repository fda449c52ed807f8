"""Care recipient handlers for CareApp.

Backs the recipient tabs: listing, switching the active recipient and
creating, renaming or deleting recipients.
"""

import logging
from ..errors import DuplicateSubmissionError
from ..invalidation import CARE_RECIPIENTS


class CareRecipientHandler:
    """Handles care recipient selection and management.

    Attributes:
        app: Reference to the main CareApp instance
        logger: Logger instance for this handler
    """

    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)
        self.create_mutation = app.resources.create(CARE_RECIPIENTS, scoped=False)
        self._mutations = {}

    def view(self):
        """Describe what the recipient tabs should show.

        Returns:
            dict: {'state': 'loading' | 'error' | 'empty' | 'ready', 'recipients', 'activeId', 'error'}
        """
        context = self.app.context
        recipients = context.care_recipients
        if recipients is None:
            state = 'error' if context.error is not None else 'loading'
        elif not recipients:
            state = 'empty'
        else:
            state = 'ready'
        return {
            'state': state,
            'recipients': recipients or [],
            'activeId': context.active_care_recipient_id,
            'error': context.error.message if context.error is not None else None,
        }

    def select(self, care_recipient_id):
        """Make a recipient active; ids not in the loaded list are refused."""
        recipients = self.app.context.care_recipients or []
        if str(care_recipient_id) not in {str(r['id']) for r in recipients}:
            self.logger.warning(f"Ignoring selection of unknown care recipient {care_recipient_id}")
            return False
        self.app.context.set_active_care_recipient_id(care_recipient_id)
        return True

    def create(self, name, color=None, on_created=None):
        """Queue a new recipient; once the server stores it, it becomes the active one.

        Returns:
            The request id, or None when nothing was sent
        """
        data = {'name': name}
        if color:
            data['color'] = color

        def created(recipient):
            self.app.context.set_active_care_recipient_id(recipient['id'])
            if on_created:
                on_created(recipient)

        return self._submit(self.create_mutation, data, 'add', created)

    def rename(self, care_recipient_id, name):
        mutation = self._mutation('rename', care_recipient_id, self.app.resources.update)
        return self._submit(mutation, {'name': name}, 'rename')

    def delete(self, care_recipient_id, on_deleted=None):
        """Queue deletion of a recipient and all of their records.

        `on_deleted(summary)` receives the server's count of deleted rows.
        """
        def deleted(result):
            summary = result.get('summary', {})
            self.logger.info(f"Deleted care recipient {care_recipient_id}: {summary}")
            self._mutations.pop(('rename', str(care_recipient_id)), None)
            self._mutations.pop(('delete', str(care_recipient_id)), None)
            if on_deleted:
                on_deleted(summary)

        mutation = self._mutation('delete', care_recipient_id, self.app.resources.delete)
        return self._submit(mutation, None, 'delete', deleted)

    @property
    def saving(self):
        return self.create_mutation.pending or any(m.pending for m in self._mutations.values())

    def _mutation(self, verb, care_recipient_id, factory):
        key = (verb, str(care_recipient_id))
        if key not in self._mutations:
            self._mutations[key] = factory(
                CARE_RECIPIENTS, care_recipient_id, scoped=False, care_recipient_id=care_recipient_id
            )
        return self._mutations[key]

    def _submit(self, mutation, data, verb, on_done=None):
        try:
            request_id = mutation.submit(data)
        except DuplicateSubmissionError:
            self.app.state.notify('Still saving the previous care recipient change', 'info')
            return None

        def failed(error):
            self.app.state.notify(f'Could not {verb} care recipient: {error.message}')

        mutation.on_success = on_done
        mutation.on_error = failed
        return request_id
