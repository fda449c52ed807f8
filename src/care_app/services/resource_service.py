"""Recipient-scoped queries and mutations over the API."""
import logging
from typing import Callable, Optional
from ..errors import APIError, DuplicateSubmissionError
from ..invalidation import CARE_RECIPIENTS, after_mutation
from ..query_cache import make_key


class Mutation:
    """One create/update/delete the UI can submit, with an explicit pending flag.

    Unscoped mutations (care recipients themselves) send no careRecipientId and
    invalidate for `care_recipient_id` when one is given.

    The care recipient is captured when the mutation is submitted, so the
    invalidation after success targets the recipient the record was written
    for even if the selection changed meanwhile. Invalidation runs only after
    the server answered with success. After `detach()` a late result reaches no
    callback, though a successful write still invalidates the shared cache.
    """

    def __init__(self, service, method, resource, record_id=None, endpoint=None,
                 scoped=True, care_recipient_id=None,
                 on_success: Optional[Callable] = None, on_error: Optional[Callable] = None):
        self.service = service
        self.method = method
        self.resource = resource
        self.record_id = record_id
        self._endpoint = endpoint
        self.scoped = scoped
        self.fixed_recipient_id = None if care_recipient_id is None else str(care_recipient_id)
        self.on_success = on_success
        self.on_error = on_error
        self.pending = False
        self.detached = False
        self.result = None
        self.error: Optional[APIError] = None
        self._request_id = None
        self._care_recipient_id = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def endpoint(self):
        if self._endpoint:
            return self._endpoint
        if self.record_id is None:
            return self.resource
        return f'{self.resource}/{self.record_id}'

    def _begin(self, data):
        if self.pending:
            raise DuplicateSubmissionError(f'{self.method} {self.endpoint} is already in progress')
        payload = dict(data or {})
        self._care_recipient_id = self.fixed_recipient_id
        if self.scoped:
            if self._care_recipient_id is None:
                self._care_recipient_id = self.service.context.require_active_id()
            if self.method == 'POST':
                payload.setdefault('careRecipientId', int(self._care_recipient_id))
        self.pending = True
        self.result = None
        self.error = None
        return payload

    def execute(self, data=None):
        """Run the mutation on the calling thread and return the server's JSON.

        Raises:
            MissingCareRecipientError: No active recipient (nothing is sent)
            DuplicateSubmissionError: Already pending
            APIError: The request failed; nothing was invalidated
        """
        payload = self._begin(data)
        try:
            kwargs = {} if self.method == 'DELETE' else {'json': payload}
            result = self.service.api.request_json(self.method, self.endpoint, **kwargs)
        except APIError as e:
            self._fail(e)
            raise
        self._succeed(result)
        return result

    def submit(self, data=None):
        """Queue the mutation on the network thread; `ResourceService.poll()` finishes it."""
        payload = self._begin(data)
        kwargs = {} if self.method == 'DELETE' else {'json': payload}
        self._request_id = self.service.api.submit_request_async(self.method, self.endpoint, **kwargs)
        self.service.in_flight.append(self)
        return self._request_id

    def poll(self):
        """Check a submitted mutation; True once it has finished (or was detached)."""
        if self._request_id is None:
            return not self.pending
        outcome = self.service.api.poll_request_result(self._request_id)
        if outcome is None:
            return False
        self._request_id = None
        if self.detached:
            self.pending = False
            # The owning view is gone but other views still read the shared cache
            if outcome['success']:
                after_mutation(self.service.cache, self.resource, self._care_recipient_id)
            self.logger.debug(f"Dropped late result for detached {self.method} {self.endpoint}")
            return True
        if outcome['success']:
            self._succeed(outcome['data'])
        else:
            self._fail(outcome['error'])
        return True

    def detach(self):
        """The view that owned this mutation went away; its callbacks will not run."""
        self.detached = True
        self.on_success = None
        self.on_error = None

    def _succeed(self, result):
        self.pending = False
        self.result = result
        after_mutation(self.service.cache, self.resource, self._care_recipient_id)
        self.logger.info(f"{self.method} {self.endpoint} succeeded")
        if self.on_success and not self.detached:
            self.on_success(result)

    def _fail(self, error):
        self.pending = False
        self.error = error
        self.logger.warning(f"{self.method} {self.endpoint} failed: {error}")
        if self.on_error and not self.detached:
            self.on_error(error)


class ResourceService:
    """Fetches through the query cache and builds mutations, all scoped to the active recipient."""

    def __init__(self, api, cache, context=None):
        self.api = api
        self.cache = cache
        self.context = context
        self.in_flight = []
        self.logger = logging.getLogger(self.__class__.__name__)

    def poll(self):
        """Advance submitted mutations; their callbacks run on the calling thread.

        Returns:
            int: Mutations still waiting for the server
        """
        running, self.in_flight = self.in_flight, []
        for mutation in running:
            if not mutation.poll():
                self.in_flight.append(mutation)
        return len(self.in_flight)

    def fetch(self, resource, care_recipient_id=None, params=None, extra=()):
        """GET `resource` for a recipient (the active one by default), cached under
        `(resource, careRecipientId, *extra)`.

        Raises:
            MissingCareRecipientError: No recipient given and none active
            APIError: The request failed (nothing is cached)
        """
        if care_recipient_id is None:
            care_recipient_id = self.context.require_active_id()
        query = {'careRecipientId': care_recipient_id}
        query.update(params or {})
        key = make_key(resource, care_recipient_id, *extra)
        return self.cache.fetch(key, lambda: self.api.request_json('GET', resource, params=query))

    def list_care_recipients(self):
        return self.cache.fetch(
            make_key(CARE_RECIPIENTS),
            lambda: self.api.request_json('GET', CARE_RECIPIENTS)
        )

    def create(self, resource, **callbacks):
        return Mutation(self, 'POST', resource, **callbacks)

    def update(self, resource, record_id, method='PATCH', **callbacks):
        return Mutation(self, method, resource, record_id=record_id, **callbacks)

    def delete(self, resource, record_id, **callbacks):
        return Mutation(self, 'DELETE', resource, record_id=record_id, **callbacks)

    def action(self, endpoint, resource, method='POST', **callbacks):
        """A mutation against a non-CRUD endpoint (e.g. '/api/medications/3/refill') that invalidates like `resource`."""
        return Mutation(self, method, resource, endpoint=endpoint, **callbacks)
