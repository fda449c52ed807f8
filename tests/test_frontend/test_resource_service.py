"""Tests for scoped fetches and mutations."""
import pytest
from src.care_app.context import CareRecipientContext
from src.care_app.errors import APIError, DuplicateSubmissionError, MissingCareRecipientError
from src.care_app.invalidation import STATS_TODAY
from src.care_app.query_cache import QueryCache, make_key
from src.care_app.services.resource_service import ResourceService


@pytest.fixture
def service(storage, fake_api):
    fake_api.routes[('GET', '/api/care-recipients')] = [{'id': 1, 'name': 'Mom'}, {'id': 2, 'name': 'Dad'}]
    cache = QueryCache()
    service = ResourceService(fake_api, cache)
    service.context = CareRecipientContext(storage, service.list_care_recipients, cache=cache)
    service.context.refresh()
    return service


def test_fetch_is_scoped_and_cached(service):
    service.api.routes[('GET', '/api/meals')] = lambda params: [{'careRecipientId': int(params['careRecipientId'])}]

    assert service.fetch('/api/meals') == [{'careRecipientId': 1}]
    service.fetch('/api/meals')
    assert len([call for call in service.api.calls if call[1] == '/api/meals']) == 1

    # Switching recipients is a different cache entry
    service.context.set_active_care_recipient_id(2)
    assert service.fetch('/api/meals') == [{'careRecipientId': 2}]
    assert service.cache.contains(make_key('/api/meals', 1))
    assert service.cache.contains(make_key('/api/meals', 2))


def test_fetch_passes_params_and_extra_key(service):
    service.api.routes[('GET', '/api/care-stats/date')] = lambda params: params
    result = service.fetch('/api/care-stats/date', params={'date': '2030-01-01'}, extra=('2030-01-01',))
    assert result == {'careRecipientId': '1', 'date': '2030-01-01'}
    assert service.cache.contains(('/api/care-stats/date', '1', '2030-01-01'))


def test_fetch_without_recipient_sends_nothing(storage, fake_api):
    service = ResourceService(fake_api, QueryCache(), CareRecipientContext(storage, lambda: []))
    with pytest.raises(MissingCareRecipientError):
        service.fetch('/api/meals')
    with pytest.raises(MissingCareRecipientError):
        service.create('/api/meals').execute({'type': 'lunch'})
    assert fake_api.calls == []


def test_create_adds_recipient_and_invalidates_on_success(service):
    service.api.routes[('POST', '/api/meals')] = lambda json: {'id': 9, **json}
    service.cache.set(make_key('/api/meals', 1), [])
    service.cache.set(make_key(STATS_TODAY, 1), {})
    service.cache.set(make_key('/api/meals', 2), [])

    result = service.create('/api/meals').execute({'type': 'lunch', 'food': 'Soup'})

    assert result['careRecipientId'] == 1
    assert not service.cache.contains(make_key('/api/meals', 1))
    assert not service.cache.contains(make_key(STATS_TODAY, 1))
    assert service.cache.contains(make_key('/api/meals', 2))


def test_failed_mutation_invalidates_nothing(service):
    service.api.routes[('POST', '/api/meals')] = APIError('Invalid meal type', 400)
    service.cache.set(make_key('/api/meals', 1), [])
    errors = []
    mutation = service.create('/api/meals', on_error=errors.append)

    with pytest.raises(APIError):
        mutation.execute({'type': 'brunch'})

    assert mutation.pending is False
    assert mutation.error.message == 'Invalid meal type'
    assert errors == [mutation.error]
    assert service.cache.contains(make_key('/api/meals', 1))


def test_update_and_delete_endpoints(service):
    service.api.routes[('PATCH', '/api/notes/4')] = {'id': 4}
    service.api.routes[('DELETE', '/api/notes/4')] = {'message': 'deleted'}

    service.update('/api/notes', 4).execute({'title': 'New'})
    service.delete('/api/notes', 4).execute()

    assert service.api.calls[-2] == ('PATCH', '/api/notes/4', {'json': {'title': 'New'}})
    assert service.api.calls[-1] == ('DELETE', '/api/notes/4', {})


def test_action_invalidates_like_its_resource(service):
    service.api.routes[('POST', '/api/medications/3/refill')] = {'id': 3}
    service.cache.set(make_key('/api/medications/reorder-alerts', 1), [])

    service.action('/api/medications/3/refill', '/api/medications').execute({'refillAmount': 30})

    assert not service.cache.contains(make_key('/api/medications/reorder-alerts', 1))


def test_duplicate_submission_is_rejected_while_pending(service):
    service.api.routes[('POST', '/api/notes')] = {'id': 1}
    mutation = service.create('/api/notes')
    mutation.submit({'title': 'a'})
    assert mutation.pending is True

    with pytest.raises(DuplicateSubmissionError):
        mutation.submit({'title': 'a'})
    with pytest.raises(DuplicateSubmissionError):
        mutation.execute({'title': 'a'})

    service.api.complete('req-1')
    assert mutation.poll() is True
    assert mutation.pending is False
    assert mutation.result == {'id': 1}

    # A finished mutation can be submitted again
    mutation.submit({'title': 'b'})
    assert mutation.pending is True


def test_poll_before_completion(service):
    service.api.routes[('POST', '/api/notes')] = {'id': 1}
    mutation = service.create('/api/notes')
    mutation.submit({'title': 'a'})
    assert mutation.poll() is False
    assert mutation.pending is True


def test_invalidation_uses_recipient_captured_at_submit(service):
    service.api.routes[('POST', '/api/meals')] = lambda json: {'id': 5, **json}
    service.cache.set(make_key('/api/meals', 1), [])
    service.cache.set(make_key('/api/meals', 2), [])
    mutation = service.create('/api/meals')

    request_id = mutation.submit({'type': 'dinner', 'food': 'Stew'})
    service.context.set_active_care_recipient_id(2)
    service.api.complete(request_id)
    mutation.poll()

    assert mutation.result['careRecipientId'] == 1
    assert not service.cache.contains(make_key('/api/meals', 1))
    assert service.cache.contains(make_key('/api/meals', 2))


def test_detached_mutation_skips_callbacks_but_invalidates(service):
    service.api.routes[('POST', '/api/meals')] = lambda json: {'id': 1, **json}
    service.cache.set(make_key('/api/meals', 1), [])
    service.cache.set(make_key(STATS_TODAY, 1), {'meals': {'completed': 0}})
    service.cache.set(make_key('/api/meals', 2), [])
    successes = []
    mutation = service.create('/api/meals', on_success=successes.append)

    request_id = mutation.submit({'type': 'lunch', 'food': 'Soup'})
    mutation.detach()
    service.api.complete(request_id)

    assert mutation.poll() is True
    assert mutation.pending is False
    assert successes == []
    assert mutation.result is None
    # Other views read the same cache and must see the new meal
    assert not service.cache.contains(make_key('/api/meals', 1))
    assert not service.cache.contains(make_key(STATS_TODAY, 1))
    assert service.cache.contains(make_key('/api/meals', 2))


def test_detached_failure_invalidates_nothing(service):
    service.api.routes[('POST', '/api/meals')] = APIError('Invalid meal type', 400)
    service.cache.set(make_key('/api/meals', 1), [])
    errors = []
    mutation = service.create('/api/meals', on_error=errors.append)

    request_id = mutation.submit({'type': 'brunch'})
    mutation.detach()
    service.api.complete(request_id)
    mutation.poll()

    assert errors == []
    assert service.cache.contains(make_key('/api/meals', 1))


def test_service_poll_finishes_submitted_mutations(service):
    service.api.routes[('POST', '/api/notes')] = {'id': 1}
    successes = []
    first = service.create('/api/notes', on_success=successes.append)
    second = service.create('/api/notes', on_success=successes.append)
    first.submit({'title': 'a'})
    request_id = second.submit({'title': 'b'})

    assert service.poll() == 2
    service.api.complete(request_id)
    assert service.poll() == 1
    assert successes == [{'id': 1}]
    assert first.pending is True

    service.api.complete_all()
    assert service.poll() == 0
    assert first.pending is False


def test_unscoped_mutation_sends_no_recipient(service):
    service.api.routes[('POST', '/api/care-recipients')] = lambda json: {'id': 3, **json}
    result = service.create('/api/care-recipients', scoped=False).execute({'name': 'Gran'})
    assert 'careRecipientId' not in result
