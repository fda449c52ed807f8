"""Tests for the active care recipient context."""
import pytest
from src.care_app.context import CareRecipientContext
from src.care_app.errors import APIError, MissingCareRecipientError
from src.care_app.invalidation import CARE_RECIPIENTS
from src.care_app.query_cache import QueryCache, make_key
from src.care_app.storage import MemoryStorage

MOM = {'id': 1, 'name': 'Mom'}
DAD = {'id': 2, 'name': 'Dad'}


class Directory:
    """Recipient list the context fetches; swap `recipients` or `error` between calls."""

    def __init__(self, recipients=None):
        self.recipients = list(recipients or [])
        self.error = None
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.recipients)


def test_missing_selection_heals_to_first_recipient(storage):
    context = CareRecipientContext(storage, Directory([MOM, DAD]))
    assert context.active_care_recipient_id is None

    context.refresh()
    assert context.active_care_recipient_id == '1'
    assert context.selected_care_recipient == MOM
    assert storage.get(CareRecipientContext.STORAGE_KEY) == '1'


def test_stale_selection_heals_to_first_recipient(storage):
    storage.set(CareRecipientContext.STORAGE_KEY, '99')
    context = CareRecipientContext(storage, Directory([MOM, DAD]))
    assert context.active_care_recipient_id == '99'
    assert context.selected_care_recipient is None

    context.refresh()
    assert context.active_care_recipient_id == '1'


def test_valid_persisted_selection_is_kept(storage):
    storage.set(CareRecipientContext.STORAGE_KEY, '2')
    context = CareRecipientContext(storage, Directory([MOM, DAD]))
    context.refresh()
    assert context.active_care_recipient_id == '2'
    assert context.selected_care_recipient == DAD


def test_selection_persists_across_instances(storage):
    directory = Directory([MOM, DAD])
    context = CareRecipientContext(storage, directory)
    context.refresh()
    context.set_active_care_recipient_id(2)

    restarted = CareRecipientContext(storage, directory)
    assert restarted.active_care_recipient_id == '2'
    restarted.refresh()
    assert restarted.active_care_recipient_id == '2'


def test_clearing_selection_removes_key(storage):
    context = CareRecipientContext(storage, Directory([MOM]))
    context.set_active_care_recipient_id(1)
    context.set_active_care_recipient_id(None)
    assert storage.get(CareRecipientContext.STORAGE_KEY) is None
    with pytest.raises(MissingCareRecipientError):
        context.require_active_id()


def test_empty_list_leaves_nothing_selected(storage):
    context = CareRecipientContext(storage, Directory([]))
    assert context.refresh() == []
    assert context.care_recipients == []
    assert context.active_care_recipient_id is None
    assert context.selected_care_recipient is None


def test_no_fetch_while_signed_out(storage):
    directory = Directory([MOM])
    signed_in = {'value': False}
    context = CareRecipientContext(storage, directory, is_authenticated=lambda: signed_in['value'])

    assert context.refresh() is None
    assert directory.calls == 0
    assert context.care_recipients is None

    signed_in['value'] = True
    context.refresh()
    assert directory.calls == 1
    assert context.active_care_recipient_id == '1'


def test_fetch_error_keeps_selection(storage):
    storage.set(CareRecipientContext.STORAGE_KEY, '2')
    directory = Directory([MOM, DAD])
    directory.error = APIError('Server down', 503)
    context = CareRecipientContext(storage, directory)

    assert context.refresh() is None
    assert context.care_recipients is None
    assert context.error.status_code == 503
    assert context.active_care_recipient_id == '2'

    directory.error = None
    context.refresh()
    assert context.error is None
    assert context.care_recipients == [MOM, DAD]


def test_subscribers_hear_changes_only(storage):
    context = CareRecipientContext(storage, Directory([MOM, DAD]))
    heard = []
    context.subscribe(heard.append)

    context.refresh()
    context.set_active_care_recipient_id('1')
    context.set_active_care_recipient_id(2)
    assert heard == ['1', '2']


def test_selection_syncs_between_handles(storage):
    directory = Directory([MOM, DAD])
    first = CareRecipientContext(storage, directory)
    second = CareRecipientContext(storage.sibling(), directory)
    first.refresh()
    second.refresh()
    heard = []
    second.subscribe(heard.append)

    first.set_active_care_recipient_id(2)
    assert second.active_care_recipient_id == '2'
    assert heard == ['2']


def test_invalid_selection_from_another_handle_is_healed(storage):
    directory = Directory([MOM, DAD])
    context = CareRecipientContext(storage, directory)
    context.refresh()

    storage.sibling().set(CareRecipientContext.STORAGE_KEY, '42')
    assert context.active_care_recipient_id == '1'
    assert storage.get(CareRecipientContext.STORAGE_KEY) == '1'


def test_directory_invalidation_reloads_and_heals(storage):
    cache = QueryCache()
    directory = Directory([MOM, DAD])

    def fetch():
        return cache.fetch(make_key(CARE_RECIPIENTS), directory)

    context = CareRecipientContext(storage, fetch, cache=cache)
    context.refresh()
    context.set_active_care_recipient_id(2)

    # Dad was deleted elsewhere
    directory.recipients = [MOM]
    cache.invalidate(make_key(CARE_RECIPIENTS))

    assert directory.calls == 2
    assert context.care_recipients == [MOM]
    assert context.active_care_recipient_id == '1'


def test_other_invalidations_do_not_reload(storage):
    cache = QueryCache()
    directory = Directory([MOM])
    context = CareRecipientContext(storage, directory, cache=cache)
    context.refresh()

    cache.set(make_key('/api/meals', 1), [])
    cache.invalidate(make_key('/api/meals', 1))
    assert directory.calls == 1
