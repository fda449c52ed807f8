"""Tests for durable client storage."""
import json
from src.care_app.storage import MemoryStorage, JSONFileStorage


def test_memory_storage_basic_operations():
    storage = MemoryStorage({'a': 1})
    assert storage.get('a') == '1'
    assert storage.get('missing', 'default') == 'default'

    storage.set('b', 'two')
    assert storage.get('b') == 'two'

    storage.remove('b')
    assert storage.get('b') is None
    storage.remove('b')  # removing a missing key is a no-op


def test_memory_storage_notifies_other_handles_only():
    first = MemoryStorage()
    second = first.sibling()
    heard_first, heard_second = [], []
    first.subscribe(heard_first.append)
    unsubscribe = second.subscribe(heard_second.append)

    first.set('key', 'value')
    assert second.get('key') == 'value'
    assert heard_first == []
    assert heard_second == ['key']

    unsubscribe()
    first.remove('key')
    assert heard_second == ['key']


def test_json_file_storage_persists(tmp_path):
    path = tmp_path / 'storage.json'
    storage = JSONFileStorage(path)
    storage.set('activeCareRecipientId', 3)
    assert json.loads(path.read_text()) == {'activeCareRecipientId': '3'}

    reopened = JSONFileStorage(path)
    assert reopened.get('activeCareRecipientId') == '3'

    reopened.remove('activeCareRecipientId')
    assert storage.get('activeCareRecipientId') is None


def test_json_file_storage_poll_reports_external_writes(tmp_path):
    path = tmp_path / 'storage.json'
    watcher = JSONFileStorage(path)
    writer = JSONFileStorage(path)
    heard = []
    watcher.subscribe(heard.append)

    writer.set('emergency_pins_unlocked', '[1]')
    writer.set('other', 'x')
    assert heard == []

    assert sorted(watcher.poll()) == ['emergency_pins_unlocked', 'other']
    assert heard == ['emergency_pins_unlocked', 'other']

    # Nothing changed since the last poll
    assert watcher.poll() == []

    # The watcher's own writes are not reported back to it
    watcher.set('mine', '1')
    assert watcher.poll() == []


def test_json_file_storage_ignores_malformed_file(tmp_path):
    path = tmp_path / 'storage.json'
    path.write_text('not json')
    storage = JSONFileStorage(path)
    assert storage.get('anything') is None

    path.write_text('[1, 2]')
    assert storage.get('anything') is None

    storage.set('key', 'value')
    assert storage.get('key') == 'value'
