"""Tests for dashboard statistics and upcoming events."""
from datetime import datetime, time, timedelta
from types import SimpleNamespace
import pytest
from backend.models import db, Medication, MedicationSchedule, MedicationLog, Meal, Supply, Sleep, Appointment
from backend.services.care_stats import is_medication_complete, get_date_stats, get_upcoming_events


def schedule(id, as_needed=False):
    return SimpleNamespace(id=id, as_needed=as_needed)


def log(schedule_id=None):
    return SimpleNamespace(schedule_id=schedule_id)


class TestMedicationCompletion:

    def test_every_regular_schedule_needs_its_own_log(self):
        schedules = [schedule(1), schedule(2)]
        assert not is_medication_complete(schedules, [log(1)])
        assert not is_medication_complete(schedules, [log(1), log(None)])
        assert is_medication_complete(schedules, [log(1), log(2)])

    def test_as_needed_schedules_are_not_required(self):
        assert is_medication_complete([schedule(1), schedule(2, as_needed=True)], [log(1)])
        assert is_medication_complete([schedule(3, as_needed=True)], [])

    def test_no_schedules_needs_any_dose(self):
        assert not is_medication_complete([], [])
        assert is_medication_complete([], [log()])


@pytest.fixture
def stocked(app, recipient):
    """A recipient with one twice-daily medication, one dose taken, two meals and a sleep record."""
    rid = recipient['id']
    day = datetime(2030, 3, 6, 0, 0)  # a Wednesday
    with app.app_context():
        medication = Medication(name='Lisinopril', dosage='10mg', care_recipient_id=rid)
        db.session.add(medication)
        db.session.flush()
        morning = MedicationSchedule(medication_id=medication.id, time=time(8, 0), days_of_week=list(range(7)))
        evening = MedicationSchedule(medication_id=medication.id, time=time(20, 0), days_of_week=list(range(7)))
        db.session.add_all([morning, evening])
        db.session.flush()
        db.session.add_all([
            MedicationLog(medication_id=medication.id, schedule_id=morning.id, care_recipient_id=rid,
                          taken_at=day.replace(hour=8, minute=10)),
            Meal(type='breakfast', food='Eggs', care_recipient_id=rid, consumed_at=day.replace(hour=7)),
            Meal(type='lunch', food='Soup', care_recipient_id=rid, consumed_at=day.replace(hour=12)),
            Meal(type='lunch', food='Old soup', care_recipient_id=rid, consumed_at=day - timedelta(days=1)),
            Supply(name='Depends', quantity=17, care_recipient_id=rid),
            Sleep(start_time=day.replace(hour=1), end_time=day.replace(hour=7, minute=30), quality='fair',
                  care_recipient_id=rid),
        ])
        db.session.commit()
        ids = {'medication': medication.id, 'evening': evening.id}
    return rid, day, ids


def test_date_stats(app, stocked):
    rid, day, _ = stocked
    with app.app_context():
        stats = get_date_stats(rid, day.date(), reference=day.replace(hour=13))

    assert stats['date'] == '2030-03-06'
    assert stats['medications']['completed'] == 0
    assert stats['medications']['total'] == 1
    assert stats['medications']['logs'][0]['medication']['name'] == 'Lisinopril'
    assert stats['meals'] == {
        'completed': 2, 'total': 3, 'progress': 67, 'logs': stats['meals']['logs']
    }
    assert [m['food'] for m in stats['meals']['logs']] == ['Eggs', 'Soup']
    assert stats['supplies']['depends'] == 17
    assert stats['bowelMovement']['lastTime'] == 'None recorded'
    assert stats['sleep'] == {'duration': '6h 30m', 'quality': 'fair'}


def test_medication_completes_when_every_dose_logged(app, stocked):
    rid, day, ids = stocked
    with app.app_context():
        db.session.add(MedicationLog(medication_id=ids['medication'], schedule_id=ids['evening'],
                                     care_recipient_id=rid, taken_at=day.replace(hour=20, minute=5)))
        db.session.commit()
        stats = get_date_stats(rid, day.date(), reference=day.replace(hour=21))
    assert stats['medications']['completed'] == 1
    assert stats['medications']['progress'] == 100


def test_upcoming_events(app, stocked):
    rid, day, ids = stocked
    with app.app_context():
        db.session.add(Appointment(title='Cardiology', date=(day + timedelta(days=2)).date(), time=time(9, 0),
                                   care_recipient_id=rid))
        db.session.add(Appointment(title='Too far', date=(day + timedelta(days=10)).date(), time=time(9, 0),
                                   care_recipient_id=rid))
        db.session.commit()
        events = get_upcoming_events(rid, reference=day.replace(hour=13))

    # The 08:00 dose already passed today; both doses remain for tomorrow
    medication_events = [event for event in events if event['type'] == 'medication']
    assert [(e['date'], e['time']) for e in medication_events] == [
        ('2030-03-06', '20:00'), ('2030-03-07', '08:00'), ('2030-03-07', '20:00')
    ]
    assert events[0]['id'] == f"med_{ids['evening']}_2030-03-06"
    titles = [event['title'] for event in events]
    assert 'Cardiology' in titles
    assert 'Too far' not in titles
    assert [(e['date'], e['time']) for e in events] == sorted((e['date'], e['time']) for e in events)


def test_stats_endpoints(client, auth_headers, other_headers, recipient):
    rid = recipient['id']
    response = client.get(f'/api/care-stats/today?careRecipientId={rid}', headers=auth_headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body['meals']['total'] == 3
    assert body['sleep']['duration'] == 'No data'

    response = client.get(f'/api/care-stats/date?careRecipientId={rid}&date=2030-01-01', headers=auth_headers)
    assert response.get_json()['date'] == '2030-01-01'

    response = client.get(f'/api/care-stats/date?careRecipientId={rid}&date=01/01/2030', headers=auth_headers)
    assert response.status_code == 400

    response = client.get(f'/api/care-stats/today?careRecipientId={rid}', headers=other_headers)
    assert response.status_code == 404

    response = client.get(f'/api/events/upcoming?careRecipientId={rid}', headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json() == []


def test_reorder_alerts(client, auth_headers, recipient):
    rid = recipient['id']
    client.post('/api/medications', json={
        'careRecipientId': rid, 'name': 'Low', 'currentQuantity': 2, 'reorderThreshold': 5
    }, headers=auth_headers)
    client.post('/api/medications', json={
        'careRecipientId': rid, 'name': 'Plenty', 'currentQuantity': 500, 'reorderThreshold': 5
    }, headers=auth_headers)

    alerts = client.get(f'/api/medications/reorder-alerts?careRecipientId={rid}', headers=auth_headers).get_json()
    assert [alert['name'] for alert in alerts] == ['Low']
