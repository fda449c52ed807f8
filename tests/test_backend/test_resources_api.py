"""Tests for the recipient-scoped record endpoints."""
from datetime import timedelta
from shared.models import naive_now


def create(client, headers, path, payload, status=201):
    response = client.post(path, json=payload, headers=headers)
    assert response.status_code == status, response.get_json()
    return response.get_json()


def test_meal_is_listed_only_for_its_recipient(client, auth_headers, recipient, second_recipient):
    meal = create(client, auth_headers, '/api/meals', {
        'careRecipientId': recipient['id'], 'type': 'breakfast', 'food': 'Toast'
    })
    assert meal['careRecipientId'] == recipient['id']
    assert meal['type'] == 'breakfast'

    mine = client.get(f"/api/meals?careRecipientId={recipient['id']}", headers=auth_headers).get_json()
    assert [m['id'] for m in mine] == [meal['id']]

    theirs = client.get(f"/api/meals?careRecipientId={second_recipient['id']}", headers=auth_headers).get_json()
    assert theirs == []


def test_meal_period_filters(client, auth_headers, recipient):
    rid = recipient['id']
    today = naive_now().replace(hour=12, minute=0, second=0, microsecond=0)
    old = today - timedelta(days=3)
    create(client, auth_headers, '/api/meals', {
        'careRecipientId': rid, 'type': 'lunch', 'food': 'Soup', 'consumedAt': today.isoformat()
    })
    create(client, auth_headers, '/api/meals', {
        'careRecipientId': rid, 'type': 'dinner', 'food': 'Stew', 'consumedAt': old.isoformat()
    })

    default = client.get(f'/api/meals?careRecipientId={rid}', headers=auth_headers).get_json()
    assert [m['food'] for m in default] == ['Soup']

    everything = client.get(f'/api/meals?careRecipientId={rid}&all=true', headers=auth_headers).get_json()
    assert len(everything) == 2

    day = old.date().isoformat()
    ranged = client.get(f'/api/meals?careRecipientId={rid}&startDate={day}&endDate={day}',
                        headers=auth_headers).get_json()
    assert [m['food'] for m in ranged] == ['Stew']

    response = client.get(f'/api/meals?careRecipientId={rid}&startDate=yesterday', headers=auth_headers)
    assert response.status_code == 400


def test_list_requires_recipient_id(client, auth_headers):
    response = client.get('/api/meals', headers=auth_headers)
    assert response.status_code == 400
    assert 'careRecipientId' in response.get_json()['error']


def test_invalid_payload_is_rejected(client, auth_headers, recipient):
    response = client.post('/api/meals', json={'careRecipientId': recipient['id'], 'type': 'brunch', 'food': 'Eggs'},
                           headers=auth_headers)
    assert response.status_code == 400

    response = client.post('/api/blood-pressure', json={'careRecipientId': recipient['id']}, headers=auth_headers)
    assert response.status_code == 400


def test_partial_update_and_delete(client, auth_headers, recipient):
    note = create(client, auth_headers, '/api/notes', {
        'careRecipientId': recipient['id'], 'title': 'Visit', 'content': 'Nurse came by'
    })

    response = client.patch(f"/api/notes/{note['id']}", json={'content': 'Nurse came at 3pm'}, headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['title'] == 'Visit'
    assert response.get_json()['content'] == 'Nurse came at 3pm'

    response = client.delete(f"/api/notes/{note['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert client.get(f"/api/notes/{note['id']}", headers=auth_headers).status_code == 404


def test_recent_notes_returns_latest_three(client, auth_headers, recipient):
    for i in range(5):
        create(client, auth_headers, '/api/notes', {
            'careRecipientId': recipient['id'], 'title': f'Note {i}', 'content': 'text'
        })
    recent = client.get(f"/api/notes/recent?careRecipientId={recipient['id']}", headers=auth_headers).get_json()
    assert [n['title'] for n in recent] == ['Note 4', 'Note 3', 'Note 2']


def test_sleep_end_must_follow_start(client, auth_headers, recipient):
    start = naive_now().replace(second=0, microsecond=0) - timedelta(hours=8)
    response = client.post('/api/sleep', json={
        'careRecipientId': recipient['id'],
        'startTime': start.isoformat(),
        'endTime': (start - timedelta(hours=1)).isoformat(),
    }, headers=auth_headers)
    assert response.status_code == 400

    sleep = create(client, auth_headers, '/api/sleep', {
        'careRecipientId': recipient['id'], 'startTime': start.isoformat()
    })
    response = client.patch(f"/api/sleep/{sleep['id']}", json={
        'endTime': (start - timedelta(minutes=5)).isoformat()
    }, headers=auth_headers)
    assert response.status_code == 400

    response = client.patch(f"/api/sleep/{sleep['id']}", json={
        'endTime': (start + timedelta(hours=7)).isoformat(), 'quality': 'good'
    }, headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['quality'] == 'good'


def test_supply_usage_decrements_stock(client, auth_headers, other_headers, recipient):
    supply = create(client, auth_headers, '/api/supplies', {
        'careRecipientId': recipient['id'], 'name': 'Depends', 'quantity': 3
    })

    usage = create(client, auth_headers, '/api/supply-usages', {'supplyId': supply['id'], 'quantity': 2})
    assert usage['careRecipientId'] == recipient['id']
    assert usage['supply']['quantity'] == 1

    usage = create(client, auth_headers, '/api/supply-usages', {'supplyId': supply['id'], 'quantity': 5})
    assert usage['supply']['quantity'] == 0

    response = client.post('/api/supply-usages', json={'supplyId': supply['id']}, headers=other_headers)
    assert response.status_code == 404


def test_medication_schedules_inventory_and_refill(client, auth_headers, recipient):
    medication = create(client, auth_headers, '/api/medications', {
        'careRecipientId': recipient['id'], 'name': 'Metformin', 'dosage': '500mg',
        'currentQuantity': 4, 'refillsRemaining': 1
    })
    schedule = create(client, auth_headers, '/api/medication-schedules', {
        'medicationId': medication['id'], 'time': '08:00', 'daysOfWeek': [1, 3, 5], 'quantity': '2'
    })
    assert schedule['daysOfWeek'] == [1, 3, 5]

    schedules = client.get(f"/api/medication-schedules?medicationId={medication['id']}",
                           headers=auth_headers).get_json()
    assert [s['id'] for s in schedules] == [schedule['id']]

    listed = client.get(f"/api/medications?careRecipientId={recipient['id']}", headers=auth_headers).get_json()
    assert listed[0]['schedules'][0]['id'] == schedule['id']

    response = client.patch(f"/api/medications/{medication['id']}/inventory", json={'daysToReorder': 90},
                            headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['daysToReorder'] == 30

    response = client.post(f"/api/medications/{medication['id']}/refill", json={'refillAmount': 30},
                           headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['currentQuantity'] == 34
    assert response.get_json()['refillsRemaining'] == 0

    response = client.post(f"/api/medications/{medication['id']}/refill", json={'refillAmount': 30},
                           headers=auth_headers)
    assert response.get_json()['refillsRemaining'] == 0

    response = client.post(f"/api/medications/{medication['id']}/refill", json={'refillAmount': 0},
                           headers=auth_headers)
    assert response.status_code == 400


def test_medication_log_must_match_medication_schedule(client, auth_headers, recipient):
    first = create(client, auth_headers, '/api/medications', {'careRecipientId': recipient['id'], 'name': 'A'})
    second = create(client, auth_headers, '/api/medications', {'careRecipientId': recipient['id'], 'name': 'B'})
    schedule = create(client, auth_headers, '/api/medication-schedules', {'medicationId': first['id'], 'time': '09:00'})

    response = client.post('/api/medication-logs', json={
        'careRecipientId': recipient['id'], 'medicationId': second['id'], 'scheduleId': schedule['id']
    }, headers=auth_headers)
    assert response.status_code == 400

    log = create(client, auth_headers, '/api/medication-logs', {
        'careRecipientId': recipient['id'], 'medicationId': first['id'], 'scheduleId': schedule['id']
    })
    assert log['taken'] is True


def test_appointments_by_date_and_month(client, auth_headers, recipient):
    rid = recipient['id']
    create(client, auth_headers, '/api/appointments', {
        'careRecipientId': rid, 'title': 'Dentist', 'date': '2030-05-10', 'time': '09:30'
    })
    create(client, auth_headers, '/api/appointments', {
        'careRecipientId': rid, 'title': 'Eye exam', 'date': '2030-06-02', 'time': '14:00'
    })

    on_day = client.get(f'/api/appointments?careRecipientId={rid}&date=2030-05-10', headers=auth_headers).get_json()
    assert [a['title'] for a in on_day] == ['Dentist']

    month = client.get(f'/api/appointments/month?careRecipientId={rid}&month=2030-06', headers=auth_headers)
    assert month.status_code == 200
    assert [a['title'] for a in month.get_json()] == ['Eye exam']

    bad = client.get(f'/api/appointments/month?careRecipientId={rid}&month=June', headers=auth_headers)
    assert bad.status_code == 400


def test_vitals_and_contacts_routes(client, auth_headers, recipient):
    rid = recipient['id']
    reading = create(client, auth_headers, '/api/blood-pressure', {
        'careRecipientId': rid, 'systolic': 120, 'diastolic': 80, 'pulse': 70
    })
    assert reading['systolic'] == 120
    create(client, auth_headers, '/api/glucose', {'careRecipientId': rid, 'level': 105, 'readingType': 'fasting'})
    create(client, auth_headers, '/api/insulin', {'careRecipientId': rid, 'units': 4, 'insulinType': 'rapid'})
    create(client, auth_headers, '/api/doctors', {'careRecipientId': rid, 'name': 'Dr. Lee'})
    create(client, auth_headers, '/api/pharmacies', {'careRecipientId': rid, 'name': 'Corner Drug'})
    create(client, auth_headers, '/api/bowel-movements', {'careRecipientId': rid, 'type': 'normal'})
    create(client, auth_headers, '/api/urination', {'careRecipientId': rid, 'volume': 200})

    for path in ('/api/glucose', '/api/insulin', '/api/doctors', '/api/pharmacies',
                 '/api/bowel-movements', '/api/urination'):
        items = client.get(f'{path}?careRecipientId={rid}', headers=auth_headers).get_json()
        assert len(items) == 1, path


def test_medication_pharmacy_links(client, auth_headers, recipient, second_recipient):
    medication = create(client, auth_headers, '/api/medications', {'careRecipientId': recipient['id'], 'name': 'A'})
    pharmacy = create(client, auth_headers, '/api/pharmacies', {'careRecipientId': recipient['id'], 'name': 'Corner'})
    elsewhere = create(client, auth_headers, '/api/pharmacies', {
        'careRecipientId': second_recipient['id'], 'name': 'Across town'
    })

    response = client.post('/api/medication-pharmacies', json={
        'medicationId': medication['id'], 'pharmacyId': elsewhere['id']
    }, headers=auth_headers)
    assert response.status_code == 400

    link = create(client, auth_headers, '/api/medication-pharmacies', {
        'medicationId': medication['id'], 'pharmacyId': pharmacy['id'], 'refillInfo': 'Auto refill'
    })
    links = client.get(f"/api/medication-pharmacies?medicationId={medication['id']}", headers=auth_headers).get_json()
    assert [item['pharmacy']['name'] for item in links] == ['Corner']

    response = client.delete(f"/api/medication-pharmacies/{link['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert client.get(f"/api/medication-pharmacies?medicationId={medication['id']}",
                      headers=auth_headers).get_json() == []


def test_medication_name_suggestions(client, auth_headers):
    response = client.get('/api/medications/suggestions?name=me', headers=auth_headers)
    assert response.status_code == 200
    names = response.get_json()
    assert names[:3] == ['Memantine', 'Metformin', 'Metoprolol']
    assert 'Simvastatin' not in names

    # Brand names lead to the generic
    response = client.get('/api/medications/suggestions?name=coumadin', headers=auth_headers)
    assert response.get_json() == ['Warfarin']

    response = client.get('/api/medications/suggestions?name=a', headers=auth_headers)
    assert response.status_code == 400


def test_normalize_medication_name(client, auth_headers):
    response = client.get('/api/medications/normalize-name?name=lisin', headers=auth_headers)
    assert response.get_json() == {'original': 'lisin', 'normalized': 'Lisinopril'}

    response = client.get('/api/medications/normalize-name?name=Grandma%20tea', headers=auth_headers)
    assert response.get_json()['normalized'] == 'Grandma tea'

    assert client.get('/api/medications/normalize-name', headers=auth_headers).status_code == 400


def test_medication_interactions(client, auth_headers):
    response = client.post('/api/medications/interactions', json={
        'medicationNames': ['Coumadin 5mg', 'Aspirin 81mg', 'Lisinopril 10mg', 'Potassium chloride']
    }, headers=auth_headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    pairs = {tuple(sorted(item['medications'])): item['severity'] for item in body['interactions']}
    assert pairs == {('aspirin', 'warfarin'): 'high', ('lisinopril', 'potassium'): 'moderate'}

    response = client.post('/api/medications/interactions', json={'medicationNames': ['Metformin', 'Vitamin D3']},
                           headers=auth_headers)
    assert response.get_json()['interactions'] == []

    response = client.post('/api/medications/interactions', json={'medicationNames': []}, headers=auth_headers)
    assert response.status_code == 400
    assert client.post('/api/medications/interactions', json={'medicationNames': ['x']}).status_code == 401
