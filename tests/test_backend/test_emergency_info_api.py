"""Tests for PIN / password gated emergency info."""
from datetime import timedelta
import pytest
from backend.models import db, AppConfig
from shared.models import naive_now

PASSWORD = 'secret123'
PIN = '246810'


def login(client, username='alice'):
    response = client.post('/api/auth/login', json={'username': username, 'password': PASSWORD})
    return {'Authorization': f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def emergency_info(client, auth_headers, recipient):
    response = client.post('/api/emergency-info', json={
        'careRecipientId': recipient['id'],
        'socialSecurityNumber': '123-45-6789',
        'allergies': 'Penicillin',
        'bloodType': 'O+',
        'pin': PIN,
    }, headers=auth_headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['emergencyInfo']


def test_missing_record_asks_for_creation(client, auth_headers, recipient):
    response = client.get(f"/api/emergency-info?careRecipientId={recipient['id']}", headers=auth_headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'not_found'
    assert body['needsCreation'] is True
    assert body['careRecipient'] == {'id': recipient['id'], 'name': 'Mom'}


def test_author_sees_what_they_entered(emergency_info):
    assert emergency_info['locked'] is False
    assert emergency_info['hasPin'] is True
    assert emergency_info['allergies'] == 'Penicillin'
    assert 'pin' not in emergency_info
    assert 'pinHash' not in emergency_info


def test_new_session_sees_locked_record(client, recipient, emergency_info):
    headers = login(client)
    response = client.get(f"/api/emergency-info?careRecipientId={recipient['id']}", headers=headers)
    body = response.get_json()['emergencyInfo']
    assert body['locked'] is True
    assert body['id'] == emergency_info['id']
    assert 'socialSecurityNumber' not in body
    assert 'allergies' not in body
    assert body['careRecipientId'] == recipient['id']


def test_pin_unlocks_one_record(client, recipient, emergency_info):
    headers = login(client)
    record_id = emergency_info['id']

    response = client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': '000000'}, headers=headers)
    assert response.status_code == 401
    assert response.get_json()['verified'] is False

    response = client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': 'abc'}, headers=headers)
    assert response.status_code == 400

    response = client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': PIN}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()['verified'] is True
    assert 'expiresAt' in response.get_json()

    body = client.get(f'/api/emergency-info/{record_id}', headers=headers).get_json()
    assert body['locked'] is False
    assert body['socialSecurityNumber'] == '123-45-6789'

    # A PIN grant is not a password re-authentication
    assert client.get('/api/emergency-info/verify-status', headers=headers).get_json() == {'verified': False}


def test_verify_pin_for_missing_record(client, auth_headers):
    response = client.post('/api/emergency-info/999/verify-pin', json={'pin': PIN}, headers=auth_headers)
    assert response.status_code == 404
    assert response.get_json()['needsCreation'] is True


def test_editing_requires_access(client, recipient, emergency_info):
    headers = login(client)
    record_id = emergency_info['id']

    response = client.patch(f'/api/emergency-info/{record_id}', json={'bloodType': 'A-'}, headers=headers)
    assert response.status_code == 403

    response = client.post('/api/emergency-info', json={
        'careRecipientId': recipient['id'], 'allergies': 'None'
    }, headers=headers)
    assert response.status_code == 403

    client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': PIN}, headers=headers)
    response = client.patch(f'/api/emergency-info/{record_id}', json={'bloodType': 'A-'}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()['bloodType'] == 'A-'
    assert response.get_json()['allergies'] == 'Penicillin'


def test_password_unlocks_every_record(client, recipient, second_recipient, emergency_info):
    other = client.post('/api/emergency-info', json={
        'careRecipientId': second_recipient['id'], 'allergies': 'Latex'
    }, headers=login(client)).get_json()['emergencyInfo']

    headers = login(client)
    response = client.post('/api/emergency-info/verify-password', json={'password': 'wrongpass9'}, headers=headers)
    assert response.status_code == 401

    response = client.post('/api/emergency-reauth', json={'password': PASSWORD}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()['verified'] is True

    assert client.get('/api/emergency-info/verify-status', headers=headers).get_json() == {'verified': True}
    for record_id in (emergency_info['id'], other['id']):
        assert client.get(f'/api/emergency-info/{record_id}', headers=headers).get_json()['locked'] is False


def test_grants_expire(client, app, emergency_info):
    headers = login(client)
    record_id = emergency_info['id']
    client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': PIN}, headers=headers)

    with app.app_context():
        for grant in AppConfig.query.filter_by(category='emergency_grant').all():
            grant.value = (naive_now() - timedelta(seconds=1)).isoformat()
        db.session.commit()

    assert client.get(f'/api/emergency-info/{record_id}', headers=headers).get_json()['locked'] is True
    with app.app_context():
        assert AppConfig.query.filter_by(category='emergency_grant').count() == 0


def test_set_pin(client, auth_headers, emergency_info):
    record_id = emergency_info['id']
    response = client.post(f'/api/emergency-info/{record_id}/set-pin', json={'pin': '12345'}, headers=auth_headers)
    assert response.status_code == 400

    response = client.post(f'/api/emergency-info/{record_id}/set-pin', json={'pin': '135790'}, headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()['success'] is True

    headers = login(client)
    response = client.post(f'/api/emergency-info/{record_id}/set-pin', json={'pin': '111111'}, headers=headers)
    assert response.status_code == 403

    response = client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': PIN}, headers=headers)
    assert response.status_code == 401
    response = client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': '135790'}, headers=headers)
    assert response.status_code == 200


def test_other_user_cannot_reach_record(client, other_headers, emergency_info):
    record_id = emergency_info['id']
    assert client.get(f'/api/emergency-info/{record_id}', headers=other_headers).status_code == 404
    response = client.post(f'/api/emergency-info/{record_id}/verify-pin', json={'pin': PIN}, headers=other_headers)
    assert response.status_code == 404
