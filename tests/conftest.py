"""Pytest configuration and fixtures for care tracker tests."""
import pytest
import tempfile
import os
from backend.app import create_app
from backend.models import db
from src.care_app.errors import APIError
from src.care_app.storage import MemoryStorage

PASSWORD = 'secret123'


@pytest.fixture
def app():
    """Create and configure a test app instance."""
    # Create temporary database for testing
    db_fd, db_path = tempfile.mkstemp()

    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'EMERGENCY_GRANT_TTL_SECONDS': 900,
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()

    # Cleanup
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


def register_and_login(client, username, password=PASSWORD):
    """Create an account and return Authorization headers for it."""
    response = client.post('/api/auth/register', json={'username': username, 'password': password})
    assert response.status_code == 201, response.get_json()
    response = client.post('/api/auth/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return {'Authorization': f"Bearer {response.get_json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client, 'alice')


@pytest.fixture
def other_headers(client):
    """A second caregiver who must never see alice's data."""
    return register_and_login(client, 'bob')


@pytest.fixture
def recipient(client, auth_headers):
    response = client.post('/api/care-recipients', json={'name': 'Mom'}, headers=auth_headers)
    assert response.status_code == 201
    return response.get_json()


@pytest.fixture
def second_recipient(client, auth_headers, recipient):
    response = client.post('/api/care-recipients', json={'name': 'Dad'}, headers=auth_headers)
    assert response.status_code == 201
    return response.get_json()


@pytest.fixture
def storage():
    return MemoryStorage()


class FakeAPI:
    """Stands in for APIService: answers from a route table and records every call.

    Routes map (method, endpoint) to a value, a callable taking the request kwargs,
    or an APIError instance to raise.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self._async = {}

    def request_json(self, method, endpoint, **kwargs):
        self.calls.append((method, endpoint, kwargs))
        if (method, endpoint) not in self.routes:
            raise APIError(f'No route for {method} {endpoint}', 404)
        answer = self.routes[(method, endpoint)]
        if isinstance(answer, APIError):
            raise answer
        if callable(answer):
            return answer(**kwargs)
        return answer

    def submit_request_async(self, method, endpoint, **kwargs):
        request_id = f'req-{len(self._async) + 1}'
        self._async[request_id] = (method, endpoint, kwargs)
        return request_id

    def complete(self, request_id):
        """Finish a queued async request now; returns the poll payload."""
        method, endpoint, kwargs = self._async[request_id]
        try:
            outcome = {'success': True, 'data': self.request_json(method, endpoint, **kwargs)}
        except APIError as e:
            outcome = {'success': False, 'error': e}
        self._async[request_id] = outcome
        return outcome

    def complete_all(self):
        """Finish every queued async request in submission order."""
        for request_id, entry in list(self._async.items()):
            if not isinstance(entry, dict):
                self.complete(request_id)

    def poll_request_result(self, request_id):
        outcome = self._async.get(request_id)
        if isinstance(outcome, dict):
            return outcome
        return None


@pytest.fixture
def fake_api():
    return FakeAPI()
