import json
import os
import logging
import requests
from pathlib import Path
from appdirs import user_data_dir


class AuthService:
    """Signs the caregiver in and keeps the bearer token between runs."""

    def __init__(self, api_base_url, data_dir=None, timeout=10):
        self.api_base_url = api_base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self.token = None
        self.user = None
        self.data_dir = Path(data_dir) if data_dir else Path(user_data_dir("care_app", "caretracker"))
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.token_file = self.data_dir / "auth_token.json"
        self._load_token()

    def _load_token(self):
        if self.token_file.exists():
            try:
                with open(self.token_file, 'r') as f:
                    data = json.load(f)
                    self.token = data.get('token')
                    self.user = data.get('user')
            except (OSError, ValueError) as e:
                self.logger.warning(f"Ignoring unreadable token file {self.token_file}: {e}")

    def _save_token(self):
        with open(self.token_file, 'w') as f:
            json.dump({'token': self.token, 'user': self.user}, f)

    def login(self, username, password):
        try:
            resp = requests.post(f"{self.api_base_url}/api/auth/login", json={
                'username': username,
                'password': password
            }, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return False, f"Connection error: {str(e)}"

        if resp.status_code == 200:
            data = resp.json()
            self.token = data['token']
            self.user = data['user']
            self._save_token()
            self.logger.info(f"Signed in as {self.user.get('username')}")
            return True, None
        return False, self._error_message(resp, 'Login failed')

    def register(self, username, password, name='', email=None):
        payload = {'username': username, 'password': password, 'name': name}
        if email:
            payload['email'] = email
        try:
            resp = requests.post(f"{self.api_base_url}/api/auth/register", json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return False, f"Connection error: {str(e)}"

        if resp.status_code == 201:
            return True, None
        return False, self._error_message(resp, 'Registration failed')

    def logout(self):
        if self.token:
            try:
                requests.post(f"{self.api_base_url}/api/auth/logout", headers=self.get_headers(), timeout=5)
            except requests.exceptions.RequestException as e:
                self.logger.warning(f"Server logout failed, discarding token locally: {e}")
        self.token = None
        self.user = None
        if self.token_file.exists():
            os.remove(self.token_file)

    def get_headers(self):
        if self.token:
            return {'Authorization': f'Bearer {self.token}'}
        return {}

    def is_authenticated(self):
        return self.token is not None

    @staticmethod
    def _error_message(resp, default):
        try:
            return resp.json().get('error', default)
        except ValueError:
            return default
