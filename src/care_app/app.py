"""Care App - client application root.

Wires configuration, storage, services and handlers together. A widget
toolkit binds its views to the handlers; this module has no widgets.
"""
from pathlib import Path
from .state import SessionState
from .storage import JSONFileStorage
from .query_cache import QueryCache
from .context import CareRecipientContext
from .unlock_store import UnlockStore
from .config_manager import ConfigManager
from .services.api_service import APIService
from .services.auth_service import AuthService
from .services.resource_service import ResourceService
from .handlers.care_recipient_handler import CareRecipientHandler
from .handlers.dashboard_handler import DashboardHandler
from .handlers.emergency_handler import EmergencyHandler
from .handlers.record_handler import RecordHandler
from .logging_config import setup_logging
import logging

RECORD_RESOURCES = {
    'medications': ('/api/medications', 'medication'),
    'medication_logs': ('/api/medication-logs', 'medication log'),
    'medication_schedules': ('/api/medication-schedules', 'medication schedule'),
    'appointments': ('/api/appointments', 'appointment'),
    'meals': ('/api/meals', 'meal'),
    'bowel_movements': ('/api/bowel-movements', 'bowel movement'),
    'urination': ('/api/urination', 'urination record'),
    'sleep': ('/api/sleep', 'sleep record'),
    'notes': ('/api/notes', 'note'),
    'doctors': ('/api/doctors', 'doctor'),
    'pharmacies': ('/api/pharmacies', 'pharmacy'),
    'blood_pressure': ('/api/blood-pressure', 'blood pressure reading'),
    'glucose': ('/api/glucose', 'glucose reading'),
    'insulin': ('/api/insulin', 'insulin dose'),
    'supplies': ('/api/supplies', 'supply'),
}


class CareApp:
    """Main CareApp class.

    Services can be passed in (tests use MemoryStorage and fake API objects);
    anything missing is built from the configuration on `startup()`.
    """

    def __init__(self, config=None, storage=None, api_service=None, auth_service=None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config
        self.storage = storage
        self.api_service = api_service
        self.auth_service = auth_service

    def startup(self):
        """Initialize the app"""
        self.logger.info("Starting CareApp initialization")

        if self.config is None:
            self.config = ConfigManager()
        self.logger.info(f"Configuration loaded: API URL={self.config.api_base_url}")

        if self.storage is None:
            storage_path = None
            if self.config.storage_dir:
                storage_path = Path(self.config.storage_dir) / self.config.storage_file
            self.storage = JSONFileStorage(storage_path)
            self.logger.info(f"Durable storage at {self.storage.path}")

        if self.auth_service is None:
            self.auth_service = AuthService(self.config.api_base_url, timeout=self.config.api_timeout)
        if self.api_service is None:
            self.api_service = APIService(
                self.config.api_base_url,
                max_retries=self.config.max_retries,
                retry_delay=self.config.retry_delay,
                timeout=self.config.api_timeout,
                auth_service=self.auth_service
            )

        self.state = SessionState(current_user=self.auth_service.user)
        self.cache = QueryCache()
        self.resources = ResourceService(self.api_service, self.cache)
        self.context = CareRecipientContext(
            self.storage,
            self.resources.list_care_recipients,
            is_authenticated=self.auth_service.is_authenticated,
            cache=self.cache
        )
        self.resources.context = self.context
        self.unlock_store = UnlockStore(self.storage)

        self.care_recipient_handler = CareRecipientHandler(self)
        self.dashboard_handler = DashboardHandler(self)
        self.emergency_handler = EmergencyHandler(self)
        self.record_handlers = {
            name: RecordHandler(self, resource, label)
            for name, (resource, label) in RECORD_RESOURCES.items()
        }
        self.logger.info("Handlers initialized")

        self.context.refresh()
        self.logger.info("CareApp initialization completed")
        return self

    def login(self, username, password):
        ok, error = self.auth_service.login(username, password)
        if not ok:
            self.state.notify(error)
            return False
        self.state.current_user = self.auth_service.user
        # Clearing a cached directory already triggers a reload
        self.cache.clear()
        if self.context.care_recipients is None:
            self.context.refresh()
        return True

    def register(self, username, password, name='', email=None):
        """Create an account and sign straight in."""
        ok, error = self.auth_service.register(username, password, name=name, email=email)
        if not ok:
            self.state.notify(error)
            return False
        return self.login(username, password)

    def logout(self):
        """Sign out; the server drops this token's emergency grants, so local unlocks go too."""
        self.auth_service.logout()
        self.unlock_store.clear()
        self.cache.clear()
        self.state.reset()
        self.context.refresh()

    def poll(self):
        """Called periodically by the UI loop.

        Picks up storage changes from other processes and finishes mutations
        whose response arrived on the network thread. Returns how many
        mutations are still in flight.
        """
        if isinstance(self.storage, JSONFileStorage):
            self.storage.poll()
        return self.resources.poll()


def main():
    setup_logging()
    return CareApp().startup()
