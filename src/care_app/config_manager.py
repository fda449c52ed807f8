"""Configuration Manager for the care app client."""
from pydantic_settings import BaseSettings


class ConfigManager(BaseSettings):
    """Manages application configuration settings using Pydantic BaseSettings."""

    # API settings
    api_timeout: float = 10.0
    api_base_url: str = 'http://localhost:5000'
    max_retries: int = 3
    retry_delay: float = 1.0  # seconds, doubled on every retry

    # Storage settings
    storage_dir: str = ''  # empty means the per-user data directory
    storage_file: str = 'storage.json'

    class Config:
        env_prefix = 'CARE_'
        case_sensitive = False

    def get(self, key, default=None):
        """Get a configuration value."""
        return getattr(self, key, default)

    def set(self, key, value):
        """Set a configuration value."""
        setattr(self, key, value)

    def get_all(self):
        """Get all configuration values as dictionary."""
        return self.model_dump()
