# config.py
import copy
import json
import os
from pathlib import Path

import dotenv

# Load the environment variables
dotenv.load_dotenv()

CONFIG_FILE = os.getenv("KEALOA_CONFIG_FILE", "config.json")

# Seconds a cached render stays valid (24 hours)
DEFAULT_CACHE_TTL = 24 * 60 * 60

# Environment variable -> dotted setting path
ENV_OVERRIDES = {
    "KEALOA_DATABASE_URL": "database.url",
    "KEALOA_LOG_LEVEL": "logging.level",
    "KEALOA_LOG_FILE": "logging.file",
    "KEALOA_CACHE_TTL": "cache.ttl_seconds",
}


class Config:
    def __init__(self, config_file=CONFIG_FILE):
        self.default_config = {
            "database": {
                "url": "sqlite+aiosqlite:///kealoa.db",
                "echo": False
            },
            "cache": {
                "ttl_seconds": DEFAULT_CACHE_TTL
            },
            "api": {
                "prefix": "/api/v1",
                "default_per_page": 50,
                "max_per_page": 500
            },
            "logging": {
                "level": "INFO",
                "file": None,                 # e.g. "kealoa.log"
                "rotation": "10 MB"
            }
        }

        self.config_file = Path(config_file)
        self.settings = copy.deepcopy(self.default_config)
        self.load_config()
        self.apply_env_overrides()

    def load_config(self):
        if not self.config_file.exists():
            return

        try:
            with open(self.config_file, "r") as f:
                file_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Error loading config file {self.config_file}: {e}") from e

        self._merge(self.settings, file_config)

    def apply_env_overrides(self):
        for env_name, path in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value is None or value == "":
                continue

            if path == "cache.ttl_seconds":
                try:
                    value = int(value.split('#')[0].strip())
                except ValueError as e:
                    raise ValueError(f"Invalid {env_name} value: '{value}'. Must be a number of seconds.") from e

            self.update_setting(path, value)

    def _merge(self, base, overrides):
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def get_setting(self, path, default=None):
        current = self.settings
        for part in path.split('.'):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def update_setting(self, path, value):
        parts = path.split('.')
        current = self.settings
        for i, part in enumerate(parts):
            if i == len(parts) - 1:
                current[part] = value
            else:
                if part not in current:
                    current[part] = {}
                current = current[part]
        return True


# Initialize the config
app_config = Config()

def get_config():
    return app_config.settings

def get_setting(path, default=None):
    """Look up a dotted setting path such as 'api.max_per_page'"""
    return app_config.get_setting(path, default)

def update_setting(path, value):
    """Update a specific setting in memory"""
    return app_config.update_setting(path, value)

def get_database_url():
    return get_setting("database.url")

def get_cache_ttl():
    """Get render cache TTL in seconds"""
    return int(get_setting("cache.ttl_seconds", DEFAULT_CACHE_TTL))

def get_api_prefix():
    return get_setting("api.prefix", "/api/v1")

def get_pagination_defaults():
    """Return (default_per_page, max_per_page)"""
    return (
        int(get_setting("api.default_per_page", 50)),
        int(get_setting("api.max_per_page", 500))
    )
