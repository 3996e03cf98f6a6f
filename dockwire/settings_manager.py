"""
Settings Manager for dockwire
Manages connection settings stored in a JSON file
"""

import json
import os
import logging
from typing import Any, Dict, Optional

from .docker_api.http_client import default_socket_path

logger = logging.getLogger(__name__)

CONNECTION_LOCAL = 'local'
CONNECTION_CUSTOM = 'custom'

DEFAULT_SETTINGS = {
    'connection_type': CONNECTION_LOCAL,
    'socket_path': '',
    'log_level': 'INFO',
}


class SettingsManager:
    """Manager for application settings"""

    @staticmethod
    def get_user_settings_path() -> str:
        """Get path to user settings file"""
        if os.name == 'nt':  # Windows
            base_dir = os.environ.get('APPDATA', os.path.expanduser('~'))
        else:  # macOS, Linux
            base_dir = os.environ.get('XDG_DATA_HOME', os.path.expanduser('~/.local/share'))
        return os.path.join(base_dir, 'dockwire', 'settings.json')

    def __init__(self, settings_file: Optional[str] = None):
        """
        Initialize settings manager

        Args:
            settings_file: Settings file location (default: per-user data dir)
        """
        self.settings_file = settings_file or self.get_user_settings_path()
        self.settings: Dict[str, Any] = {}
        self.load()

    def load(self):
        """Load settings from user file, merged over the defaults"""
        self.settings = DEFAULT_SETTINGS.copy()
        if not os.path.exists(self.settings_file):
            logger.debug(f"No settings file at {self.settings_file}, using defaults")
            return

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                loaded_settings = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading settings: {e}")
            return

        if isinstance(loaded_settings, dict):
            self.settings.update(loaded_settings)
            logger.debug(f"Settings loaded from {self.settings_file}")
        else:
            logger.warning(f"Ignoring malformed settings file {self.settings_file}")

    def save(self) -> bool:
        """Save settings to file"""
        try:
            os.makedirs(os.path.dirname(self.settings_file), exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=4, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Error saving settings: {e}")
            return False

        logger.debug(f"Settings saved to {self.settings_file}")
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get setting value

        Args:
            key: Setting key
            default: Default value if key not found

        Returns:
            Setting value
        """
        return self.settings.get(key, default)

    def set(self, key: str, value: Any, save: bool = True):
        """
        Set setting value

        Args:
            key: Setting key
            value: Setting value
            save: Save to file immediately
        """
        self.settings[key] = value

        if save:
            self.save()

    def get_connection_type(self) -> str:
        return self.get('connection_type', CONNECTION_LOCAL)

    def set_connection_type(self, connection_type: str):
        self.set('connection_type', connection_type)

    def get_socket_path(self) -> str:
        return self.get('socket_path', '')

    def set_socket_path(self, path: str):
        self.set('socket_path', path)

    def get_effective_socket_path(self) -> str:
        """
        Socket the client should connect to

        Local connections use the platform default socket; custom
        connections use the configured path or URL.
        """
        if self.get_connection_type() == CONNECTION_LOCAL or not self.get_socket_path():
            return default_socket_path()
        return self.get_socket_path()

    def reset(self, save: bool = True):
        """
        Reset connection settings to defaults

        Args:
            save: Save to file immediately
        """
        self.settings = DEFAULT_SETTINGS.copy()

        if save:
            self.save()
            logger.info(f"Settings reset to defaults in {self.settings_file}")
