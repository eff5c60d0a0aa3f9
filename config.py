import copy
import yaml
from typing import Dict, Any, Optional
from pathlib import Path

from updaters.cleanup import DEFAULT_LEGACY_FRAGMENT
from updaters.dependencies import DEFAULT_REQUIRED_TOOLS
from updaters.keyring import DEFAULT_KEYRING_PATH, DEFAULT_KEYRING_URL, DEFAULT_KEYRING_FALLBACK_URL
from updaters.reboot import REBOOT_ASK, REBOOT_POLICIES
from updaters.sources import DEFAULT_SOURCES_LIST, DEFAULT_MIRROR_URL, DEFAULT_MARKER

SUDO_METHODS = ['root', 'nopasswd', 'password']
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

DEFAULT_CONFIG: Dict[str, Any] = {
    'target': {
        'name': 'local',
        'hostname': 'localhost',
        'sudo_method': 'root',
        'sudo_password_env': 'DEBUPGRADE_SUDO_PASS',
    },
    'paths': {
        'os_release': '/etc/os-release',
        'sources_list': DEFAULT_SOURCES_LIST,
        'legacy_fragment': DEFAULT_LEGACY_FRAGMENT,
        'keyring': DEFAULT_KEYRING_PATH,
    },
    'repository': {
        'mirror_url': DEFAULT_MIRROR_URL,
        'marker': DEFAULT_MARKER,
        'keyring_url': DEFAULT_KEYRING_URL,
        'keyring_fallback_url': DEFAULT_KEYRING_FALLBACK_URL,
    },
    'settings': {
        'log_level': 'INFO',
        'assume_yes': False,
        'reboot': REBOOT_ASK,
        'required_tools': list(DEFAULT_REQUIRED_TOOLS),
    },
}


class ConfigParser:
    def __init__(self, config_path: Optional[str] = None):
        if config_path is None:
            config_path = self._find_default_config()
        self.config_path = Path(config_path) if config_path else None
        self._config = None

    def _find_default_config(self) -> Optional[str]:
        possible_paths = [
            "debupgrade.yaml",
            "~/.config/debupgrade/config.yaml",
            "/etc/debupgrade/config.yaml"
        ]

        for path in possible_paths:
            expanded_path = Path(path).expanduser()
            if expanded_path.exists():
                return str(expanded_path)

        return None

    def load_config(self) -> Dict[str, Any]:
        if self._config is not None:
            return self._config

        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Config file not found: {self.config_path}")

            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f)

            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ValueError("Config must be a dictionary")

            for section, values in loaded.items():
                if section not in config:
                    raise ValueError(f"Unknown config section: {section}")
                if not isinstance(values, dict):
                    raise ValueError(f"'{section}' must be a dictionary")
                config[section].update(values)

        self._config = config
        self._validate_config()
        return self._config

    def _validate_config(self):
        target = self._config['target']
        if target['sudo_method'] not in SUDO_METHODS:
            raise ValueError(f"Target has invalid sudo_method: {target['sudo_method']}")

        ssh = target.get('ssh')
        if ssh is not None:
            if not isinstance(ssh, dict):
                raise ValueError("'ssh' must be a dictionary")
            for field in ['user', 'key_file']:
                if field not in ssh:
                    raise ValueError(f"Target ssh settings missing required field: {field}")

        for section in ['paths', 'repository']:
            for key, value in self._config[section].items():
                if not isinstance(value, str) or not value:
                    raise ValueError(f"'{section}.{key}' must be a non-empty string")

        settings = self._config['settings']
        if str(settings['log_level']).upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {settings['log_level']}")
        if settings['reboot'] not in REBOOT_POLICIES:
            raise ValueError(f"Invalid reboot policy: {settings['reboot']}")
        if not isinstance(settings['required_tools'], list):
            raise ValueError("'settings.required_tools' must be a list")

    def get_settings(self) -> Dict[str, Any]:
        return self.load_config()['settings']
