"""Configuration handler for OpenFiles Locker"""

import os
import tempfile
from typing import Dict, List, Optional

import yaml

from .errors import ConfigError


class Config:
    """Configuration handler"""

    DEFAULT_CONFIG_FILE = '.openfiles-locker.yml'

    DEFAULTS = {
        'snapshot_filename': 'openfiles.dat',
        'generation_interval': 5.0,
        'check_interval': 5.0,
        'log_verbosity': 1,
        'exceptions': [],
        'remote_locations': [],
    }

    # YAML key -> settings key
    FILE_KEYS = {
        'local-share': 'local_share',
        'working-folder': 'working_folder',
        'remote-locations': 'remote_locations',
        'snapshot-filename': 'snapshot_filename',
        'exceptions': 'exceptions',
        'generation-interval': 'generation_interval',
        'check-interval': 'check_interval',
        'log-verbosity': 'log_verbosity',
        'log-file': 'log_file',
        'enumerator': 'enumerator',
        'enumerator-command': 'enumerator_command',
        'enumerate-timeout': 'enumerate_timeout',
        'endpoint-url': 'endpoint_url',
        'region': 'region',
    }

    @staticmethod
    def load_config(config_path: str) -> Dict:
        """Load configuration from YAML file"""
        if not os.path.exists(config_path):
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must hold a mapping")
        return data

    @staticmethod
    def merge_config(file_config: Dict, cli_args: Dict) -> Dict:
        """Merge file config with CLI arguments, CLI args take precedence"""
        config = dict(Config.DEFAULTS)
        for file_key, key in Config.FILE_KEYS.items():
            if file_config.get(file_key) is not None:
                config[key] = file_config[file_key]
        for key in Config.FILE_KEYS.values():
            if cli_args.get(key) is not None:
                config[key] = cli_args[key]

        if not config.get('working_folder'):
            config['working_folder'] = os.path.join(tempfile.gettempdir(), 'oflocker')
        return config

    @staticmethod
    def validate(config: Dict, require_remotes: bool = True) -> Dict:
        """Check and coerce merged settings"""
        if not config.get('local_share'):
            raise ConfigError("local-share must be specified either in config file or command line")
        if require_remotes and not config.get('remote_locations'):
            raise ConfigError("remote-locations must list at least one location")

        for key in ('remote_locations', 'exceptions'):
            value = config.get(key) or []
            if isinstance(value, str):
                value = [value]
            config[key] = [str(v) for v in value]

        for key in ('generation_interval', 'check_interval', 'enumerate_timeout'):
            if config.get(key) is None:
                continue
            try:
                config[key] = float(config[key])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{key} must be a number of seconds") from e
            if config[key] < 0:
                raise ConfigError(f"{key} must not be negative")

        try:
            verbosity = int(config.get('log_verbosity', 1))
        except (TypeError, ValueError) as e:
            raise ConfigError("log-verbosity must be 1, 2 or 3") from e
        config['log_verbosity'] = min(max(verbosity, 1), 3)
        return config

    @staticmethod
    def settings(config_path: Optional[str], cli_args: Dict,
                 require_remotes: bool = True) -> Dict:
        file_config = Config.load_config(config_path) if config_path else {}
        return Config.validate(Config.merge_config(file_config, cli_args), require_remotes)


def default_config_path() -> str:
    return os.path.join(os.getcwd(), Config.DEFAULT_CONFIG_FILE)


def remote_locations_from(values: Optional[List[str]]) -> Optional[List[str]]:
    """Flatten comma-separated location arguments"""
    if not values:
        return None
    locations = []
    for value in values:
        locations.extend(v for v in value.split(',') if v)
    return locations
