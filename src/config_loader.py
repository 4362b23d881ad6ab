"""
Configuration loader for the Access Point Onboarding Server
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    A missing file is not fatal - built-in defaults are used
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning(f"Configuration file not found: {config_path} - using defaults")
            config = {}
        else:
            with open(config_file, 'r') as f:
                config = yaml.safe_load(f) or {}
            logger.info(f"Configuration loaded from {config_path}")

        # Validate known sections
        _validate_config(config)

        # Apply defaults
        return _apply_defaults(config)

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that known configuration sections have the right shape"""
    if not isinstance(config, dict):
        raise ValueError("Configuration root must be a mapping")

    for section in ['discovery', 'adoption', 'setup_code', 'api', 'logging']:
        if section in config and not isinstance(config[section], dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")

    # Validate discovery section
    discovery = config.get('discovery', {})
    port = discovery.get('port')
    if port is not None and not (0 < int(port) < 65536):
        raise ValueError(f"discovery.port out of range: {port}")
    if discovery.get('timeout_seconds') is not None and float(discovery['timeout_seconds']) <= 0:
        raise ValueError("discovery.timeout_seconds must be positive")

    # Validate adoption section
    adoption = config.get('adoption', {})
    if adoption.get('connect_timeout_seconds') is not None and float(adoption['connect_timeout_seconds']) <= 0:
        raise ValueError("adoption.connect_timeout_seconds must be positive")

    # Validate setup code API URL
    api_base = config.get('setup_code', {}).get('api_base')
    if api_base and not api_base.startswith(('http://', 'https://')):
        raise ValueError(f"setup_code.api_base must be an http(s) URL: {api_base}")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    defaults = {
        # Broadcast discovery defaults
        'discovery': {
            'port': 10001,
            'broadcast_address': '255.255.255.255',
            'timeout_seconds': 5,
            'recv_buffer_size': 4096
        },
        # SSH adoption defaults (factory credentials)
        'adoption': {
            'username': 'ubnt',
            'default_password': 'ubnt',
            'ssh_port': 22,
            'connect_timeout_seconds': 10,
            'process_grace_seconds': 5
        },
        'setup_code': {
            'api_base': 'https://ubiquitywizard.onrender.com',
            'timeout_seconds': 10
        },
        'api': {
            'host': '127.0.0.1',
            'port': 8000,
            'cors_origins': ['*']
        },
        'logging': {
            'level': 'INFO',
            'file': 'logs/onboarding_server.log',
            'console_output': True,
            'timezone': 'America/New_York'
        }
    }

    for section, section_defaults in defaults.items():
        if section not in config:
            config[section] = {}
        for key, default_value in section_defaults.items():
            if key not in config[section]:
                config[section][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in the configured local timezone"""

    def __init__(self, fmt=None, tz_name: str = 'America/New_York'):
        super().__init__(fmt)
        # pytz handles DST transitions
        self.tz = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with local-time timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    tz_name = log_config.get('timezone', 'America/New_York')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, tz_name)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=[]
    )
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        # Create logs directory if it doesn't exist
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # paramiko logs every transport packet at DEBUG
    logging.getLogger('paramiko').setLevel(logging.WARNING)

    logger.info(f"Logging configured: level={level}, tz={tz_name}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "discovery": {
            "port": 10001,                         # Vendor discovery port
            "broadcast_address": "255.255.255.255",
            "timeout_seconds": 5,                  # Collection window after the probe
            "recv_buffer_size": 4096
        },
        "adoption": {
            "username": "ubnt",                    # Factory-default admin user
            "default_password": "ubnt",            # Used when no custom password is given
            "ssh_port": 22,
            "connect_timeout_seconds": 10,
            "process_grace_seconds": 5             # Extra time allowed for ssh/sshpass/expect
        },
        "setup_code": {
            "api_base": "https://ubiquitywizard.onrender.com",
            "timeout_seconds": 10
        },
        "api": {
            "host": "127.0.0.1",
            "port": 8000,
            "cors_origins": ["*"]
        },
        "logging": {
            "level": "INFO",
            "file": "logs/onboarding_server.log",
            "console_output": True,
            "timezone": "America/New_York"
        }
    }
