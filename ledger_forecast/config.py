import os
import configparser
from pathlib import Path

from ledger_forecast.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path('config') / 'settings.ini'


class Config:
    """Configuration manager for the sales ledger and demand forecaster."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_path = Path(os.environ.get('LEDGER_FORECAST_CONFIG', DEFAULT_CONFIG_PATH))
        self._config = configparser.ConfigParser(interpolation=None)

        # Defaults first, the settings file (if any) overrides them
        self._load_defaults()
        if self._config_path.exists():
            self._config.read(self._config_path)

        self._initialized = True

    def _load_defaults(self):
        """Load the default configuration into memory."""
        self._config.read_dict({
            'DATABASE': {
                'url': 'sqlite:///ledger_forecast.db',
                'echo': 'False'
            },
            'LOGGING': {
                'level': 'INFO',
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'directory': 'logs',
                'max_size_mb': '10',
                'backup_count': '5',
                'console_output': 'True',
                'file_output': 'True'
            },
            'FORECAST': {
                'history_days': '30',
                'min_history_days': '7',
                'moving_average_window': '7',
                'trend_weight': '0.3',
                'weekday_weight': '0.3',
                'cv_threshold': '0.5',
                'min_confidence': '0.1',
                'max_confidence': '1.0',
                'model_version': 'v1.0.0',
                'high_priority_ratio': '0.3'
            },
            'BUSINESS_RULES': {
                'default_min_threshold': '10',
                'default_unit': 'pcs',
                'accuracy_trailing_days': '7'
            }
        })

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_number(self, section, key, default, cast=float):
        """Get a numeric value that must parse when present.

        Raises:
            ConfigError: the option is set but is not a valid number
        """
        try:
            raw = self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

        try:
            return cast(raw)
        except ValueError:
            raise ConfigError(
                f"Invalid value for [{section}] {key}: {raw!r}",
                details={'section': section, 'key': key, 'value': raw}
            )

    def get_db_url(self):
        """Get the SQLAlchemy database URL."""
        return os.environ.get('LEDGER_FORECAST_DB_URL') or self.get(
            'DATABASE', 'url', 'sqlite:///ledger_forecast.db'
        )

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', True)
        }

    @property
    def forecast_config(self):
        """Get demand forecast parameters."""
        return {
            'history_days': self.get_number('FORECAST', 'history_days', 30, int),
            'min_history_days': self.get_number('FORECAST', 'min_history_days', 7, int),
            'moving_average_window': self.get_number('FORECAST', 'moving_average_window', 7, int),
            'trend_weight': self.get_number('FORECAST', 'trend_weight', 0.3),
            'weekday_weight': self.get_number('FORECAST', 'weekday_weight', 0.3),
            'cv_threshold': self.get_number('FORECAST', 'cv_threshold', 0.5),
            'min_confidence': self.get_number('FORECAST', 'min_confidence', 0.1),
            'max_confidence': self.get_number('FORECAST', 'max_confidence', 1.0),
            'model_version': self.get('FORECAST', 'model_version', 'v1.0.0'),
            'high_priority_ratio': self.get_number('FORECAST', 'high_priority_ratio', 0.3)
        }

    @property
    def business_rules(self):
        """Get business rules configuration."""
        return {
            'default_min_threshold': self.get_number('BUSINESS_RULES', 'default_min_threshold', 10.0),
            'default_unit': self.get('BUSINESS_RULES', 'default_unit', 'pcs'),
            'accuracy_trailing_days': self.get_number('BUSINESS_RULES', 'accuracy_trailing_days', 7, int)
        }

# Global config instance
config = Config()
