import os
import configparser
from pathlib import Path

DB_URL_ENV = 'INVENTORY_ENGINE_DB_URL'


class Config:
    """Configuration manager for the Inventory Forecasting Engine."""

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

        self._config_dir = Path(os.environ.get('INVENTORY_ENGINE_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        self._load_defaults()

        # Values in settings.ini override the in-memory defaults
        if self._config_path.exists():
            self._config.read(self._config_path)

        self._initialized = True

    def _load_defaults(self):
        """Populate default configuration values."""
        self._config['DATABASE'] = {
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'inventory',
            'username': 'postgres',
            'password': 'postgres',
            'echo': 'False',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['BUSINESS_RULES'] = {
            'default_lead_time': '14',
            'default_safety_stock_days': '14',
            'velocity_window_days': '30',
            'warning_buffer_days': '7',
            'suggested_order_target_days': '60',
            'default_currency': 'GBP'
        }

        self._config['ALERTS'] = {
            'include_warning': 'True',
            'max_items': '0'
        }

    def _save_config(self):
        """Save configuration to file."""
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

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

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_bounded_int(self, section, key, default, minimum=0):
        """Get an integer; values below the minimum fall back to the default."""
        value = self.get_int(section, key, default)
        return value if value >= minimum else default

    def set(self, section, key, value):
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def business_rules(self):
        """Get business rules configuration."""
        return {
            'default_lead_time': self.get_bounded_int('BUSINESS_RULES', 'default_lead_time', 14),
            'default_safety_stock_days': self.get_bounded_int('BUSINESS_RULES', 'default_safety_stock_days', 14),
            # Velocity divides by the window length
            'velocity_window_days': self.get_bounded_int('BUSINESS_RULES', 'velocity_window_days', 30, minimum=1),
            'warning_buffer_days': self.get_bounded_int('BUSINESS_RULES', 'warning_buffer_days', 7),
            'suggested_order_target_days': self.get_bounded_int('BUSINESS_RULES', 'suggested_order_target_days', 60, minimum=1),
            'default_currency': self.get('BUSINESS_RULES', 'default_currency', 'GBP').strip().upper()
        }

    @property
    def alert_config(self):
        """Get low-stock alert configuration."""
        return {
            'include_warning': self.get_boolean('ALERTS', 'include_warning', True),
            'max_items': self.get_bounded_int('ALERTS', 'max_items', 0)
        }


# Global config instance
config = Config()
