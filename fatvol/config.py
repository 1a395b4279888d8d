"""
fatvol Configuration Module
Supports loading from:
1. INI config file (/etc/fatvol/fatvol.conf)
2. Environment variables (override config file)
3. Default values (fallback)
"""

import os
import logging
from configparser import ConfigParser, Error as ConfigParserError
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

from fatvol.exceptions import ConfigurationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FatVolConfig:
    """Immutable configuration handed to the vfat driver at construction"""

    # Default configuration file path
    CONFIG_FILE = '/etc/fatvol/fatvol.conf'

    mkfs_path: str = '/system/bin/newfs_msdos'
    fsck_path: str = '/system/bin/fsck_msdos'
    fsck_context: str = 'u:r:fsck_untrusted:s0'
    runcon_path: str = '/system/bin/runcon'
    fsck_timeout: int = 45
    mount_timeout: int = 20
    proc_filesystems: str = '/proc/filesystems'
    lock_dir: str = '/var/lock/fatvol'
    lock_timeout: int = 300
    log_level: str = 'INFO'
    log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_json: bool = False

    @classmethod
    def load(cls, config_file: Optional[str] = None) -> 'FatVolConfig':
        """
        Load configuration from file and environment variables.

        Priority: env var > config file > default.

        Args:
            config_file: Path to config file (optional)

        Returns:
            A new FatVolConfig
        """
        config_file = config_file or cls.CONFIG_FILE
        logger.debug(f"Loading config from: {config_file}")

        config_data = cls._load_ini_file(config_file)
        defaults = cls()
        values = {}

        for name, default in asdict(defaults).items():
            raw = os.environ.get(
                f'FATVOL_{name.upper()}',
                config_data.get(name)
            )
            if raw is None:
                values[name] = default
            elif isinstance(default, bool):
                values[name] = str(raw).strip().lower() in ('1', 'true', 'yes', 'on')
            elif isinstance(default, int):
                try:
                    values[name] = int(raw)
                except ValueError:
                    raise ConfigurationException(f"{name} must be an integer, got {raw!r}")
            else:
                values[name] = raw

        config = cls(**values)
        logger.debug(f"Configuration loaded from: {config_file}")
        return config

    @classmethod
    def _load_ini_file(cls, config_file: str) -> Dict[str, Any]:
        """
        Load configuration from INI file.

        Expected format:
        [vfat]
        fsck_path = /sbin/fsck.vfat
        mkfs_path = /sbin/newfs_msdos
        fsck_context = u:r:fsck_untrusted:s0
        mount_timeout = 20
        """
        config_data = {}

        if not os.path.exists(config_file):
            logger.warning(f"Config file not found: {config_file}, using defaults")
            return config_data

        try:
            parser = ConfigParser()
            parser.read(config_file)

            # [vfat] wins over [DEFAULT]
            for section in ['vfat', 'DEFAULT']:
                if parser.has_section(section) or section == 'DEFAULT':
                    for key, value in parser.items(section):
                        if key not in config_data:
                            config_data[key] = value

            logger.info(f"Loaded {len(config_data)} config parameters from {config_file}")

        except ConfigParserError as e:
            logger.error(f"Failed to load config file {config_file}: {e}")

        return config_data

    def validate(self):
        """
        Validate configuration.

        Raises:
            ConfigurationException if configuration is invalid
        """
        if not self.mkfs_path:
            raise ConfigurationException("mkfs_path is required")

        if not self.fsck_path:
            raise ConfigurationException("fsck_path is required")

        for name in ('fsck_timeout', 'mount_timeout', 'lock_timeout'):
            if getattr(self, name) <= 0:
                raise ConfigurationException(f"{name} must be positive")

        if self.fsck_context and not self.runcon_path:
            raise ConfigurationException("runcon_path is required when fsck_context is set")

        logger.debug("Configuration validated successfully")

    def as_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary."""
        return asdict(self)
