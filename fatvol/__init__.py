# fatvol/__init__.py
"""
fatvol: FAT volume lifecycle library

Checks, mounts and formats vfat volumes on block devices coming from
untrusted removable media. External tools and the mount(2) call run in
time-bounded children so faulty hardware cannot hang the caller.

Example:
    >>> from fatvol import VfatDriver, MountPolicy, FatVolConfig
    >>>
    >>> driver = VfatDriver(FatVolConfig.load())
    >>> if driver.is_supported():
    ...     driver.check('/dev/sdb1')
    ...     driver.mount('/dev/sdb1', '/mnt/media_rw/sdb1',
    ...                  MountPolicy(owner_uid=1023, owner_gid=1023))
"""

from .config import FatVolConfig

from .drivers import (
    BaseFilesystemDriver,
    VfatDriver,
    MountOutcome
)

from .exceptions import (
    FatVolException,
    LaunchFailure,
    ToolFailure,
    RecheckExhausted,
    OperationTimeout,
    MountFailure,
    ReadOnlyFallbackFailure,
    FormatFailure,
    DirectoryCreateFailure,
    ConfigurationException
)

from .lock_manager import DeviceLockManager

from .models import MountPolicy

from .timeoffset import current_utc_offset_minutes

from .version import version_string

__version__ = version_string()

__all__ = [
    # Configuration
    'FatVolConfig',

    # Drivers
    'BaseFilesystemDriver',
    'VfatDriver',
    'MountOutcome',

    # Exceptions
    'FatVolException',
    'LaunchFailure',
    'ToolFailure',
    'RecheckExhausted',
    'OperationTimeout',
    'MountFailure',
    'ReadOnlyFallbackFailure',
    'FormatFailure',
    'DirectoryCreateFailure',
    'ConfigurationException',

    # Locking
    'DeviceLockManager',

    # Models
    'MountPolicy',

    # Helpers
    'current_utc_offset_minutes',

    # Version
    '__version__',
]
