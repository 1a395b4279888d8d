"""Filesystem drivers package"""

from fatvol.drivers.base import BaseFilesystemDriver
from fatvol.drivers.vfat import VfatDriver, MountOutcome

__all__ = ['BaseFilesystemDriver', 'VfatDriver', 'MountOutcome']
