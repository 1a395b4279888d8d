"""Base filesystem driver interface"""

from abc import ABC, abstractmethod

from fatvol.models import MountPolicy


class BaseFilesystemDriver(ABC):
    """Abstract base class for filesystem drivers"""

    # Kernel filesystem type handled by the driver
    fs_type = None

    @abstractmethod
    def is_supported(self) -> bool:
        """
        Check whether this host can handle the filesystem.

        Returns:
            True if the tools and kernel support are present, False otherwise
        """
        pass

    @abstractmethod
    def check(self, source: str):
        """
        Check and repair the filesystem on a device.

        Args:
            source: Block device path

        Raises:
            FatVolException if the filesystem is unusable
        """
        pass

    @abstractmethod
    def mount(self, source: str, target: str, policy: MountPolicy):
        """
        Mount the filesystem.

        Args:
            source: Block device path
            target: Mount point
            policy: Mount policy

        Raises:
            FatVolException if the mount failed
        """
        pass

    @abstractmethod
    def format(self, source: str, sector_count: int = 0):
        """
        Create a fresh filesystem on a device.

        Args:
            source: Block device path
            sector_count: Size override in sectors (0 lets the tool decide)

        Raises:
            FatVolException if formatting failed
        """
        pass
