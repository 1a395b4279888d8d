"""
Per-device lock manager for fatvol operations.
Uses file-based locking so that two processes never check, mount or
format the same device at the same time. Distinct devices use distinct
lock files and never contend.
"""

import hashlib
import os
import re
import fcntl
import time
import errno
from contextlib import contextmanager
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class DeviceLockManager:
    """
    Manages per-device locks for check/mount/format operations.
    Uses file-based locking (flock) for cross-process synchronization.
    """

    DEFAULT_LOCK_DIR = "/var/lock/fatvol"
    LOCK_TIMEOUT = 300  # 5 minutes default timeout
    POLL_INTERVAL = 0.1

    def __init__(self, lock_dir: Optional[str] = None, timeout: float = LOCK_TIMEOUT):
        """
        Initialize the lock manager.

        Args:
            lock_dir: Directory to store lock files (default: /var/lock/fatvol)
            timeout: Maximum time to wait for lock acquisition in seconds
        """
        self.lock_dir = lock_dir or self.DEFAULT_LOCK_DIR
        self.timeout = timeout

    def lock_path(self, device: str) -> str:
        """
        Get lock file path for a device.

        Args:
            device: Device path, e.g. /dev/block/vold/public:179,1

        Returns:
            Full path to lock file, e.g.
            <lock_dir>/dev_block_vold_public_179_1-<digest>.lock
        """
        name = re.sub(r'[^A-Za-z0-9.-]+', '_', device).strip('_') or 'device'
        # The readable name is lossy; the digest keeps distinct paths apart
        digest = hashlib.sha1(device.encode()).hexdigest()[:12]
        return os.path.join(self.lock_dir, f"{name}-{digest}.lock")

    @contextmanager
    def acquire_lock(self, device: str):
        """
        Context manager holding an exclusive lock on a device.

        Args:
            device: Device path

        Yields:
            Path of the lock file

        Raises:
            TimeoutError: If lock cannot be acquired within timeout period

        Example:
            with lock_manager.acquire_lock('/dev/sdb1'):
                driver.check('/dev/sdb1')
        """
        os.makedirs(self.lock_dir, mode=0o755, exist_ok=True)
        lock_file_path = self.lock_path(device)
        acquired = False

        with open(lock_file_path, 'w') as lock_file:
            try:
                start_time = time.monotonic()
                while True:
                    try:
                        # Non-blocking lock attempt
                        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                        acquired = True
                        logger.debug(f"Acquired lock for {device}")
                        break
                    except OSError as e:
                        if e.errno not in (errno.EAGAIN, errno.EWOULDBLOCK):
                            raise

                        elapsed = time.monotonic() - start_time
                        if elapsed >= self.timeout:
                            raise TimeoutError(
                                f"Could not acquire lock for {device} "
                                f"after {self.timeout} seconds"
                            )

                        time.sleep(self.POLL_INTERVAL)
                        logger.debug(
                            f"Waiting for lock on {device} "
                            f"({elapsed:.1f}s elapsed)..."
                        )

                yield lock_file_path

            finally:
                if acquired:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
                    logger.debug(f"Released lock for {device}")
