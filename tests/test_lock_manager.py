"""
Unit tests for per-device locking
"""

import os

import pytest

from fatvol.lock_manager import DeviceLockManager


@pytest.fixture
def lock_manager(tmp_path):
    return DeviceLockManager(lock_dir=str(tmp_path / 'locks'), timeout=0.3)


class TestDeviceLockManager:
    """Test cases for DeviceLockManager"""

    def test_lock_path(self, lock_manager):
        """Test device paths map to flat lock file names in the lock directory"""
        path = lock_manager.lock_path('/dev/block/vold/public:179,1')

        assert os.path.dirname(path) == lock_manager.lock_dir
        assert os.path.basename(path).startswith('dev_block_vold_public_179_1-')
        assert path.endswith('.lock')

    def test_lock_path_is_stable(self, lock_manager):
        """Test the same device always maps to the same lock file"""
        assert lock_manager.lock_path('/dev/sdb1') == lock_manager.lock_path('/dev/sdb1')

    def test_similar_paths_get_distinct_locks(self, lock_manager):
        """Test paths that flatten to the same name still get distinct lock files"""
        assert lock_manager.lock_path('/dev/sdb1') != lock_manager.lock_path('/dev_sdb1')

    def test_similar_paths_do_not_contend(self, lock_manager):
        """Test paths that flatten to the same name can be held at once"""
        with lock_manager.acquire_lock('/dev/sdb1'):
            with lock_manager.acquire_lock('/dev_sdb1'):
                pass

    def test_acquire_creates_lock_dir(self, lock_manager):
        """Test the lock directory is created on first use"""
        with lock_manager.acquire_lock('/dev/sdb1') as path:
            assert os.path.exists(path)

    def test_same_device_contends(self, lock_manager):
        """Test a second holder of the same device times out"""
        with lock_manager.acquire_lock('/dev/sdb1'):
            with pytest.raises(TimeoutError):
                with lock_manager.acquire_lock('/dev/sdb1'):
                    pass

    def test_distinct_devices_do_not_contend(self, lock_manager):
        """Test different devices can be held at once"""
        with lock_manager.acquire_lock('/dev/sdb1'):
            with lock_manager.acquire_lock('/dev/sdc1'):
                pass

    def test_released_after_exit(self, lock_manager):
        """Test the lock is released when the context exits"""
        with lock_manager.acquire_lock('/dev/sdb1'):
            pass

        with lock_manager.acquire_lock('/dev/sdb1'):
            pass

    def test_released_on_error(self, lock_manager):
        """Test the lock is released when the body raises"""
        with pytest.raises(RuntimeError):
            with lock_manager.acquire_lock('/dev/sdb1'):
                raise RuntimeError('mount failed')

        with lock_manager.acquire_lock('/dev/sdb1'):
            pass
