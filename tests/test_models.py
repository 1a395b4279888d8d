"""
Unit tests for MountPolicy and validators
"""

import dataclasses

import pytest

from fatvol.models import MountPolicy
from fatvol.utils.validators import (
    parse_octal_mask, validate_device_path, validate_mount_path, validate_sector_count
)


class TestMountPolicy:
    """Test cases for MountPolicy"""

    def test_defaults(self):
        """Test a default policy is writable, noexec and creates LOST.DIR"""
        policy = MountPolicy()

        assert policy.read_only is False
        assert policy.remount is False
        assert policy.executable is False
        assert policy.permission_mask == 0o007
        assert policy.create_lost_dir is True

    def test_frozen(self):
        """Test a policy cannot be mutated"""
        policy = MountPolicy()

        with pytest.raises(dataclasses.FrozenInstanceError):
            policy.read_only = True

    @pytest.mark.parametrize('kwargs', [
        {'owner_uid': -1},
        {'owner_gid': -5},
        {'permission_mask': 0o1000},
        {'permission_mask': -1},
        {'permission_mask': True},
    ])
    def test_invalid(self, kwargs):
        """Test invalid ownership or masks are rejected"""
        with pytest.raises(ValueError):
            MountPolicy(**kwargs)

    def test_repr(self):
        """Test repr shows the mask in octal"""
        assert 'mask=0022' in repr(MountPolicy(permission_mask=0o022))


class TestValidators:
    """Test cases for validation utilities"""

    def test_device_path(self):
        assert validate_device_path('/dev/sdb1')
        assert not validate_device_path('sdb1')
        assert not validate_device_path('/dev/../etc/passwd')
        assert not validate_device_path('')

    def test_mount_path(self):
        assert validate_mount_path('/mnt/media_rw/ABCD-1234')
        assert not validate_mount_path('mnt/usb')

    def test_sector_count(self):
        assert validate_sector_count(0)
        assert validate_sector_count(2048)
        assert not validate_sector_count(-1)
        assert not validate_sector_count(False)

    def test_parse_octal_mask(self):
        assert parse_octal_mask('0007') == 0o007
        assert parse_octal_mask('022') == 0o022
        with pytest.raises(ValueError):
            parse_octal_mask('999')
        with pytest.raises(ValueError):
            parse_octal_mask('1777')
