"""Validation utilities"""


def validate_device_path(path: str) -> bool:
    """Validate block device path"""
    return bool(path) and path.startswith('/') and '..' not in path.split('/')


def validate_mount_path(path: str) -> bool:
    """Validate mount path"""
    return bool(path) and path.startswith('/') and '..' not in path.split('/')


def validate_permission_mask(mask: int) -> bool:
    """Validate permission mask (applies to files and directories)"""
    return isinstance(mask, int) and not isinstance(mask, bool) and 0 <= mask <= 0o777


def validate_owner_id(value: int) -> bool:
    """Validate uid/gid"""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_sector_count(count: int) -> bool:
    """Validate sector count (0 lets the format tool infer the size)"""
    return isinstance(count, int) and not isinstance(count, bool) and count >= 0


def parse_octal_mask(value: str) -> int:
    """
    Parse an octal permission mask such as '0007' or '022'.

    Raises:
        ValueError: If value is not octal or out of range
    """
    mask = int(value, 8)
    if not validate_permission_mask(mask):
        raise ValueError(f"Permission mask out of range: {value}")
    return mask

