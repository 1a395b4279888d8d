"""Kernel-facing helpers: mount(2), /proc/filesystems and /proc/mounts"""

import ctypes
import ctypes.util
import os
from typing import Any, Dict

__all__ = [
    'MS_RDONLY', 'MS_NOSUID', 'MS_NODEV', 'MS_NOEXEC', 'MS_REMOUNT',
    'MS_DIRSYNC', 'MS_NOATIME', 'mount', 'is_filesystem_supported',
    'get_mount_info',
]

# see linux/mount.h
MS_RDONLY = 1
MS_NOSUID = 2
MS_NODEV = 4
MS_NOEXEC = 8
MS_REMOUNT = 32
MS_DIRSYNC = 128
MS_NOATIME = 1024

_libc = None


def _get_libc() -> ctypes.CDLL:
    global _libc
    if _libc is None:
        _libc = ctypes.CDLL(ctypes.util.find_library('c') or 'libc.so.6', use_errno=True)
        _libc.mount.argtypes = (
            ctypes.c_char_p, ctypes.c_char_p, ctypes.c_char_p,
            ctypes.c_ulong, ctypes.c_void_p,
        )
        _libc.mount.restype = ctypes.c_int
    return _libc


def mount(source: str, target: str, fstype: str, flags: int, data: str):
    """Call mount(2).

    :raises OSError: with the errno reported by the kernel.
    """
    rc = _get_libc().mount(
        os.fsencode(source),
        os.fsencode(target),
        fstype.encode(),
        flags,
        ctypes.c_char_p(data.encode()),
    )
    if rc != 0:
        err = ctypes.get_errno()
        raise OSError(err, os.strerror(err), source)


def is_filesystem_supported(fstype: str, proc_filesystems: str = '/proc/filesystems') -> bool:
    """Return whether the running kernel lists `fstype` in `proc_filesystems`."""
    with open(proc_filesystems, 'r') as f:
        for line in f:
            parts = line.split()
            if parts and parts[-1] == fstype:
                return True
    return False


def get_mount_info(mount_path: str, proc_mounts: str = '/proc/mounts') -> Dict[str, Any]:
    """Return the `proc_mounts` entry for `mount_path`, or `{}` if not mounted."""
    mount_path = os.path.normpath(mount_path)
    with open(proc_mounts, 'r') as f:
        for line in f:
            parts = line.split()
            if len(parts) >= 4 and parts[1] == mount_path:
                return {
                    'device': parts[0],
                    'mount_point': parts[1],
                    'fs_type': parts[2],
                    'options': parts[3]
                }
    return {}
