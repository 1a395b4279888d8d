"""vfat driver implementation"""

import errno
import os
from typing import List, NamedTuple, Optional

from fatvol.config import FatVolConfig
from fatvol.drivers.base import BaseFilesystemDriver
from fatvol.exceptions import (
    DirectoryCreateFailure, FormatFailure, LaunchFailure, MountFailure,
    OperationTimeout, ReadOnlyFallbackFailure, RecheckExhausted, ToolFailure
)
from fatvol.models import MountPolicy
from fatvol.timeoffset import current_utc_offset_minutes
from fatvol.utils import kernel
from fatvol.utils.logger import get_logger
from fatvol.utils.process import ProcessLaunchError, ProcessRunner, ProcessTimeoutError
from fatvol.utils.validators import validate_sector_count

LOG = get_logger(__name__)

# Exit codes of the check tool
FSCK_OK = 0
FSCK_FAILED = 1
FSCK_NOT_FAT = 2
FSCK_MODIFIED = 4
FSCK_NO_FS = 8

# Extra check passes allowed while the tool keeps modifying the filesystem
MAX_RECHECKS = 3

LOST_DIR_NAME = 'LOST.DIR'
LOST_DIR_MODE = 0o755

BASE_MOUNT_FLAGS = kernel.MS_NODEV | kernel.MS_NOSUID | kernel.MS_DIRSYNC | kernel.MS_NOATIME


class MountOutcome(NamedTuple):
    """Value returned by the forked mount task"""
    error: int
    read_only_retried: bool


def build_mount_options(owner_uid: int, owner_gid: int, permission_mask: int,
                        utc_offset: int) -> str:
    """
    Build the vfat mount data string.

    The mask is rendered in octal with a leading zero and used for both
    fmask and dmask.
    """
    return (
        f"utf8,uid={owner_uid},gid={owner_gid},"
        f"fmask=0{permission_mask:o},dmask=0{permission_mask:o},"
        f"shortname=mixed,time_offset={utc_offset}"
    )


def build_mount_flags(policy: MountPolicy) -> int:
    """Compute mount(2) flags for a policy"""
    flags = BASE_MOUNT_FLAGS
    if not policy.executable:
        flags |= kernel.MS_NOEXEC
    if policy.read_only:
        flags |= kernel.MS_RDONLY
    if policy.remount:
        flags |= kernel.MS_REMOUNT
    return flags


class VfatDriver(BaseFilesystemDriver):
    """Driver for checking, mounting and formatting FAT volumes."""

    fs_type = 'vfat'

    def __init__(self, config: Optional[FatVolConfig] = None,
                 runner: Optional[ProcessRunner] = None):
        self.config = config or FatVolConfig()
        self.runner = runner or ProcessRunner()

    def is_supported(self) -> bool:
        """
        Check that both tools are executable and the kernel supports vfat.

        Returns:
            True only if all three conditions hold
        """
        for tool in (self.config.mkfs_path, self.config.fsck_path):
            if not os.access(tool, os.X_OK):
                LOG.debug(f"{tool} is missing or not executable")
                return False

        try:
            supported = kernel.is_filesystem_supported(self.fs_type, self.config.proc_filesystems)
        except OSError as e:
            LOG.warning(f"Unable to read {self.config.proc_filesystems}: {e}")
            return False

        if not supported:
            LOG.debug(f"Kernel does not support {self.fs_type}")
        return supported

    def build_check_command(self, source: str) -> List[str]:
        """Build the check command, prefixed with the untrusted security context"""
        cmd = []
        # FAT devices are always untrusted
        if self.config.fsck_context:
            cmd += [self.config.runcon_path, self.config.fsck_context]
        cmd += [self.config.fsck_path, '-p', '-f', '-y', source]
        return cmd

    def check(self, source: str):
        """
        Check and repair the filesystem on source.

        Rechecks while the tool reports it modified the filesystem, up to
        MAX_RECHECKS extra passes.

        Args:
            source: Block device path

        Raises:
            LaunchFailure: the check tool could not be started
            OperationTimeout: a pass exceeded the configured timeout
            ToolFailure: the tool reported an error (see .code)
            RecheckExhausted: the filesystem stayed dirty
        """
        cmd = self.build_check_command(source)
        LOG.info(f"Checking filesystem on {source}")

        for check_pass in range(1, MAX_RECHECKS + 2):
            try:
                result = self.runner.execute(cmd, timeout=self.config.fsck_timeout)
            except ProcessLaunchError as e:
                LOG.error(f"Filesystem check failed due to fork error: {e}")
                raise LaunchFailure(f"Unable to run filesystem check on {source}: {e}") from e
            except ProcessTimeoutError as e:
                LOG.error(f"Filesystem check timed out on {source}")
                raise OperationTimeout(f"Filesystem check timed out on {source}") from e

            rc = result.returncode

            if rc == FSCK_OK:
                LOG.info("Filesystem check completed OK")
                return

            if rc == FSCK_MODIFIED:
                if check_pass <= MAX_RECHECKS:
                    LOG.warning(f"Filesystem modified - rechecking (pass {check_pass + 1})")
                    continue
                LOG.error("Failing check after too many rechecks")
                raise RecheckExhausted(f"Filesystem on {source} still dirty after {check_pass} passes")

            if rc == FSCK_FAILED:
                LOG.error("Failed to check filesystem")
                raise ToolFailure(f"Filesystem check could not complete on {source}", code=rc)

            if rc == FSCK_NOT_FAT:
                LOG.error("Filesystem check failed (not a FAT filesystem)")
                raise ToolFailure(f"{source} is not a FAT filesystem", code=rc,
                                  errno=errno.ENODATA)

            if rc == FSCK_NO_FS:
                LOG.error("Filesystem check failed (no filesystem)")
                raise ToolFailure(f"No filesystem on {source}", code=rc, errno=errno.ENODATA)

            LOG.error(f"Filesystem check failed (unknown exit code {rc})")
            raise ToolFailure(f"Filesystem check on {source} exited with {rc}", code=rc)

    def mount(self, source: str, target: str, policy: MountPolicy):
        """
        Mount source at target according to policy.

        The mount(2) call runs in a forked child bounded by mount_timeout,
        since faulty media can block it indefinitely.

        Args:
            source: Block device path
            target: Mount point
            policy: Mount policy

        Raises:
            LaunchFailure: the mount task could not be started
            OperationTimeout: the mount task was killed at the deadline
            MountFailure: mount(2) failed (see .errno)
            ReadOnlyFallbackFailure: the read-only retry failed as well
        """
        options = build_mount_options(
            policy.owner_uid,
            policy.owner_gid,
            policy.permission_mask,
            current_utc_offset_minutes()
        )
        flags = build_mount_flags(policy)

        LOG.info(f"Mounting {source} at {target} (flags={flags:#x}, options={options})")

        try:
            outcome = self.runner.run_with_timeout(
                self._do_mount,
                (source, target, flags, options, policy.create_lost_dir),
                timeout=self.config.mount_timeout
            )
        except ProcessLaunchError as e:
            LOG.error(f"Mount of {source} failed due to fork error: {e}")
            raise LaunchFailure(f"Unable to run mount of {source}: {e}") from e
        except ProcessTimeoutError as e:
            LOG.error(f"Mount of {source} timed out")
            raise OperationTimeout(f"Mount of {source} at {target} timed out") from e

        if outcome.error:
            message = f"Failed to mount {source} at {target}: {os.strerror(outcome.error)}"
            LOG.error(message)
            if outcome.read_only_retried:
                raise ReadOnlyFallbackFailure(message, errno=outcome.error)
            raise MountFailure(message, errno=outcome.error)

        if outcome.read_only_retried:
            LOG.warning(f"{source} mounted read-only at {target}")
        else:
            LOG.info(f"Successfully mounted {source} at {target}")

    def _do_mount(self, source: str, target: str, flags: int, options: str,
                  create_lost_dir: bool) -> MountOutcome:
        """Body of the mount task; returns an errno instead of raising"""
        read_only_retried = False

        try:
            kernel.mount(source, target, self.fs_type, flags, options)
        except OSError as e:
            if e.errno != errno.EROFS:
                return MountOutcome(e.errno or errno.EIO, False)

            LOG.warning(f"{source} appears to be a read only filesystem - retrying mount RO")
            read_only_retried = True
            try:
                kernel.mount(source, target, self.fs_type, flags | kernel.MS_RDONLY, options)
            except OSError as retry_error:
                return MountOutcome(retry_error.errno or errno.EIO, True)

        if create_lost_dir:
            try:
                self._ensure_lost_dir(target)
            except DirectoryCreateFailure as e:
                LOG.error(str(e))

        return MountOutcome(0, read_only_retried)

    @staticmethod
    def _ensure_lost_dir(target: str) -> bool:
        """
        Create LOST.DIR at the root of target if it is missing.

        The check tool does not create it, and lost cluster chains need
        somewhere to go.

        Returns:
            True if the directory was created, False if it already existed

        Raises:
            DirectoryCreateFailure: mkdir failed
        """
        lost_path = os.path.join(target, LOST_DIR_NAME)
        if os.path.exists(lost_path):
            return False

        try:
            os.mkdir(lost_path, LOST_DIR_MODE)
        except OSError as e:
            raise DirectoryCreateFailure(f"Unable to create {lost_path}: {e}",
                                         errno=e.errno) from e

        LOG.info(f"Created {lost_path}")
        return True

    def build_format_command(self, source: str, sector_count: int = 0) -> List[str]:
        """Build the format command; -s is only passed for a non-zero sector count"""
        if not validate_sector_count(sector_count):
            raise ValueError(f"Invalid sector count: {sector_count!r}")

        cmd = [self.config.mkfs_path, '-O', 'android', '-A']
        if sector_count:
            cmd += ['-s', str(sector_count)]
        cmd.append(source)
        return cmd

    def format(self, source: str, sector_count: int = 0):
        """
        Format source with a fresh FAT filesystem.

        Runs without a timeout or security context: formatting is operator
        initiated on a known device.

        Args:
            source: Block device path
            sector_count: Size override in sectors (0 lets the tool decide)

        Raises:
            FormatFailure: the tool could not be started or exited non-zero
        """
        cmd = self.build_format_command(source, sector_count)
        LOG.info(f"Formatting {source}")

        try:
            result = self.runner.execute(cmd)
        except ProcessLaunchError as e:
            LOG.error(f"Filesystem format failed due to launch error: {e}")
            raise FormatFailure(f"Unable to run format of {source}: {e}") from e

        if result.returncode != 0:
            LOG.error(f"Format failed (unknown exit code {result.returncode})")
            raise FormatFailure(f"Format of {source} exited with {result.returncode}",
                                code=result.returncode)

        LOG.info("Filesystem formatted OK")
