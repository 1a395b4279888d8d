"""Custom exceptions for fatvol

Every failure carries the POSIX error code it maps to in ``errno`` so the
caller gets the outcome and the code through a single value.
"""

import errno as errno_codes


class FatVolException(Exception):
    """Base exception for fatvol"""

    default_errno = errno_codes.EIO

    def __init__(self, message: str = '', errno: int = None):
        super().__init__(message)
        self.errno = self.default_errno if errno is None else errno


class LaunchFailure(FatVolException):
    """Raised when an external process or forked task could not be started"""
    pass


class ToolFailure(FatVolException):
    """Raised when the check tool ran but reported a failure condition"""

    def __init__(self, message: str, code: int, errno: int = None):
        super().__init__(message, errno)
        self.code = code


class RecheckExhausted(FatVolException):
    """Raised when the filesystem stays dirty past the recheck budget"""
    pass


class OperationTimeout(FatVolException):
    """Raised when a check or mount exceeds its time budget"""

    default_errno = errno_codes.ETIMEDOUT


class MountFailure(FatVolException):
    """Raised when the mount call itself fails"""
    pass


class ReadOnlyFallbackFailure(MountFailure):
    """Raised when the read-only retry of a mount fails as well"""
    pass


class FormatFailure(FatVolException):
    """Raised when formatting fails"""

    def __init__(self, message: str, code: int = None):
        super().__init__(message)
        self.code = code


class DirectoryCreateFailure(FatVolException):
    """Raised when LOST.DIR cannot be created (never escapes a mount)"""
    pass


class ConfigurationException(FatVolException):
    """Exception raised for configuration errors"""

    default_errno = errno_codes.EINVAL
