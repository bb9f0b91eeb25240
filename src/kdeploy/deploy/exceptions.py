"""
Transport exceptions.

Custom exceptions for transfer failures with actionable error messages.
"""

from kdeploy.errors import FilesystemError


class TransferError(FilesystemError):
    """
    Raised when an rsync copy fails.

    Examples:
        - Local staging copy failed (disk full, permissions)
        - SSH connection to the target failed
        - Remote directory not writable
    """
    pass
