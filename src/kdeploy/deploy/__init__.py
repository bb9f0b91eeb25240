"""
Artifact transport subsystem.

Provides protocol-based bulk-sync primitives used to assemble the staging
tree and push it to the target device:
    - RsyncTransport: rsync locally and over ssh (Raspberry Pi, Linux SBCs)

Public API:
    - Transport: Protocol interface
    - TransferResult: Result type
    - TransferError: Exception
    - RsyncTransport: rsync implementation
"""

from .base import Transport, TransferResult
from .exceptions import TransferError
from .rsync_transport import RsyncTransport

__all__ = [
    # Protocol and types
    "Transport",
    "TransferResult",

    # Exceptions
    "TransferError",

    # Implementations
    "RsyncTransport",
]
