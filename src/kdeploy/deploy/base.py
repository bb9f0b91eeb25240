"""
Transport Protocol - Abstract interface for bulk file replication.

The transfer stage only needs "recursively replicate a local tree to a path,
locally or on a remote host, and report success or failure". RsyncTransport
is the production implementation.
"""

from typing import Protocol, runtime_checkable
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class TransferResult:
    """
    Result of a successful push to the target.

    Attributes:
        source: Local directory that was pushed
        destination: user@host:path it was pushed to
        remote_path: Directory created on the target (destination dir + source name)
        stats: Transfer statistics reported by the transport, if any
    """
    source: Path
    destination: str
    remote_path: str
    stats: str = ""
    metadata: dict = field(default_factory=dict)


@runtime_checkable
class Transport(Protocol):
    """
    Interface for bulk-sync primitives.

    Implementations:
        - RsyncTransport: rsync locally and over ssh
    """

    def sync_local(self, source: Path, destination: Path, quiet: bool = False) -> None:
        """
        Recursively copy source (file or directory) into destination directory.

        Raises:
            TransferError: If the copy fails
        """
        ...

    def push(self, local_dir: Path, user: str, host: str, remote_dir: str) -> TransferResult:
        """
        Recursively replicate local_dir into remote_dir on host.

        Raises:
            TransferError: If the transfer fails
        """
        ...
