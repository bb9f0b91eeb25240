"""
RsyncTransport - Replicate directory trees with rsync, remotely over SSH.

Targets: Raspberry Pi and other Linux boards reachable with ssh
Strategy: rsync -r for local staging copies, rsync --stats -rz -e ssh for the push
"""

from pathlib import Path
from typing import List

from kdeploy.core.protocols import ProcessExecutor, Logger
from .base import TransferResult
from .exceptions import TransferError


class RsyncTransport:
    """
    Copies files with rsync.

    Requirements: rsync on the build host and target, SSH server on target.
    Authentication is left to ssh (keys or an interactive password prompt).
    """

    def __init__(self, process_executor: ProcessExecutor, logger: Logger, ssh_port: int = 22):
        """
        Initialize rsync transport.

        Args:
            process_executor: Runs the rsync commands
            logger: Progress and error reporting
            ssh_port: SSH port of the target (default: 22)
        """
        self.process = process_executor
        self.log = logger
        self.ssh_port = ssh_port

    def _ssh_shell(self) -> str:
        """Remote shell passed to rsync -e."""
        if self.ssh_port == 22:
            return "ssh"
        return f"ssh -p {self.ssh_port}"

    def sync_local_cmd(self, source: Path, destination: Path, quiet: bool = False) -> List[str]:
        """Build rsync command for a local copy."""
        return ["rsync", "-rq" if quiet else "-r", str(source), str(destination)]

    def push_cmd(self, local_dir: Path, user: str, host: str, remote_dir: str) -> List[str]:
        """Build rsync command for the push to the target."""
        return [
            "rsync",
            "--stats",
            "-rz",
            "-e", self._ssh_shell(),
            str(local_dir),
            f"{user}@{host}:{remote_dir}",
        ]

    def sync_local(self, source: Path, destination: Path, quiet: bool = False) -> None:
        """Copy source into destination directory."""
        cmd = self.sync_local_cmd(source, destination, quiet)
        self.log.debug(' '.join(cmd))

        result = self.process.run(cmd, capture_output=True)
        if result.returncode != 0:
            raise TransferError(
                f"Failed copying {source} into {destination}\n"
                f"Command: {' '.join(cmd)}\n"
                f"Error: {(result.stderr or '').strip() or f'rsync exited with status {result.returncode}'}"
            )

    def push(self, local_dir: Path, user: str, host: str, remote_dir: str) -> TransferResult:
        """
        Push local_dir to remote_dir on host.

        The directory itself (not just its contents) is transferred, so the
        target receives <remote_dir>/<local_dir name>.

        Returns:
            TransferResult with rsync --stats output

        Raises:
            TransferError: If rsync fails
        """
        local_dir = Path(local_dir)
        cmd = self.push_cmd(local_dir, user, host, remote_dir)
        self.log.debug(' '.join(cmd))

        # Not captured: ssh may need to prompt for a password
        result = self.process.run(cmd)
        if result.returncode != 0:
            port_opt = f"-p {self.ssh_port} " if self.ssh_port != 22 else ""
            raise TransferError(
                f"rsync failed to {host}\n"
                f"Command: {' '.join(cmd)}\n"
                f"Exit status: {result.returncode}\n\n"
                f"Troubleshooting:\n"
                f"  1. Verify SSH access: ssh {port_opt}{user}@{host}\n"
                f"  2. Check disk space on device: ssh {port_opt}{user}@{host} df -h\n"
                f"  3. Verify write permissions: ssh {port_opt}{user}@{host} ls -ld {remote_dir}"
            )

        remote_path = f"{remote_dir.rstrip('/')}/{local_dir.name}"
        return TransferResult(
            source=local_dir,
            destination=f"{user}@{host}:{remote_dir}",
            remote_path=remote_path,
            stats=result.stdout or "",
            metadata={"ssh_port": self.ssh_port},
        )
