"""Interfaces of everything a stage touches outside its own memory.

Structural typing: any object with these methods satisfies the protocol, so
tests use Mock(spec=...) or a small subclass of the real implementation.
Every stage can also be pointed at a temporary directory instead of /.
"""

from typing import Protocol, Dict, Any, Optional, List, Union
from pathlib import Path


class Logger(Protocol):
    """Progress and error reporting for the stages.

    Stage banners and every create/copy/rename go through info(); failures
    are reported once, by the command layer, through error().
    """

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def debug(self, message: str) -> None:
        """Shown only in verbose mode (command lines of make and rsync)."""
        ...


class FileSystemService(Protocol):
    """Queries and mutations on the build host or target filesystem.

    Every mutation a stage performs goes through one of these methods, so a
    test double can fail any single step (disk full, permission denied)
    without touching the real filesystem.
    """

    def exists(self, path: Union[str, Path]) -> bool:
        """Check if path exists."""
        ...

    def is_file(self, path: Union[str, Path]) -> bool:
        """Check if path is a regular file."""
        ...

    def is_dir(self, path: Union[str, Path]) -> bool:
        """Check if path is a directory."""
        ...

    def is_executable(self, path: Union[str, Path]) -> bool:
        """Check if path is a file with an execute permission bit set."""
        ...

    def read_bytes(self, path: Union[str, Path]) -> bytes:
        """Read entire file as bytes."""
        ...

    def write_bytes(self, path: Union[str, Path], content: bytes) -> None:
        """Write bytes to file, replacing any existing content."""
        ...

    def mkdir(self, path: Union[str, Path], exist_ok: bool = False) -> None:
        """Create a single directory level."""
        ...

    def copy_file(self, source: Union[str, Path], destination: Union[str, Path]) -> None:
        """Copy a file (contents and mode) to a file or into a directory."""
        ...

    def copy_tree_contents(self, source: Union[str, Path], destination: Union[str, Path]) -> None:
        """Recursively copy the contents of source into an existing destination directory."""
        ...

    def list_dir(self, path: Union[str, Path]) -> List[Path]:
        """Entries of a directory, in no particular order."""
        ...

    def rename(self, source: Union[str, Path], destination: Union[str, Path]) -> None:
        """Rename a file or directory."""
        ...


class ProcessResult(Protocol):
    """Outcome of a finished external command."""

    returncode: int
    stdout: Optional[str]
    stderr: Optional[str]


class ProcessExecutor(Protocol):
    """Runs make, the cross compiler and rsync.

    Output is captured only when asked for; otherwise it goes straight to
    the terminal so make and ssh can prompt the operator.
    """

    def run(
        self,
        cmd: List[str],
        cwd: Optional[Union[str, Path]] = None,
        capture_output: bool = False
    ) -> ProcessResult:
        """Run command to completion and return its result."""
        ...


class TimeProvider(Protocol):
    """Clock for backup timestamps.

    Backup names are derived from current_time(); sleep() waits out a
    timestamp that is already taken.
    """

    def current_time(self) -> float:
        """Get current time in seconds since epoch."""
        ...

    def sleep(self, seconds: float) -> None:
        """Sleep for specified number of seconds."""
        ...


class EnvironmentProvider(Protocol):
    """Source of the configuration environment variables.

    Wraps os.environ and os.getcwd so configuration loading is a pure
    function of what this returns.
    """

    def get_environ(self) -> Dict[str, str]:
        """Get copy of environment variables."""
        ...

    def get_cwd(self) -> str:
        """Get the current working directory."""
        ...


class ToolLocator(Protocol):
    """Looks up executables on PATH.

    The transfer stage refuses to start when rsync is not on PATH.
    """

    def find_tool(self, tool_name: str) -> Optional[str]:
        """Find tool in PATH and return absolute path, or None if not found."""
        ...

    def has_tool(self, tool_name: str) -> bool:
        """Check if tool exists in PATH."""
        ...


class ConfigLoader(Protocol):
    """Parser for the settings file.

    Reads the optional --config settings file.
    """

    def load_yaml(self, path: str) -> Any:
        """Load YAML file and return the parsed document."""
        ...
