"""Production implementations of the protocols in kdeploy.core.protocols.

The commands construct these when no replacement is injected. Tests pass
mocks, or subclass RealFileSystemService to fail a single operation.
"""

import os
import shutil
import subprocess
import sys
import time
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, List, Union


class ConsoleLogger:
    """Prints progress to stdout and errors to stderr.

    Debug lines appear only with --verbose.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def info(self, message: str) -> None:
        print(message)

    def warning(self, message: str) -> None:
        print(f"Warning: {message}")

    def error(self, message: str) -> None:
        """Print error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def debug(self, message: str) -> None:
        """Print debug message to stdout when verbose."""
        if self.verbose:
            print(f"Debug: {message}")


class RealFileSystemService:
    """Production filesystem service using real pathlib, os and shutil operations."""

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).exists()

    def is_file(self, path: Union[str, Path]) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: Union[str, Path]) -> bool:
        return Path(path).is_dir()

    def is_executable(self, path: Union[str, Path]) -> bool:
        return Path(path).is_file() and os.access(path, os.X_OK)

    def read_bytes(self, path: Union[str, Path]) -> bytes:
        return Path(path).read_bytes()

    def write_bytes(self, path: Union[str, Path], content: bytes) -> None:
        Path(path).write_bytes(content)

    def mkdir(self, path: Union[str, Path], exist_ok: bool = False) -> None:
        Path(path).mkdir(exist_ok=exist_ok)

    def copy_file(self, source: Union[str, Path], destination: Union[str, Path]) -> None:
        shutil.copy2(source, destination)

    def copy_tree_contents(self, source: Union[str, Path], destination: Union[str, Path]) -> None:
        # Module trees carry build/source symlinks that must stay links
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)

    def list_dir(self, path: Union[str, Path]) -> List[Path]:
        return list(Path(path).iterdir())

    def rename(self, source: Union[str, Path], destination: Union[str, Path]) -> None:
        os.rename(source, destination)


@dataclass
class CompletedCommand:
    """Concrete ProcessResult returned by SubprocessExecutor."""
    returncode: int
    stdout: Optional[str] = None
    stderr: Optional[str] = None


class SubprocessExecutor:
    """Production process executor using real subprocess.run."""

    def run(
        self,
        cmd: List[str],
        cwd: Optional[Union[str, Path]] = None,
        capture_output: bool = False
    ) -> CompletedCommand:
        """Run command to completion.

        A command that cannot be started (missing binary, not executable)
        is reported as returncode 127, the shell's "command not found".
        """
        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=capture_output,
                text=True
            )
        except OSError as e:
            return CompletedCommand(returncode=127, stdout="", stderr=str(e))

        return CompletedCommand(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr
        )


class SystemTimeProvider:
    """Wall clock used for backup timestamps."""

    def current_time(self) -> float:
        return time.time()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class SystemEnvironmentProvider:
    """Production environment provider using real os module."""

    def get_environ(self) -> Dict[str, str]:
        return dict(os.environ)

    def get_cwd(self) -> str:
        return os.getcwd()


class SystemToolLocator:
    """PATH lookup via shutil.which."""

    def find_tool(self, tool_name: str) -> Optional[str]:
        return shutil.which(tool_name)

    def has_tool(self, tool_name: str) -> bool:
        return self.find_tool(tool_name) is not None


class YamlConfigLoader:
    """Reads the --config settings file with yaml.safe_load."""

    def __init__(self, filesystem: 'RealFileSystemService'):
        """Files are read through the injected filesystem service."""
        self.fs = filesystem

    def load_yaml(self, path: str) -> Any:
        """Load YAML file and return the parsed document."""
        content = self.fs.read_bytes(path)
        return yaml.safe_load(content)
