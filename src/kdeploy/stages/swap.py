"""Rename-based replacement of one live directory.

    NOT_STARTED --back_up()--> BACKED_UP --commit()--> SWAPPED

In BACKED_UP the live path does not exist: the previous content sits at the
backup path and the new content at the staged path. This is the only window
in which an interrupted install leaves the system without that directory.
Both renames stay within one parent directory, so each is a single
rename(2) on the same filesystem.
"""

from enum import Enum
from pathlib import Path

from kdeploy.core.protocols import FileSystemService, Logger
from kdeploy.errors import FilesystemError


class SwapState(Enum):
    NOT_STARTED = "not-started"
    BACKED_UP = "backed-up"
    SWAPPED = "swapped"


class DirectorySwap:
    """Move live aside to backup, then staged into live."""

    def __init__(self, live: Path, backup: Path, staged: Path,
                 filesystem: FileSystemService, logger: Logger):
        self.live = Path(live)
        self.backup = Path(backup)
        self.staged = Path(staged)
        self.fs = filesystem
        self.log = logger
        self.state = SwapState.NOT_STARTED

    def __repr__(self) -> str:
        return f"DirectorySwap({self.live}, state={self.state.value})"

    def _rename(self, source: Path, destination: Path) -> None:
        self.log.info(f"Renaming: {source} to: {destination}")
        try:
            self.fs.rename(source, destination)
        except OSError as e:
            raise FilesystemError(
                f"Failed to rename {source} to {destination}: {e}\n"
                f"{self.live} swap stopped in state '{self.state.value}'."
            )

    def back_up(self) -> None:
        if self.state is not SwapState.NOT_STARTED:
            raise RuntimeError(f"Cannot back up {self.live}: swap is {self.state.value}")
        self._rename(self.live, self.backup)
        self.state = SwapState.BACKED_UP

    def commit(self) -> None:
        if self.state is not SwapState.BACKED_UP:
            raise RuntimeError(f"Cannot commit {self.staged}: swap is {self.state.value}")
        self._rename(self.staged, self.live)
        self.state = SwapState.SWAPPED

    def run(self) -> None:
        self.back_up()
        self.commit()
