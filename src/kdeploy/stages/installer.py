"""Install a received kernel, modules and firmware on a running Raspberry Pi.

Install order:
    1. pick a timestamp no existing backup or temporary directory uses
    2. copy live /boot files into /boot/backup-<ts>
    3. copy new /opt/vc and /lib/firmware into <dir>-<ts>.tmp
    4. copy new /lib/modules into /lib/modules-<ts>.tmp
    5. overwrite live /boot files (zImage becomes kernel.img)
    6. for /opt/vc, /lib/firmware, /lib/modules: rename live to <dir>-<ts>,
       rename <dir>-<ts>.tmp to live

Until step 5 no live file has changed. Large directories are only touched by
the renames in step 6.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from kdeploy.core.protocols import FileSystemService, TimeProvider, Logger
from kdeploy.errors import FilesystemError, PreconditionError
from kdeploy.stages.swap import DirectorySwap
from kdeploy.utils.config import InstallConfig
from kdeploy.utils.paths import (
    BOOT_FIRMWARE_FILES,
    INSTALLED_KERNEL_NAME,
    ArtifactTree,
    LiveSystem,
    boot_backup_dir,
    dir_backup_path,
    dir_staging_path,
    format_timestamp,
)

# Seconds to wait before regenerating a colliding timestamp
COLLISION_WAIT = 1
MAX_TIMESTAMP_ATTEMPTS = 10


@dataclass
class InstallResult:
    timestamp: str
    boot_backup: Path
    swaps: List[DirectorySwap] = field(default_factory=list)


class KernelInstaller:
    """Validates an artifact tree and swaps it into the live system.

    Args:
        config: Installer configuration (source directory, target root)
        filesystem: Filesystem operations abstraction
        time_provider: Clock used for backup timestamps
        logger: Logging abstraction
    """

    def __init__(
        self,
        config: InstallConfig,
        filesystem: FileSystemService,
        time_provider: TimeProvider,
        logger: Logger
    ):
        self.config = config
        self.fs = filesystem
        self.time = time_provider
        self.log = logger
        self.tree = ArtifactTree(config.source_dir)
        self.live = LiveSystem(config.root)

    # -- validation ---------------------------------------------------------

    def validate(self) -> ArtifactTree:
        """Check the received tree and the live system. Mutates nothing.

        Raises:
            PreconditionError: On the first failed check
        """
        tree = self.tree
        if not self.fs.is_dir(tree.source_dir):
            raise PreconditionError(f"File installation directory {tree.source_dir} does not exist.")

        if not self.fs.is_dir(tree.boot):
            raise PreconditionError(f"{tree.source_dir} does not have a boot subdirectory.")
        if not self.fs.is_dir(tree.lib):
            raise PreconditionError(f"{tree.source_dir} does not have a lib subdirectory.")
        if not self.fs.is_dir(tree.opt):
            raise PreconditionError(f"{tree.source_dir} does not have an opt subdirectory.")

        for name in BOOT_FIRMWARE_FILES:
            if not self.fs.is_file(tree.boot_file(name)):
                raise PreconditionError(f"{tree.boot_file(name)} is missing.")
        if not self.fs.is_executable(tree.kernel_image):
            raise PreconditionError(f"Compressed image file {tree.kernel_image} is missing or not executable.")

        if not self.fs.is_dir(tree.lib_firmware):
            raise PreconditionError(f"{tree.lib_firmware} directory is missing.")
        if not self.fs.is_dir(tree.lib_modules):
            raise PreconditionError(f"{tree.lib_modules} directory is missing.")
        if not self.fs.is_dir(tree.vc):
            raise PreconditionError(f"{tree.vc} (Raspberry Pi VideoCore files) directory is missing.")

        # The live side must be complete too, or the backup step would fail
        # after the first copies.
        for name in self.live.boot_files:
            if not self.fs.is_file(self.live.boot / name):
                raise PreconditionError(f"Installed boot file {self.live.boot / name} is missing.")
        for live_dir in self.live.large_dirs:
            if not self.fs.is_dir(live_dir):
                raise PreconditionError(f"Installed directory {live_dir} is missing.")

        return tree

    # -- timestamp ----------------------------------------------------------

    def _backup_targets(self, timestamp: str) -> List[Path]:
        targets = [boot_backup_dir(self.live.boot, timestamp)]
        for live_dir in self.live.large_dirs:
            targets.append(dir_backup_path(live_dir, timestamp))
            targets.append(dir_staging_path(live_dir, timestamp))
        return targets

    def choose_timestamp(self) -> str:
        """Return a timestamp for which no backup or temporary path exists yet.

        Two installs in the same second would share a stamp, so wait and
        regenerate rather than reuse it.

        Raises:
            FilesystemError: If every attempt collided
        """
        for _ in range(MAX_TIMESTAMP_ATTEMPTS):
            timestamp = format_timestamp(self.time.current_time())
            taken = [p for p in self._backup_targets(timestamp) if self.fs.exists(p)]
            if not taken:
                return timestamp
            self.log.warning(f"Backup path {taken[0]} exists, waiting for a new timestamp")
            self.time.sleep(COLLISION_WAIT)

        raise FilesystemError(
            f"Could not find an unused backup timestamp after {MAX_TIMESTAMP_ATTEMPTS} attempts."
        )

    # -- mutations ----------------------------------------------------------

    def _make_dir(self, path: Path) -> None:
        self.log.info(f"Creating directory: {path}")
        try:
            self.fs.mkdir(path)
        except OSError as e:
            raise FilesystemError(f"Failed to create directory {path}: {e}\nDid you forget sudo?")

    def _copy_file(self, source: Path, destination: Path) -> None:
        self.log.info(f"Copying: {source} to: {destination}")
        try:
            self.fs.copy_file(source, destination)
        except OSError as e:
            raise FilesystemError(f"Failed to copy {source} to {destination}: {e}")

    def _copy_subtree(self, source: Path, destination: Path) -> None:
        self.log.info(f"Copying: {source}/* into: {destination}")
        try:
            self.fs.copy_tree_contents(source, destination)
        except OSError as e:
            raise FilesystemError(f"Failed copying {source}/* into {destination}: {e}")

    def back_up_boot(self, timestamp: str) -> Path:
        backup_dir = boot_backup_dir(self.live.boot, timestamp)
        self._make_dir(backup_dir)
        for name in self.live.boot_files:
            self._copy_file(self.live.boot / name, backup_dir)
        return backup_dir

    def stage_directory(self, incoming: Path, live_dir: Path, timestamp: str) -> DirectorySwap:
        """Copy incoming into <live>-<ts>.tmp and return the pending swap."""
        staged = dir_staging_path(live_dir, timestamp)
        self._make_dir(staged)
        self._copy_subtree(incoming, staged)
        return DirectorySwap(
            live=live_dir,
            backup=dir_backup_path(live_dir, timestamp),
            staged=staged,
            filesystem=self.fs,
            logger=self.log,
        )

    def install_boot_files(self) -> None:
        for name in BOOT_FIRMWARE_FILES:
            self._copy_file(self.tree.boot_file(name), self.live.boot / name)
        self._copy_file(self.tree.kernel_image, self.live.boot / INSTALLED_KERNEL_NAME)

    def run(self) -> InstallResult:
        """Validate, back up and install.

        Raises:
            PreconditionError: Invalid tree or live system (nothing touched)
            FilesystemError: A create, copy or rename failed
        """
        self.validate()

        timestamp = self.choose_timestamp()
        self.log.info(f"Installing {self.tree.source_dir} with backup timestamp {timestamp}")

        self.log.info("\n[1/4] Backing up boot files...")
        boot_backup = self.back_up_boot(timestamp)

        self.log.info("\n[2/4] Copying new VideoCore, firmware and module files...")
        swaps = [
            self.stage_directory(self.tree.vc, self.live.opt_vc, timestamp),
            self.stage_directory(self.tree.lib_firmware, self.live.lib_firmware, timestamp),
            self.stage_directory(self.tree.lib_modules, self.live.lib_modules, timestamp),
        ]

        self.log.info("\n[3/4] Installing boot files...")
        self.install_boot_files()

        self.log.info("\n[4/4] Swapping in new directories...")
        for swap in swaps:
            swap.run()

        self.log.info("Done.")
        return InstallResult(timestamp=timestamp, boot_backup=boot_backup, swaps=swaps)
