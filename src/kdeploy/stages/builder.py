"""Cross-build a Linux kernel using a saved /proc/config.gz snapshot.

Output goes to <KERNEL_BUILD>/linux-<version>/kernel, modules are installed
into <KERNEL_BUILD>/linux-<version>/modules rather than the host's /lib.
A failed build is recovered by fixing the cause and running again; nothing
built so far is removed.
"""

import gzip
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import List

from kdeploy.core.protocols import FileSystemService, ProcessExecutor, Logger
from kdeploy.errors import BuildToolError, FilesystemError, PreconditionError
from kdeploy.utils.config import BuildConfig
from kdeploy.utils.kernel_source import KernelSource
from kdeploy.utils.paths import BuildPaths

TOTAL_STEPS = 6


@dataclass
class BuildResult:
    version: str
    paths: BuildPaths


class KernelBuilder:
    """Runs the kernel build with dependency injection.

    Args:
        config: Validated build configuration
        filesystem: Filesystem operations abstraction
        process_executor: Runs make and the compiler probe
        logger: Logging abstraction
    """

    def __init__(
        self,
        config: BuildConfig,
        filesystem: FileSystemService,
        process_executor: ProcessExecutor,
        logger: Logger
    ):
        self.config = config
        self.fs = filesystem
        self.process = process_executor
        self.log = logger
        self.source = KernelSource(config.kernel_src, process_executor)

    def validate(self) -> None:
        """Check every precondition. Mutates nothing.

        Raises:
            PreconditionError: On the first failed check
        """
        if not self.source.looks_like_kernel_tree(self.fs):
            raise PreconditionError(f"{self.config.kernel_src} does not seem to contain Linux kernel source.")

        if not self.fs.is_file(self.source.config_snapshot):
            raise PreconditionError(
                f"{self.source.config_snapshot} is missing.\n"
                f"Copy /proc/config.gz from the target Raspberry Pi into the kernel source directory."
            )

        if not self.fs.is_dir(self.config.kernel_build):
            raise PreconditionError(f"{self.config.kernel_build} does not seem to exist as a directory.")

        compiler = f"{self.config.cc_prefix}gcc"
        probe = self.process.run([compiler, '--version'], capture_output=True)
        if probe.returncode != 0:
            raise PreconditionError(f"Unable to execute {compiler}.")

    def _make_dir(self, path: Path, description: str) -> None:
        if self.fs.is_dir(path):
            return
        try:
            self.fs.mkdir(path)
        except OSError as e:
            raise FilesystemError(f"Failed to create {description} {path}: {e}")

    def _common_opts(self, paths: BuildPaths) -> List[str]:
        return [
            f"O={paths.kernel_dir}",
            f"ARCH={self.config.arch}",
            f"CROSS_COMPILE={self.config.cc_prefix}",
        ]

    def _make(self, args: List[str], failure: str) -> None:
        """Run make in the source tree; output goes straight to the terminal."""
        cmd = ['make'] + args
        self.log.debug(' '.join(cmd))
        result = self.process.run(cmd, cwd=self.config.kernel_src)
        if result.returncode != 0:
            raise BuildToolError(f"Failed {failure} (make exited with status {result.returncode})")

    def prepare_output_dirs(self, version: str) -> BuildPaths:
        """Create linux-<version>/{kernel,modules}, skipping existing ones."""
        paths = BuildPaths.for_version(self.config.kernel_build, version, self.config.arch)
        self._make_dir(paths.base, "build output directory")
        self._make_dir(paths.kernel_dir, "kernel build output directory")
        self._make_dir(paths.modules_dir, "modules staging directory")
        return paths

    def expand_config(self, paths: BuildPaths) -> None:
        """Decompress config.gz into the build directory's .config."""
        snapshot = self.source.config_snapshot
        try:
            content = gzip.decompress(self.fs.read_bytes(snapshot))
            self.fs.write_bytes(paths.config_file, content)
        except (OSError, EOFError, zlib.error) as e:
            raise BuildToolError(f"Failed to expand {snapshot} to {paths.config_file}: {e}")

    def run(self) -> BuildResult:
        """Validate, then build kernel and modules.

        Returns:
            BuildResult with the kernel version and output paths

        Raises:
            PreconditionError: Invalid inputs (nothing touched)
            FilesystemError: Output directory could not be created
            BuildToolError: A make step failed
        """
        self.validate()

        version = self.source.version()
        paths = self.prepare_output_dirs(version)

        self.log.info(f"Building Linux kernel version {version}")
        self.log.info(f"    From source in: {self.config.kernel_src}")
        self.log.info(f"To build output in: {paths.kernel_dir}")
        self.log.info(f" Modules staged in: {paths.modules_dir}")

        common = self._common_opts(paths)

        self.log.info(f"\n[1/{TOTAL_STEPS}] Cleaning build directory...")
        self._make([f"O={paths.kernel_dir}", 'mrproper'], "cleaning build directory with make ... mrproper")

        self.log.info(f"\n[2/{TOTAL_STEPS}] Expanding {self.source.config_snapshot} into {paths.config_file} ...")
        self.expand_config(paths)

        self.log.info(f"\n[3/{TOTAL_STEPS}] Configuring build with 'old' {paths.config_file} .")
        self.log.info("You may be queried about new configuration options...")
        self._make(common + ['oldconfig'], "setting build configuration make ... oldconfig")

        self.log.info(f"\n[4/{TOTAL_STEPS}] Building kernel...")
        self._make(common + [f"-j{self.config.jobs}"], "building kernel make ...")

        self.log.info(f"\n[5/{TOTAL_STEPS}] Building modules...")
        self._make(common + ['modules'], "building make ... modules")

        self.log.info(f"\n[6/{TOTAL_STEPS}] Installing modules to {paths.modules_dir}...")
        self._make(
            common + [f"INSTALL_MOD_PATH={paths.modules_dir}", 'modules_install'],
            "installing modules make ... modules_install"
        )

        self.log.info(f"\n✓ Kernel {version} built: {paths.image_file}")
        return BuildResult(version=version, paths=paths)
