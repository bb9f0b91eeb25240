"""Stage cross-built kernel, modules and firmware, then push them to the target.

The staging tree <STAGING_DIR>/<version>/{boot,lib,opt} is kept after the
run so a failed push can be retried or inspected.
"""

from dataclasses import dataclass
from pathlib import Path

from kdeploy.core.protocols import FileSystemService, ProcessExecutor, ToolLocator, Logger
from kdeploy.deploy.base import Transport, TransferResult
from kdeploy.errors import BuildToolError, FilesystemError, PreconditionError
from kdeploy.utils.config import TransferConfig
from kdeploy.utils.kernel_source import KernelSource
from kdeploy.utils.paths import BOOT_FIRMWARE_FILES, BuildPaths, StagingPaths


@dataclass
class StagePlan:
    """Everything derived during validation, before anything is written."""
    version: str
    build: BuildPaths
    staging: StagingPaths
    remote_base: str


class KernelStager:
    """Assembles the artifact tree locally and pushes it with a Transport.

    Args:
        config: Validated transfer configuration
        filesystem: Filesystem operations abstraction
        process_executor: Runs make kernelversion
        tool_locator: Checks rsync is installed
        transport: Bulk-sync primitive for staging copies and the push
        logger: Logging abstraction
    """

    def __init__(
        self,
        config: TransferConfig,
        filesystem: FileSystemService,
        process_executor: ProcessExecutor,
        tool_locator: ToolLocator,
        transport: Transport,
        logger: Logger
    ):
        self.config = config
        self.fs = filesystem
        self.tools = tool_locator
        self.transport = transport
        self.log = logger
        self.source = KernelSource(config.kernel_src, process_executor)

    @property
    def firmware_boot(self) -> Path:
        return self.config.firmware_dir / 'boot'

    @property
    def firmware_opt(self) -> Path:
        return self.config.firmware_dir / 'opt'

    def _check_inputs(self) -> None:
        if not self.source.looks_like_kernel_tree(self.fs):
            raise PreconditionError(f"{self.config.kernel_src} does not seem to contain Linux kernel source.")

        if not self.fs.is_dir(self.config.staging_dir):
            raise PreconditionError(f"{self.config.staging_dir} does not exist.")

        if not self.fs.is_dir(self.firmware_boot):
            raise PreconditionError(
                f"{self.config.firmware_dir} does not seem to contain Raspberry Pi firmware files."
            )

        for name in BOOT_FIRMWARE_FILES:
            if not self.fs.is_file(self.firmware_boot / name):
                raise PreconditionError(f"{self.firmware_boot / name} is missing.")

        if not self.fs.is_dir(self.firmware_opt / 'vc'):
            raise PreconditionError(f"{self.firmware_opt / 'vc'} (Raspberry Pi VideoCore files) missing.")

        if not self.config.target.remote_dir.startswith('/'):
            raise PreconditionError(
                f"TGT_DIR {self.config.target.remote_dir} must be an absolute directory on the target."
            )

        if not self.tools.has_tool('rsync'):
            raise PreconditionError("rsync not found in PATH (required for staging and transfer).")

    def validate(self) -> StagePlan:
        """Check inputs and the build output for the source's version. Mutates nothing.

        Raises:
            PreconditionError: On the first failed check
        """
        self._check_inputs()

        try:
            version = self.source.version()
        except BuildToolError as e:
            raise PreconditionError(str(e))

        build = BuildPaths.for_version(self.config.kernel_build, version, self.config.arch)
        if not self.fs.is_dir(build.base):
            raise PreconditionError(f"{build.base} does not seem to exist as a directory.")

        if not self.fs.is_executable(build.image_file):
            raise PreconditionError(f"Compressed image file {build.image_file} is missing.")

        if not self.fs.is_dir(build.modules_lib_dir):
            raise PreconditionError(f"Module lib directory {build.modules_lib_dir} is missing.")
        if not self.fs.list_dir(build.modules_lib_dir):
            raise PreconditionError(
                f"Module lib directory {build.modules_lib_dir} is empty. Did make modules_install run?"
            )

        remote_base = f"{self.config.target.remote_dir.rstrip('/')}/{version}"
        return StagePlan(
            version=version,
            build=build,
            staging=StagingPaths.for_version(self.config.staging_dir, version),
            remote_base=remote_base,
        )

    def _make_dir(self, path: Path, description: str) -> None:
        if self.fs.is_dir(path):
            return
        try:
            self.fs.mkdir(path)
        except OSError as e:
            raise FilesystemError(f"Failed to create transfer {description} {path}: {e}")

    def prepare_staging_dirs(self, staging: StagingPaths) -> None:
        """Create <version>/{boot,lib,opt} under the staging directory, skipping existing ones."""
        self._make_dir(staging.base, "staging base directory")
        self._make_dir(staging.boot, "boot files staging directory")
        self._make_dir(staging.lib, "lib files staging directory")
        self._make_dir(staging.opt, "opt files staging directory")

    def stage(self, plan: StagePlan) -> None:
        """Copy kernel image, boot blobs, modules and VideoCore files into staging.

        Each copy fails on its own; earlier copies are left in place.
        """
        self.transport.sync_local(plan.build.image_file, plan.staging.boot)
        for name in BOOT_FIRMWARE_FILES:
            self.transport.sync_local(self.firmware_boot / name, plan.staging.boot)

        self.transport.sync_local(plan.build.modules_lib_dir, plan.staging.base, quiet=True)
        self.transport.sync_local(self.firmware_opt, plan.staging.base)

    def _announce(self, plan: StagePlan) -> None:
        target = self.config.target
        self.log.info(f"Transferring Raspberry Pi boot & Linux kernel version {plan.version} files.")
        self.log.info(f"       From: build output in: {plan.build.kernel_dir}")
        self.log.info(f"                  modules in: {plan.build.modules_dir}")
        self.log.info(f"                 firmware in: {self.config.firmware_dir}")
        self.log.info(" Staged via:")
        self.log.info(f"              /boot files in: {plan.staging.boot}")
        self.log.info(f"               /lib files in: {plan.staging.lib}")
        self.log.info(f"               /opt files in: {plan.staging.opt}")
        self.log.info(f" Transfer To:                 {target.user}@{target.host}:")
        self.log.info(f"              /boot files in: {plan.remote_base}/boot")
        self.log.info(f"               /lib files in: {plan.remote_base}/lib")
        self.log.info(f"               /opt files in: {plan.remote_base}/opt")

    def run(self) -> TransferResult:
        """Validate, stage locally, then push the staging tree.

        Raises:
            PreconditionError: Invalid inputs or missing build output (nothing touched)
            FilesystemError: Creating or copying into staging, or the push, failed
        """
        plan = self.validate()
        self.prepare_staging_dirs(plan.staging)
        self._announce(plan)

        self.log.info("\n[1/2] Updating staging directory...")
        self.stage(plan)

        target = self.config.target
        self.log.info(f"\n[2/2] Transferring {plan.staging.base} to {target.destination} ...")
        result = self.transport.push(plan.staging.base, target.user, target.host, target.remote_dir)

        self.log.info(f"\n✓ Kernel {plan.version} files transferred to {target.host}:{result.remote_path}")
        return result
