"""Kernel source tree inspection shared by the build and transfer stages."""
from pathlib import Path

from kdeploy.core.protocols import FileSystemService, ProcessExecutor
from kdeploy.errors import BuildToolError


class KernelSource:
    """A Linux kernel source directory.

    Both stages derive the version the same way, through version(), so
    build output and staging directories always agree on the key.
    """

    def __init__(self, path: Path, process_executor: ProcessExecutor):
        self.path = Path(path)
        self.process = process_executor

    def looks_like_kernel_tree(self, filesystem: FileSystemService) -> bool:
        """A kernel tree has a top-level kernel/ sub-directory."""
        return filesystem.is_dir(self.path / 'kernel')

    @property
    def config_snapshot(self) -> Path:
        """Compressed configuration copied from a running target's /proc/config.gz."""
        return self.path / 'config.gz'

    def version(self) -> str:
        """Return the output of ``make kernelversion``.

        Raises:
            BuildToolError: If make fails or prints nothing
        """
        result = self.process.run(['make', 'kernelversion'], cwd=self.path, capture_output=True)
        if result.returncode != 0:
            raise BuildToolError(
                f"Failed to determine kernel version with make kernelversion in {self.path}\n"
                f"{(result.stderr or '').strip()}"
            )

        # make may print "Entering directory" chatter before the version
        lines = [line.strip() for line in (result.stdout or '').splitlines() if line.strip()]
        if not lines:
            raise BuildToolError(f"make kernelversion in {self.path} printed no version.")
        return lines[-1]
