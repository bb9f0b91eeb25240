"""
Path conventions shared by the build, transfer and install stages.

Build host:
<KERNEL_BUILD>/
└── linux-<version>/
    ├── kernel/                 # make O=... output, .config
    │   └── arch/<arch>/boot/zImage
    └── modules/                # INSTALL_MOD_PATH
        └── lib/modules/<version>/...

Staging (build host) and received tree (target):
<STAGING_DIR or SRC_DIR>/
└── <version>/
    ├── boot/                   # bootcode.bin fixup.dat start.elf zImage
    ├── lib/                    # firmware/ modules/
    └── opt/                    # vc/

Target live system and backups:
/boot/{bootcode.bin,fixup.dat,start.elf,kernel.img}
/boot/backup-<timestamp>/       # copies of the four boot files
/opt/vc   /opt/vc-<timestamp>   /opt/vc-<timestamp>.tmp
/lib/firmware   /lib/firmware-<timestamp>   /lib/firmware-<timestamp>.tmp
/lib/modules    /lib/modules-<timestamp>    /lib/modules-<timestamp>.tmp
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

BOOT_FIRMWARE_FILES: Tuple[str, ...] = ('bootcode.bin', 'fixup.dat', 'start.elf')
KERNEL_IMAGE_NAME = 'zImage'
INSTALLED_KERNEL_NAME = 'kernel.img'

TIMESTAMP_FORMAT = '%Y%m%d%H%M%S'


@dataclass(frozen=True)
class BuildPaths:
    """Build output layout for one kernel version."""
    base: Path
    kernel_dir: Path
    modules_dir: Path
    config_file: Path
    image_file: Path
    modules_lib_dir: Path

    @classmethod
    def for_version(cls, kernel_build: Path, version: str, arch: str = 'arm') -> 'BuildPaths':
        base = Path(kernel_build) / f"linux-{version}"
        kernel_dir = base / 'kernel'
        modules_dir = base / 'modules'
        return cls(
            base=base,
            kernel_dir=kernel_dir,
            modules_dir=modules_dir,
            config_file=kernel_dir / '.config',
            image_file=kernel_dir / 'arch' / arch / 'boot' / KERNEL_IMAGE_NAME,
            modules_lib_dir=modules_dir / 'lib',
        )


@dataclass(frozen=True)
class StagingPaths:
    """Local transfer staging layout for one kernel version."""
    base: Path
    boot: Path
    lib: Path
    opt: Path

    @classmethod
    def for_version(cls, staging_dir: Path, version: str) -> 'StagingPaths':
        base = Path(staging_dir) / version
        return cls(base=base, boot=base / 'boot', lib=base / 'lib', opt=base / 'opt')


class ArtifactTree:
    """A received boot/lib/opt tree ready for installation."""

    def __init__(self, source_dir: Path):
        self.source_dir = Path(source_dir)
        self.boot = self.source_dir / 'boot'
        self.lib = self.source_dir / 'lib'
        self.opt = self.source_dir / 'opt'
        self.vc = self.opt / 'vc'
        self.lib_firmware = self.lib / 'firmware'
        self.lib_modules = self.lib / 'modules'

    def boot_file(self, name: str) -> Path:
        return self.boot / name

    @property
    def kernel_image(self) -> Path:
        return self.boot / KERNEL_IMAGE_NAME


class LiveSystem:
    """Installed system locations under a root (normally /)."""

    def __init__(self, root: Path = Path('/')):
        self.root = Path(root)
        self.boot = self.root / 'boot'
        self.opt_vc = self.root / 'opt' / 'vc'
        self.lib_firmware = self.root / 'lib' / 'firmware'
        self.lib_modules = self.root / 'lib' / 'modules'

    @property
    def boot_files(self) -> Tuple[str, ...]:
        """Names of the live boot-partition files, in backup order."""
        return BOOT_FIRMWARE_FILES + (INSTALLED_KERNEL_NAME,)

    @property
    def large_dirs(self) -> Tuple[Path, ...]:
        """Directories swapped by rename, in swap order."""
        return (self.opt_vc, self.lib_firmware, self.lib_modules)


def format_timestamp(epoch_seconds: float) -> str:
    """Second-granularity local wall-clock stamp, e.g. 20240131235959."""
    return time.strftime(TIMESTAMP_FORMAT, time.localtime(epoch_seconds))


def boot_backup_dir(boot: Path, timestamp: str) -> Path:
    return Path(boot) / f"backup-{timestamp}"


def dir_backup_path(live: Path, timestamp: str) -> Path:
    live = Path(live)
    return live.with_name(f"{live.name}-{timestamp}")


def dir_staging_path(live: Path, timestamp: str) -> Path:
    live = Path(live)
    return live.with_name(f"{live.name}-{timestamp}.tmp")
