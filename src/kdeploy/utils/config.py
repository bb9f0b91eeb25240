"""Configuration loading for the pipeline stages.

Each stage gets a frozen dataclass built once at start-up from, in order of
precedence: the process environment, an optional section of a YAML settings
file, and built-in defaults. Required values are checked in declaration
order and the first missing one is reported.

Example settings file::

    build:
      kernel_src: /home/me/rpi/linux
      kernel_build: /home/me/rpi/build
      cc_prefix: arm-linux-gnueabihf-
      jobs: 8
    transfer:
      firmware_dir: /home/me/rpi/firmware
      staging_dir: /home/me/rpi/stage
      target_host: raspberrypi.local
      target_user: pi
      target_dir: /home/pi/kernels
    install:
      target_root: /
"""
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, NamedTuple, Optional

from kdeploy.core.protocols import ConfigLoader, FileSystemService
from kdeploy.errors import MissingInputError, PreconditionError

DEFAULT_ARCH = 'arm'
DEFAULT_JOBS = 5
DEFAULT_SSH_PORT = 22


class Field(NamedTuple):
    """Where a configuration value comes from."""
    name: str       # dataclass attribute and settings-file key
    env_var: str
    expected: str   # shown when missing


KERNEL_SRC = Field('kernel_src', 'KERNEL_SRC',
                   'path to Linux kernel source')
KERNEL_BUILD = Field('kernel_build', 'KERNEL_BUILD',
                     'a valid path for kernel build output')
CC_PREFIX = Field('cc_prefix', 'CCPREFIX',
                  'file/path name prefix for cross-compiler GCC and related tools')
KERNEL_ARCH = Field('arch', 'KERNEL_ARCH', 'kernel ARCH value, e.g. arm')
BUILD_JOBS = Field('jobs', 'BUILD_JOBS', 'number of parallel make jobs')
FIRMWARE_DIR = Field('firmware_dir', 'FIRMWARE_DIR',
                     'a valid path for Raspberry Pi firmware files')
STAGING_DIR = Field('staging_dir', 'STAGING_DIR', 'a valid path')
TARGET_HOST = Field('target_host', 'TGT_RPI',
                    'host name or IP address of Raspberry Pi to transfer files to')
TARGET_USER = Field('target_user', 'TGT_USER',
                    'user name on target Raspberry Pi to use for transfer')
TARGET_DIR = Field('target_dir', 'TGT_DIR',
                   'absolute directory on target Raspberry Pi to transfer files to')
TARGET_PORT = Field('ssh_port', 'TGT_PORT', 'SSH port of the target Raspberry Pi')
SOURCE_BASE = Field('source_base', 'SRC_DIR',
                    'root of kernel/module/firmware file sets to install')
TARGET_ROOT = Field('target_root', 'TARGET_ROOT', 'root of the live filesystem')


@dataclass(frozen=True)
class BuildConfig:
    kernel_src: Path
    kernel_build: Path
    cc_prefix: str
    arch: str = DEFAULT_ARCH
    jobs: int = DEFAULT_JOBS


@dataclass(frozen=True)
class TargetConfig:
    """Connection parameters of the device receiving the staged tree."""
    user: str
    host: str
    remote_dir: str
    ssh_port: int = DEFAULT_SSH_PORT

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}:{self.remote_dir}"


@dataclass(frozen=True)
class TransferConfig:
    kernel_src: Path
    kernel_build: Path
    firmware_dir: Path
    staging_dir: Path
    target: TargetConfig
    arch: str = DEFAULT_ARCH


@dataclass(frozen=True)
class InstallConfig:
    source_base: Path
    sub_dir: str
    root: Path = Path('/')

    @property
    def source_dir(self) -> Path:
        return self.source_base / self.sub_dir


def _lookup(field: Field, environ: Mapping[str, str], settings: Mapping[str, Any]) -> Optional[str]:
    """Resolve one value: environment first, then settings file."""
    value = environ.get(field.env_var)
    if value:
        return value
    value = settings.get(field.name)
    if value is None or value == '':
        return None
    return str(value)


def _required(field: Field, environ: Mapping[str, str], settings: Mapping[str, Any]) -> str:
    value = _lookup(field, environ, settings)
    if not value:
        raise MissingInputError(
            f"{field.env_var} not set.\n"
            f"Expected {field.env_var} to be set to {field.expected}."
        )
    return value


def _optional(field: Field, environ: Mapping[str, str], settings: Mapping[str, Any], default: str) -> str:
    value = _lookup(field, environ, settings)
    return value if value else default


def _integer(field: Field, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise PreconditionError(f"{field.env_var}={value!r} is not an integer.")
    if number < 1:
        raise PreconditionError(f"{field.env_var}={value!r} must be a positive integer.")
    return number


def load_build_config(environ: Mapping[str, str], settings: Optional[Mapping[str, Any]] = None) -> BuildConfig:
    """Build the kernel build stage configuration.

    Raises:
        MissingInputError: If KERNEL_SRC, KERNEL_BUILD or CCPREFIX is unset
        PreconditionError: If BUILD_JOBS is not a positive integer
    """
    settings = settings or {}
    kernel_src = _required(KERNEL_SRC, environ, settings)
    kernel_build = _required(KERNEL_BUILD, environ, settings)
    cc_prefix = _required(CC_PREFIX, environ, settings)

    return BuildConfig(
        kernel_src=Path(kernel_src),
        kernel_build=Path(kernel_build),
        cc_prefix=cc_prefix,
        arch=_optional(KERNEL_ARCH, environ, settings, DEFAULT_ARCH),
        jobs=_integer(BUILD_JOBS, _optional(BUILD_JOBS, environ, settings, str(DEFAULT_JOBS))),
    )


def load_transfer_config(environ: Mapping[str, str], settings: Optional[Mapping[str, Any]] = None) -> TransferConfig:
    """Build the stage-and-transfer configuration.

    Raises:
        MissingInputError: If any required variable is unset
        PreconditionError: If TGT_PORT is not a positive integer
    """
    settings = settings or {}
    kernel_src = _required(KERNEL_SRC, environ, settings)
    kernel_build = _required(KERNEL_BUILD, environ, settings)
    firmware_dir = _required(FIRMWARE_DIR, environ, settings)
    staging_dir = _required(STAGING_DIR, environ, settings)
    host = _required(TARGET_HOST, environ, settings)
    user = _required(TARGET_USER, environ, settings)
    remote_dir = _required(TARGET_DIR, environ, settings)
    port = _integer(TARGET_PORT, _optional(TARGET_PORT, environ, settings, str(DEFAULT_SSH_PORT)))

    return TransferConfig(
        kernel_src=Path(kernel_src),
        kernel_build=Path(kernel_build),
        firmware_dir=Path(firmware_dir),
        staging_dir=Path(staging_dir),
        target=TargetConfig(user=user, host=host, remote_dir=remote_dir, ssh_port=port),
        arch=_optional(KERNEL_ARCH, environ, settings, DEFAULT_ARCH),
    )


def load_install_config(
    environ: Mapping[str, str],
    sub_dir: Optional[str],
    cwd: str,
    settings: Optional[Mapping[str, Any]] = None
) -> InstallConfig:
    """Build the installer configuration.

    SRC_DIR defaults to the working directory, TARGET_ROOT to /.

    Raises:
        MissingInputError: If sub_dir is empty
    """
    settings = settings or {}
    if not sub_dir:
        raise MissingInputError("Source sub-directory not given.")

    return InstallConfig(
        source_base=Path(_optional(SOURCE_BASE, environ, settings, cwd)),
        sub_dir=sub_dir,
        root=Path(_optional(TARGET_ROOT, environ, settings, '/')),
    )


def load_settings_file(path: Optional[str], config_loader: ConfigLoader,
                       filesystem: FileSystemService) -> Dict[str, Any]:
    """Load a YAML settings file, or return {} when no path is given.

    Raises:
        MissingInputError: If the file does not exist
        PreconditionError: If the file is not valid YAML or not a mapping
    """
    if not path:
        return {}

    if not filesystem.is_file(path):
        raise MissingInputError(f"Settings file {path} does not exist.")

    try:
        document = config_loader.load_yaml(path)
    except (yaml.YAMLError, OSError) as e:
        raise PreconditionError(f"Could not parse settings file {path}: {e}")

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise PreconditionError(f"Settings file {path} must contain a mapping of sections.")

    for name in ('build', 'transfer', 'install'):
        value = document.get(name)
        if value is not None and not isinstance(value, dict):
            raise PreconditionError(f"Section '{name}' in {path} must be a mapping.")

    return document


def section(settings: Mapping[str, Any], name: str, *shared: str) -> Dict[str, Any]:
    """Flatten a settings file section, falling back to keys of other sections.

    The transfer stage reuses kernel_src/kernel_build/arch from the build
    section so a single file can drive both stages.
    """
    merged: Dict[str, Any] = {}
    for other in shared:
        merged.update(settings.get(other) or {})
    merged.update(settings.get(name) or {})
    return merged
