"""Injected services shared by every kdeploy stage.

Stages receive a filesystem, a process runner, a clock and a logger instead
of calling os, shutil, subprocess and time directly. The commands wire in the
System*/Real* implementations; tests substitute mocks.
"""

from kdeploy.core.protocols import (
    Logger,
    FileSystemService,
    ProcessExecutor,
    ProcessResult,
    TimeProvider,
    EnvironmentProvider,
    ToolLocator,
    ConfigLoader,
)

from kdeploy.core.implementations import (
    ConsoleLogger,
    RealFileSystemService,
    CompletedCommand,
    SubprocessExecutor,
    SystemTimeProvider,
    SystemEnvironmentProvider,
    SystemToolLocator,
    YamlConfigLoader,
)

__all__ = [
    # Protocols
    "Logger",
    "FileSystemService",
    "ProcessExecutor",
    "ProcessResult",
    "TimeProvider",
    "EnvironmentProvider",
    "ToolLocator",
    "ConfigLoader",
    # Implementations
    "ConsoleLogger",
    "RealFileSystemService",
    "CompletedCommand",
    "SubprocessExecutor",
    "SystemTimeProvider",
    "SystemEnvironmentProvider",
    "SystemToolLocator",
    "YamlConfigLoader",
]
