"""
Stage exceptions and exit status taxonomy.

Every stage reports failure by raising one of these. The command layer
catches StageError, prints the message and exits with ``exit_code``:

    11  required input missing/unset
    12  input present but fails a structural/content precondition
    13  filesystem mutation (create directory, copy, sync, rename) failed
    14  external build tool invocation failed (build stage only)
"""

EXIT_MISSING_INPUT = 11
EXIT_PRECONDITION = 12
EXIT_FILESYSTEM = 13
EXIT_BUILD_TOOL = 14


class StageError(Exception):
    """Base class for fatal pipeline errors. Never retried."""
    exit_code = 1


class MissingInputError(StageError):
    """
    Raised when a required input was not supplied.

    Examples:
        - KERNEL_SRC not set
        - Installer source sub-directory argument omitted
    """
    exit_code = EXIT_MISSING_INPUT


class PreconditionError(StageError):
    """
    Raised when an input is present but structurally invalid.

    Always raised before any filesystem mutation.
    """
    exit_code = EXIT_PRECONDITION


class FilesystemError(StageError):
    """Raised when creating, copying, syncing or renaming fails mid-run."""
    exit_code = EXIT_FILESYSTEM


class BuildToolError(StageError):
    """Raised when make (or config expansion) fails during a kernel build."""
    exit_code = EXIT_BUILD_TOOL
