"""Exception taxonomy for the clone pipeline.

Every failure that should stop a run derives from :class:`CloneError`. The
CLI turns these into a message, an optional remediation hint and the
process exit code carried by the exception.
"""


class CloneError(Exception):
    """Base class for errors that abort a clone run.

    Attributes:
        hint: Optional remediation text shown below the error message
        exit_code: Process exit status the CLI should use
    """

    exit_code = 1

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class UsageError(CloneError):
    """Invalid command-line input (argument count, malformed names)."""


class PreconditionError(CloneError):
    """Local environment is not ready: infrastructure, tooling, files."""


class ResolutionError(CloneError):
    """The SSH endpoint for an infrastructure could not be resolved."""


class ReadinessError(CloneError):
    """Containers did not reach the running state in time."""


class CommandError(CloneError):
    """An external command exited with a non-zero status.

    The exit code of the failing tool becomes the exit code of the run.
    """

    def __init__(self, command: list[str], returncode: int, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed with exit status {returncode}: {' '.join(command)}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode if self.returncode > 0 else 1
