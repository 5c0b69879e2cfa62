"""Execution of validated command requests.

Commands run without a shell, one at a time, and are waited on to
completion. Output is either streamed line by line into the log (and so into
the session log file) or captured for parsing. A non-zero exit raises
:class:`~clone_n8n.errors.CommandError` unless the caller explicitly
tolerates failure with ``check=False``, which is reserved for teardown-style
commands whose failure means "already absent".
"""

import subprocess
from dataclasses import dataclass

from rich.markup import escape

from clone_n8n.commands import CommandRequest
from clone_n8n.errors import CommandError, PreconditionError
from clone_n8n.utils.logger import get_logger

logger = get_logger("runner")


@dataclass
class CommandResult:
    """Outcome of one external command."""

    argv: list[str]
    returncode: int
    output: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def lines(self) -> list[str]:
        return [line.strip() for line in self.output.splitlines() if line.strip()]


class CommandRunner:
    """Runs :class:`CommandRequest` objects and reports their output."""

    def run(self, request: CommandRequest, check: bool = True, cwd: str | None = None) -> CommandResult:
        """Run a command, streaming its combined output into the log.

        Args:
            request: Validated command to run
            check: Raise CommandError on non-zero exit
            cwd: Working directory for the command

        Returns:
            CommandResult with the exit status and the collected output
        """
        argv = request.argv()
        logger.debug(f"Running: {escape(request.describe())}")

        collected = []
        try:
            with subprocess.Popen(
                argv,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            ) as process:
                for line in process.stdout:
                    line = line.rstrip("\n")
                    collected.append(line)
                    if line.strip():
                        logger.info(f"  {escape(line)}")
                returncode = process.wait()
        except FileNotFoundError as e:
            raise PreconditionError(f"Required tool not found: {argv[0]}") from e

        result = CommandResult(argv, returncode, "\n".join(collected))
        if check and not result.ok:
            raise CommandError(argv, returncode, result.output)
        return result

    def capture(self, request: CommandRequest, check: bool = True, cwd: str | None = None) -> CommandResult:
        """Run a command quietly and return its output for parsing."""
        argv = request.argv()
        logger.debug(f"Querying: {escape(request.describe())}")
        try:
            completed = subprocess.run(argv, cwd=cwd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise PreconditionError(f"Required tool not found: {argv[0]}") from e

        result = CommandResult(argv, completed.returncode, completed.stdout or "", completed.stderr or "")
        if check and not result.ok:
            raise CommandError(argv, completed.returncode, completed.stderr or "")
        return result
