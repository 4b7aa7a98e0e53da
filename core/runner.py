"""External command execution."""

import asyncio
import logging
from pathlib import Path

from .errors import CommandFailedError, CommandNotFoundError
from .models import CommandResult

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs external programs and captures their output.

    Commands are awaited one at a time by callers; nothing here runs in the
    background or applies a timeout.
    """

    def __init__(self, env: dict[str, str] | None = None):
        """Initialize command runner.

        Args:
            env: Optional environment for child processes (defaults to ours)
        """
        self.env = env

    async def run(
        self, args: list[str], cwd: Path, check: bool = True
    ) -> CommandResult:
        """Run a command in a working directory.

        Args:
            args: Program and arguments, e.g. ["npm", "audit", "--json"]
            cwd: Directory to run the command in
            check: Raise CommandFailedError on a non-zero exit status

        Returns:
            Captured stdout, stderr and exit status

        Raises:
            CommandNotFoundError: If the program cannot be started
            CommandFailedError: If check is set and the exit status is non-zero
        """
        logger.debug("Running %s in %s", " ".join(args), cwd)
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd),
                env=self.env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise CommandNotFoundError(args[0]) from e

        stdout, stderr = await process.communicate()
        result = CommandResult(
            args=list(args),
            cwd=Path(cwd),
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
        )
        logger.debug("%s exited with status %d", args[0], result.exit_code)

        if check and not result.ok:
            raise CommandFailedError(result)
        return result
