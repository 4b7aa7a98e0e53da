"""Exception types raised by depmanager core."""

from pathlib import Path


class DepManagerError(Exception):
    """Base class for all depmanager errors."""


class ProjectInvalidError(DepManagerError):
    """The target directory is not a usable JS/TS project."""


class CommandError(DepManagerError):
    """An external command could not be run successfully."""


class CommandNotFoundError(CommandError):
    """The external program could not be started."""

    def __init__(self, program: str):
        super().__init__(f"Command not found: {program}")
        self.program = program


class CommandFailedError(CommandError):
    """The external program exited with a non-zero status."""

    def __init__(self, result):
        command = " ".join(result.args)
        detail = result.stderr.strip() or result.stdout.strip()
        message = f"'{command}' exited with status {result.exit_code}"
        if detail:
            message += f": {detail.splitlines()[-1]}"
        super().__init__(message)
        self.result = result


class AuditError(DepManagerError):
    """A security audit could not be completed for a directory."""

    def __init__(self, directory: Path, reason: str):
        super().__init__(f"{directory}: {reason}")
        self.directory = directory
        self.reason = reason


class UpdateCheckError(DepManagerError):
    """npm-check-updates failed or produced unusable output."""
