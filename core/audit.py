"""Security audit backends: npm audit, yarn audit and yarn npm audit."""

import json
import logging
import re
from pathlib import Path

from pydantic import ValidationError

from .detect import NPM_LOCKFILE
from .errors import AuditError, CommandError
from .manifest import get_workspace_info
from .models import AuditReport, NpmAuditResult, PackageManagerInfo, YarnAuditResult
from .runner import CommandRunner

logger = logging.getLogger(__name__)

NO_KNOWN_VULNERABILITIES = "No known vulnerabilities found"

_ZERO_FOUND = re.compile(r"(?<!\d)0 vulnerabilities found")
_YARN_COUNT = re.compile(r"(\d+)\s+vulnerabilit(?:y|ies)\s+found")


def parse_npm_audit(text: str) -> NpmAuditResult:
    """Parse `npm audit --json` output.

    Args:
        text: Raw stdout of npm audit

    Returns:
        Validated audit result

    Raises:
        ValueError: If the output is not an npm audit report
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"npm audit did not return JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("npm audit returned an unexpected document")
    if "error" in data:
        error = data["error"]
        summary = error.get("summary") if isinstance(error, dict) else str(error)
        raise ValueError(f"npm audit reported an error: {summary}")

    try:
        result = NpmAuditResult.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Unexpected npm audit report: {e}") from e

    # npm 7+ keeps advisory links inside `via`
    for vulnerability in result.vulnerabilities.values():
        if vulnerability.url:
            continue
        for source in vulnerability.via:
            if isinstance(source, dict) and source.get("url"):
                vulnerability.url = source["url"]
                break

    return result


def parse_yarn_audit(stdout: str, stderr: str) -> YarnAuditResult:
    """Summarize the text report of `yarn audit` / `yarn npm audit`."""
    if _reports_clean(stdout, stderr):
        return YarnAuditResult(stdout=stdout, stderr=stderr, is_clean=True)

    count = 0
    for line in stdout.splitlines():
        match = _YARN_COUNT.search(line)
        if match:
            count = int(match.group(1))

    return YarnAuditResult(
        stdout=stdout, stderr=stderr, is_clean=count == 0, vulnerability_count=count
    )


def _reports_clean(stdout: str, stderr: str) -> bool:
    return (
        NO_KNOWN_VULNERABILITIES in stdout
        or NO_KNOWN_VULNERABILITIES in stderr
        or bool(_ZERO_FOUND.search(stdout))
    )


def _looks_like_yarn_report(stdout: str, stderr: str) -> bool:
    return _reports_clean(stdout, stderr) or bool(_YARN_COUNT.search(stdout))


async def run_npm_audit(directory: Path, runner: CommandRunner) -> NpmAuditResult:
    """Run `npm audit --json` in a directory.

    A package-lock.json is generated first when missing, since npm audit
    needs one.

    Raises:
        AuditError: If npm cannot run or its output is unusable
    """
    directory = Path(directory)

    if not (directory / NPM_LOCKFILE).exists():
        logger.info("Creating %s for security audit in %s", NPM_LOCKFILE, directory)
        try:
            await runner.run(
                ["npm", "i", "--package-lock-only", "--ignore-scripts"], cwd=directory
            )
        except CommandError as e:
            logger.warning(
                "Could not create %s. Audit may not work properly. (%s)", NPM_LOCKFILE, e
            )

    try:
        # npm audit exits 1 when it finds vulnerabilities
        result = await runner.run(["npm", "audit", "--json"], cwd=directory, check=False)
    except CommandError as e:
        raise AuditError(directory, str(e)) from e

    try:
        return parse_npm_audit(result.stdout)
    except ValueError as e:
        raise AuditError(directory, str(e)) from e


async def run_yarn_audit(
    directory: Path, yarn_type: str | None, runner: CommandRunner
) -> YarnAuditResult:
    """Run the yarn audit command matching the yarn version family.

    Raises:
        AuditError: If yarn cannot run or exits without producing a report
    """
    directory = Path(directory)
    args = ["yarn", "npm", "audit"] if yarn_type == "yarn2+" else ["yarn", "audit"]

    try:
        result = await runner.run(args, cwd=directory, check=False)
    except CommandError as e:
        raise AuditError(directory, str(e)) from e

    # yarn exits non-zero when vulnerabilities are found, so only a missing
    # report counts as failure
    if not result.ok and not _looks_like_yarn_report(result.stdout, result.stderr):
        output = result.stderr.strip() or result.stdout.strip() or "no output"
        detail = output.splitlines()[-1]
        raise AuditError(
            directory, f"'{' '.join(args)}' exited with status {result.exit_code}: {detail}"
        )

    return parse_yarn_audit(result.stdout, result.stderr)


class SecurityAuditor:
    """Audits single directories, falling back from yarn to npm on failure."""

    def __init__(self, root_dir: Path, runner: CommandRunner):
        """Initialize security auditor.

        Args:
            root_dir: Root of the project being audited
            runner: Command runner for the audit tools
        """
        self.root_dir = Path(root_dir).resolve()
        self.runner = runner
        self.root_has_workspaces = get_workspace_info(self.root_dir).has_workspaces

    def _is_workspace_root(self, directory: Path) -> bool:
        return self.root_has_workspaces and Path(directory).resolve() == self.root_dir

    async def npm_audit(self, directory: Path) -> NpmAuditResult:
        return await run_npm_audit(directory, self.runner)

    async def yarn_audit(self, directory: Path, yarn_type: str | None) -> YarnAuditResult:
        return await run_yarn_audit(directory, yarn_type, self.runner)

    async def audit_directory(
        self, directory: Path, pm_info: PackageManagerInfo
    ) -> AuditReport:
        """Audit one directory with its package manager's audit tool.

        For yarn projects a failed yarn audit falls back to npm audit, except
        at the root of a workspace project where npm's results would not
        describe the yarn workspace.

        Raises:
            AuditError: If no audit result could be produced
        """
        directory = Path(directory)

        if pm_info.manager != "yarn":
            result = await self.npm_audit(directory)
            return AuditReport(directory=directory, backend="npm", npm=result)

        if not pm_info.version:
            logger.info("Yarn unavailable, using npm audit for %s", directory)
            result = await self.npm_audit(directory)
            return AuditReport(
                directory=directory,
                backend="npm",
                npm=result,
                fallback_from="yarn",
                notes=["Yarn not found or not properly installed. Falling back to npm audit."],
            )

        yarn_type = pm_info.type if pm_info.type != "npm" else None
        try:
            result = await self.yarn_audit(directory, yarn_type)
            return AuditReport(directory=directory, backend="yarn", yarn=result)
        except AuditError as e:
            if self._is_workspace_root(directory):
                raise AuditError(
                    directory,
                    "Security audit not available for this workspace configuration. "
                    "Try running the audit directly with yarn or check individual "
                    "workspace packages.",
                ) from e
            logger.info(
                "Yarn audit failed for %s (%s), falling back to npm audit", directory, e.reason
            )

        result = await self.npm_audit(directory)
        return AuditReport(
            directory=directory,
            backend="npm",
            npm=result,
            fallback_from="yarn",
            notes=["Yarn audit failed. Falling back to npm audit."],
        )
