"""Dependency update checks via npm-check-updates."""

import json
import logging
import re
from pathlib import Path

from packaging.version import InvalidVersion, Version

from .errors import CommandError, UpdateCheckError
from .manifest import MANIFEST_FILENAME, read_manifest
from .models import DependencyUpdate
from .runner import CommandRunner

logger = logging.getLogger(__name__)

DEFAULT_NCU_COMMAND = ("npx", "--yes", "npm-check-updates")

_RANGE_PREFIX = re.compile(r"^[\s^~<>=v]+")


def range_base_version(spec: str | None) -> Version | None:
    """Extract the version a simple range starts from ("^4.18.0" -> 4.18.0).

    Compound ranges, tags and URLs return None.
    """
    if not spec:
        return None

    candidate = _RANGE_PREFIX.sub("", spec.strip())
    if not candidate or " " in candidate or "|" in candidate:
        return None
    # npm allows partial versions like "4.x"
    candidate = re.sub(r"\.[xX*](?=\.|$)", ".0", candidate)

    try:
        return Version(candidate)
    except InvalidVersion:
        return None


def semver_delta(current: str | None, latest: str) -> str:
    """Classify the bump from one range to another.

    Returns:
        "major", "minor", "patch", or "unknown"
    """
    old_ver = range_base_version(current)
    new_ver = range_base_version(latest)
    if old_ver is None or new_ver is None or new_ver <= old_ver:
        return "unknown"

    if new_ver.major > old_ver.major:
        return "major"
    if new_ver.minor > old_ver.minor:
        return "minor"
    if new_ver.micro > old_ver.micro:
        return "patch"
    return "unknown"


async def check_updates(
    project_dir: Path,
    runner: CommandRunner,
    upgrade: bool = False,
    ncu_command: list[str] | tuple[str, ...] = DEFAULT_NCU_COMMAND,
) -> list[DependencyUpdate]:
    """List (and optionally apply) newer dependency versions.

    Args:
        project_dir: Directory containing package.json
        runner: Command runner used for npm-check-updates
        upgrade: Rewrite package.json with the new ranges
        ncu_command: Command prefix that runs npm-check-updates

    Returns:
        One entry per dependency with a newer version, in the tool's order

    Raises:
        UpdateCheckError: If npm-check-updates fails or its output is not JSON
    """
    project_dir = Path(project_dir)
    args = [
        *ncu_command,
        "--jsonUpgraded",
        "--packageFile",
        str(project_dir / MANIFEST_FILENAME),
    ]
    if upgrade:
        args.append("--upgrade")

    # Read before ncu rewrites the file so current ranges are the old ones
    manifest = read_manifest(project_dir)
    current_ranges = manifest.manifest.all_dependencies() if manifest.ok else {}

    try:
        result = await runner.run(args, cwd=project_dir)
    except CommandError as e:
        raise UpdateCheckError(f"npm-check-updates failed: {e}") from e

    try:
        upgraded = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise UpdateCheckError(f"npm-check-updates did not return JSON: {e}") from e

    if not isinstance(upgraded, dict):
        raise UpdateCheckError("npm-check-updates returned an unexpected document")

    updates = []
    for name, latest in upgraded.items():
        current = current_ranges.get(name)
        updates.append(
            DependencyUpdate(
                name=name,
                current=current,
                latest=str(latest),
                semver_delta=semver_delta(current, str(latest)),
            )
        )

    logger.debug("%d dependencies have newer versions", len(updates))
    return updates
