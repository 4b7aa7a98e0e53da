"""Package manager detection for JS/TS projects."""

import logging
import re
from pathlib import Path

from .errors import CommandError
from .models import PackageManagerInfo
from .runner import CommandRunner

logger = logging.getLogger(__name__)

YARN_LOCKFILE = "yarn.lock"
NPM_LOCKFILE = "package-lock.json"

_LEADING_INT = re.compile(r"^\s*(\d+)")


async def get_yarn_version(runner: CommandRunner, cwd: Path) -> str | None:
    """Return the output of `yarn --version`, or None if yarn cannot run."""
    try:
        result = await runner.run(["yarn", "--version"], cwd=cwd)
    except CommandError as e:
        logger.debug("Could not determine yarn version: %s", e)
        return None
    return result.stdout.strip() or None


def get_yarn_version_type(version: str | None) -> str | None:
    """Classify a yarn version string as 'yarn1' or 'yarn2+'.

    Only the leading integer of the component before the first '.' counts,
    so pre-release suffixes are ignored ("2.0.0-beta.1" is yarn2+).

    Args:
        version: Version string reported by `yarn --version`

    Returns:
        'yarn2+' for major >= 2, 'yarn1' below that, None when the version is
        missing or has no leading number
    """
    if not version:
        return None

    match = _LEADING_INT.match(version.split(".")[0])
    if not match:
        return None

    major = int(match.group(1))
    return "yarn2+" if major >= 2 else "yarn1"


async def detect_package_manager(
    project_dir: Path, runner: CommandRunner
) -> PackageManagerInfo:
    """Detect the package manager that owns a project directory.

    Lock files decide, in priority order: yarn.lock, then package-lock.json.
    Without either, npm is assumed.

    Args:
        project_dir: Project directory to inspect
        runner: Command runner used for `yarn --version`

    Returns:
        Detected package manager information
    """
    project_dir = Path(project_dir)

    if (project_dir / YARN_LOCKFILE).exists():
        version = await get_yarn_version(runner, project_dir)
        yarn_type = get_yarn_version_type(version)
        logger.debug("Found %s, yarn version %s (%s)", YARN_LOCKFILE, version, yarn_type)

        if yarn_type == "yarn2+":
            display_name = f"yarn {version} (2+)"
        elif yarn_type == "yarn1":
            display_name = f"yarn {version} (1.x)"
        else:
            display_name = "yarn (version unknown)"

        return PackageManagerInfo(
            manager="yarn", version=version, type=yarn_type, display_name=display_name
        )

    if (project_dir / NPM_LOCKFILE).exists():
        return PackageManagerInfo(manager="npm", version=None, type="npm", display_name="npm")

    return PackageManagerInfo(
        manager="npm", version=None, type="npm", display_name="npm (default)"
    )
