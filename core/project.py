"""Project-level information gathering."""

from dataclasses import dataclass
from pathlib import Path

from .detect import detect_package_manager
from .manifest import PackageJson, check_project_validity, get_workspace_info
from .models import PackageManagerInfo, WorkspaceInfo
from .runner import CommandRunner


@dataclass
class ProjectInfo:
    """Everything depmanager knows about a project directory."""

    manifest: PackageJson
    package_manager: PackageManagerInfo
    workspace: WorkspaceInfo


async def get_project_info(project_dir: Path, runner: CommandRunner) -> ProjectInfo:
    """Validate a project and detect its package manager and workspaces.

    Raises:
        ProjectInvalidError: If package.json is missing or unreadable
    """
    manifest = check_project_validity(project_dir)
    package_manager = await detect_package_manager(project_dir, runner)
    workspace = get_workspace_info(project_dir)

    return ProjectInfo(manifest=manifest, package_manager=package_manager, workspace=workspace)
