"""Workspace traversal and audit dispatch."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from pathlib import Path

from .errors import DepManagerError
from .manifest import MANIFEST_FILENAME, get_workspace_info
from .models import AuditReport, AuditTarget, PackageManagerInfo

logger = logging.getLogger(__name__)

ROOT_LABEL = "root project"

AuditAction = Callable[[Path, PackageManagerInfo], Awaitable[AuditReport]]


def workspace_base_dir(pattern: str) -> str:
    """Strip a trailing '/*' from a workspace pattern.

    Patterns are not glob-expanded. A pattern without the suffix, such as
    "apps/web", is returned unchanged and its children are audited rather than
    the directory itself.
    """
    if pattern.endswith("/*"):
        return pattern[:-2]
    return pattern


def collect_audit_targets(root_dir: Path, pm_info: PackageManagerInfo) -> list[AuditTarget]:
    """List the directories to audit, root first.

    Args:
        root_dir: Project root containing package.json
        pm_info: Package manager used for every target

    Returns:
        The root target followed by workspace members in pattern order, each
        pattern's members in sorted directory order
    """
    root_dir = Path(root_dir).resolve()
    workspace = get_workspace_info(root_dir)

    targets = [AuditTarget(directory=root_dir, pm_info=pm_info, label=ROOT_LABEL)]
    if not workspace.has_workspaces:
        return targets

    for pattern in workspace.packages:
        base = root_dir / workspace_base_dir(pattern)
        if not base.is_dir():
            logger.debug("Workspace pattern %s matches no directory", pattern)
            continue

        for entry in sorted(base.iterdir(), key=lambda p: p.name):
            if entry.is_dir() and (entry / MANIFEST_FILENAME).is_file():
                targets.append(
                    AuditTarget(
                        directory=entry,
                        pm_info=pm_info,
                        label=entry.relative_to(root_dir).as_posix(),
                    )
                )

    return targets


async def run_audit(
    root_dir: Path, pm_info: PackageManagerInfo, audit_one: AuditAction
) -> list[AuditReport]:
    """Audit the root project and every workspace member, one at a time.

    A failure in one target becomes a report with `error` set and the walk
    continues with the next target.

    Args:
        root_dir: Project root containing package.json
        pm_info: Detected package manager
        audit_one: Coroutine auditing a single directory

    Returns:
        One report per target, in traversal order
    """
    reports: list[AuditReport] = []

    for target in collect_audit_targets(root_dir, pm_info):
        try:
            report = await audit_one(target.directory, target.pm_info)
        except DepManagerError as e:
            logger.warning("Security audit failed for %s: %s", target.label, e)
            reason = getattr(e, "reason", str(e))
            report = AuditReport(directory=target.directory, error=reason)

        reports.append(replace(report, label=target.label))

    return reports
