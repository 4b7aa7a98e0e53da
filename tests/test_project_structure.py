"""Test that project structure is correct and modules can be imported."""

from pathlib import Path

import core.audit
import core.detect
import core.manifest
import core.models
import core.updates
import core.workspace
from core.models import AuditReport, PackageManagerInfo, WorkspaceInfo


def test_core_modules_importable():
    """Ensure core modules can be imported."""
    # This will fail if modules have syntax errors or missing dependencies

    assert hasattr(core.models, "PackageManagerInfo")
    assert hasattr(core.models, "WorkspaceInfo")
    assert hasattr(core.manifest, "get_workspace_info")
    assert hasattr(core.detect, "detect_package_manager")
    assert hasattr(core.audit, "SecurityAuditor")
    assert hasattr(core.workspace, "run_audit")
    assert hasattr(core.updates, "check_updates")


def test_model_creation():
    """Test that basic models can be instantiated."""
    info = PackageManagerInfo(manager="npm", display_name="npm (default)")
    assert info.type == "npm"
    assert info.version is None

    workspace = WorkspaceInfo()
    assert workspace.has_workspaces is False
    assert workspace.packages == []

    report = AuditReport(directory=Path("."))
    assert report.ok
    assert report.vulnerability_count == 0
