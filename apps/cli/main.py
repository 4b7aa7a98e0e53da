"""CLI application for depmanager."""

import asyncio
import json
import logging
import shlex
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from core.audit import SecurityAuditor
from core.errors import DepManagerError
from core.models import AuditReport, DependencyUpdate, NpmAuditResult, YarnAuditResult
from core.project import ProjectInfo, get_project_info
from core.runner import CommandRunner
from core.updates import DEFAULT_NCU_COMMAND, check_updates
from core.workspace import run_audit

VERSION = "1.0.0"

console = Console()
err_console = Console(stderr=True)

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "moderate": "yellow",
    "low": "cyan",
    "info": "dim",
}


def setup_logging(verbose: bool) -> None:
    """Send core log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)],
        force=True,
    )


def display_npm_audit_results(result: NpmAuditResult) -> None:
    """Print an npm audit report."""
    counts = result.metadata.vulnerabilities
    if not result.vulnerabilities and counts.total == 0:
        console.print("✅ No vulnerabilities found!")
        return

    console.print("⚠️  Vulnerabilities found:\n")

    for name, vuln in result.vulnerabilities.items():
        style = SEVERITY_STYLES.get(vuln.severity, "")
        console.print(f"Package: {escape(name)}")
        if style:
            console.print(f"Severity: [{style}]{vuln.severity}[/]")
        else:
            console.print(f"Severity: {vuln.severity}")
        console.print(f"Vulnerable versions: {escape(vuln.range)}")
        fix = vuln.fix_available
        if fix is True or (fix and not fix.version):
            console.print("Fix available: Run npm audit fix")
        elif fix:
            target = f"{fix.name}@{fix.version}" if fix.name else fix.version
            suffix = " (semver major)" if fix.is_sem_ver_major else ""
            console.print(f"Fix available: Update to {escape(str(target))}{suffix}")
        console.print(f"More info: {escape(vuln.url or 'No URL provided')}")
        console.print("")

    console.print(f"Found {counts.total} vulnerabilities:")
    for severity in ("critical", "high", "moderate", "low", "info"):
        count = getattr(counts, severity)
        if count > 0:
            console.print(f"  {severity}: {count}")

    if counts.critical > 0 or counts.high > 0:
        console.print("\n💡 Run npm audit fix to automatically fix vulnerabilities")


def display_yarn_audit_results(result: YarnAuditResult) -> None:
    """Print a yarn audit report."""
    if result.is_clean:
        console.print("✅ No vulnerabilities found!")
        return

    console.print("⚠️  Vulnerabilities found:\n")
    console.print(result.stdout, markup=False, highlight=False)
    console.print(f"\nFound {result.vulnerability_count} vulnerabilities")
    console.print("\n💡 Run yarn upgrade to update vulnerable dependencies")


def display_audit_report(report: AuditReport) -> None:
    """Print the outcome for one audited directory."""
    for note in report.notes:
        console.print(f"ℹ️  {escape(note)}\n")

    if report.error:
        console.print("❌ Security audit could not be completed for this configuration.")
        console.print(f"   {escape(report.error)}", style="red")
        console.print("💡 This may be due to workspace setup or missing lock files.")
        console.print("   Try running the security audit directly with your package manager.")
        return

    if report.npm is not None:
        display_npm_audit_results(report.npm)
    elif report.yarn is not None:
        display_yarn_audit_results(report.yarn)


def format_updates_json(updates: list[DependencyUpdate]) -> str:
    """Format dependency updates as JSON."""
    reports = []
    for update in updates:
        reports.append({
            "name": update.name,
            "current": update.current,
            "latest": update.latest,
            "semver_delta": update.semver_delta,
        })

    return json.dumps({"updates": reports}, indent=2)


def format_audit_json(project: ProjectInfo, reports: list[AuditReport]) -> str:
    """Format security audit reports as JSON."""
    entries = []
    for report in reports:
        entry = {
            "label": report.label,
            "directory": str(report.directory),
            "backend": report.backend,
            "fallback_from": report.fallback_from,
            "vulnerability_count": report.vulnerability_count,
            "notes": report.notes,
            "error": report.error,
        }
        if report.npm is not None:
            entry["vulnerabilities"] = {
                name: {
                    "severity": vuln.severity,
                    "range": vuln.range,
                    "url": vuln.url,
                }
                for name, vuln in report.npm.vulnerabilities.items()
            }
        entries.append(entry)

    return json.dumps({
        "package_manager": project.package_manager.display_name,
        "workspaces": project.workspace.has_workspaces,
        "reports": entries,
    }, indent=2)


def format_update_line(update: DependencyUpdate) -> str:
    current = update.current or "?"
    line = f"  {escape(update.name)}: {escape(current)} → {escape(update.latest)}"
    if update.semver_delta != "unknown":
        line += f" ({update.semver_delta})"
    return line


def resolve_project_dir(directory: Path | None) -> Path:
    return (directory or Path.cwd()).resolve()


async def _security(
    project_dir: Path, runner: CommandRunner
) -> tuple[ProjectInfo, list[AuditReport]]:
    project = await get_project_info(project_dir, runner)
    auditor = SecurityAuditor(project_dir, runner)
    reports = await run_audit(project_dir, project.package_manager, auditor.audit_directory)
    return project, reports


async def _updates(
    project_dir: Path, runner: CommandRunner, upgrade: bool, ncu_command: list[str]
) -> tuple[ProjectInfo, list[DependencyUpdate]]:
    project = await get_project_info(project_dir, runner)
    updates = await check_updates(project_dir, runner, upgrade=upgrade, ncu_command=ncu_command)
    return project, updates


def version_callback(value: bool) -> None:
    if value:
        console.print(f"depmanager {VERSION}")
        raise typer.Exit()


app = typer.Typer(
    name="depmanager",
    help="depmanager - Manage project dependencies (supports npm, yarn 1.x, yarn 2+)",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """depmanager - Manage project dependencies (supports npm, yarn 1.x, yarn 2+)."""
    setup_logging(verbose)


@app.command()
def check(
    directory: Path | None = typer.Option(
        None, "--dir", "-C", envvar="DEPMANAGER_DIR", help="Project directory (default: current directory)"
    ),
    format_type: str = typer.Option("text", "--format", envvar="DEPMANAGER_FORMAT", help="Output format: text or json"),
    ncu_command: str = typer.Option(
        " ".join(DEFAULT_NCU_COMMAND),
        "--ncu-command",
        envvar="DEPMANAGER_NCU_COMMAND",
        help="Command used to run npm-check-updates",
    ),
) -> None:
    """Check if dependencies are up to date."""
    project_dir = resolve_project_dir(directory)

    try:
        project, updates = asyncio.run(
            _updates(project_dir, CommandRunner(), False, shlex.split(ncu_command))
        )
    except DepManagerError as e:
        console.print(f"Error checking dependencies: {escape(str(e))}", style="red")
        raise typer.Exit(1)

    if format_type == "json":
        typer.echo(format_updates_json(updates))
        return

    console.print(f"📦 Detected package manager: {project.package_manager.display_name}")
    console.print("📦 Checking dependencies...\n")

    if not updates:
        console.print("✅ All dependencies are up to date!")
        return

    console.print("📦 Updates available for:")
    for dep in updates:
        console.print(format_update_line(dep))
    console.print("\n💡 Run depmanager update to update these dependencies")


@app.command()
def update(
    directory: Path | None = typer.Option(
        None, "--dir", "-C", envvar="DEPMANAGER_DIR", help="Project directory (default: current directory)"
    ),
    format_type: str = typer.Option("text", "--format", envvar="DEPMANAGER_FORMAT", help="Output format: text or json"),
    ncu_command: str = typer.Option(
        " ".join(DEFAULT_NCU_COMMAND),
        "--ncu-command",
        envvar="DEPMANAGER_NCU_COMMAND",
        help="Command used to run npm-check-updates",
    ),
) -> None:
    """Update all dependencies to their latest versions."""
    project_dir = resolve_project_dir(directory)

    try:
        project, updates = asyncio.run(
            _updates(project_dir, CommandRunner(), True, shlex.split(ncu_command))
        )
    except DepManagerError as e:
        console.print(f"Error updating dependencies: {escape(str(e))}", style="red")
        raise typer.Exit(1)

    if format_type == "json":
        typer.echo(format_updates_json(updates))
        return

    console.print(f"📦 Detected package manager: {project.package_manager.display_name}")
    console.print("📦 Updating dependencies...\n")

    if not updates:
        console.print("✅ All dependencies are already up to date!")
        return

    console.print("📦 Updated dependencies in package.json:")
    for dep in updates:
        console.print(format_update_line(dep))

    install_command = "yarn install" if project.package_manager.manager == "yarn" else "npm install"
    console.print(f"\n💡 Run {install_command} to install the new versions")


@app.command()
def security(
    directory: Path | None = typer.Option(
        None, "--dir", "-C", envvar="DEPMANAGER_DIR", help="Project directory (default: current directory)"
    ),
    format_type: str = typer.Option("text", "--format", envvar="DEPMANAGER_FORMAT", help="Output format: text or json"),
) -> None:
    """Check dependencies for known vulnerabilities (CVEs)."""
    project_dir = resolve_project_dir(directory)

    try:
        project, reports = asyncio.run(_security(project_dir, CommandRunner()))
    except DepManagerError as e:
        console.print(f"Error running security check: {escape(str(e))}", style="red")
        raise typer.Exit(1)

    if format_type == "json":
        typer.echo(format_audit_json(project, reports))
        return

    console.print(f"🔍 Detected package manager: {project.package_manager.display_name}")
    console.print("🔍 Checking for vulnerabilities...\n")

    has_workspaces = project.workspace.has_workspaces
    if has_workspaces:
        console.print("📦 Detected workspace project\n")

    for index, report in enumerate(reports):
        if has_workspaces and index == 0:
            console.print("Checking root project...")
        elif has_workspaces:
            console.print(f"\nChecking workspace: {escape(report.label)}")
        display_audit_report(report)


@app.command()
def info(
    directory: Path | None = typer.Option(
        None, "--dir", "-C", envvar="DEPMANAGER_DIR", help="Project directory (default: current directory)"
    ),
    format_type: str = typer.Option("text", "--format", envvar="DEPMANAGER_FORMAT", help="Output format: text or json"),
) -> None:
    """Show detected package manager information."""
    project_dir = resolve_project_dir(directory)

    try:
        project = asyncio.run(get_project_info(project_dir, CommandRunner()))
    except DepManagerError as e:
        console.print(f"Error getting project info: {escape(str(e))}", style="red")
        raise typer.Exit(1)

    pm = project.package_manager
    if format_type == "json":
        typer.echo(json.dumps({
            "name": project.manifest.name,
            "package_manager": {
                "manager": pm.manager,
                "version": pm.version,
                "type": pm.type,
                "display_name": pm.display_name,
            },
            "workspaces": {
                "has_workspaces": project.workspace.has_workspaces,
                "packages": project.workspace.packages,
            },
        }, indent=2))
        return

    console.print("📋 Project Information:")
    console.print(f"Package Manager: {pm.display_name}")
    console.print(f"Manager Type: {pm.type or 'unknown'}")
    if pm.version:
        console.print(f"Version: {pm.version}")
    console.print(f"Workspaces: {'Yes' if project.workspace.has_workspaces else 'No'}")

    if project.workspace.has_workspaces:
        console.print(f"Workspace Packages: {escape(', '.join(project.workspace.packages))}")


if __name__ == "__main__":
    app()
