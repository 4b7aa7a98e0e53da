"""Core data models for depmanager."""

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class PackageManagerInfo:
    """The package manager that governs a project directory."""

    manager: str  # npm, yarn
    version: str | None = None
    type: str | None = "npm"  # npm, yarn1, yarn2+, or None when yarn is unknown
    display_name: str = "npm"


@dataclass
class WorkspaceInfo:
    """Workspace patterns declared by a root manifest."""

    has_workspaces: bool = False
    packages: list[str] = field(default_factory=list)


@dataclass
class AuditTarget:
    """A directory to audit and the package manager to audit it with."""

    directory: Path
    pm_info: PackageManagerInfo
    label: str


@dataclass
class CommandResult:
    """Captured output of an external command."""

    args: list[str]
    cwd: Path
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class FixAvailable(BaseModel):
    """Fix details reported by npm audit."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    version: str | None = None
    is_sem_ver_major: bool = Field(default=False, alias="isSemVerMajor")


class NpmVulnerability(BaseModel):
    """A single vulnerable package from `npm audit --json`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    severity: str = "info"  # critical, high, moderate, low, info
    range: str = ""
    fix_available: bool | FixAvailable | None = Field(default=None, alias="fixAvailable")
    url: str | None = None
    via: list = Field(default_factory=list)


class SeverityCounts(BaseModel):
    """Vulnerability counts by severity."""

    info: int = 0
    low: int = 0
    moderate: int = 0
    high: int = 0
    critical: int = 0
    total: int = 0


class AuditMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    vulnerabilities: SeverityCounts = Field(default_factory=SeverityCounts)


class NpmAuditResult(BaseModel):
    """Parsed `npm audit --json` document."""

    model_config = ConfigDict(extra="ignore")

    vulnerabilities: dict[str, NpmVulnerability] = Field(default_factory=dict)
    metadata: AuditMetadata = Field(default_factory=AuditMetadata)

    @property
    def vulnerability_count(self) -> int:
        return self.metadata.vulnerabilities.total or len(self.vulnerabilities)


@dataclass
class YarnAuditResult:
    """Text output of `yarn audit` or `yarn npm audit`."""

    stdout: str
    stderr: str
    is_clean: bool = False
    vulnerability_count: int = 0


@dataclass
class AuditReport:
    """Outcome of auditing one target directory."""

    directory: Path
    label: str = ""
    backend: str | None = None  # npm, yarn
    npm: NpmAuditResult | None = None
    yarn: YarnAuditResult | None = None
    fallback_from: str | None = None
    notes: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def vulnerability_count(self) -> int:
        if self.npm is not None:
            return self.npm.vulnerability_count
        if self.yarn is not None:
            return self.yarn.vulnerability_count
        return 0


@dataclass
class DependencyUpdate:
    """A dependency with a newer version available."""

    name: str
    current: str | None
    latest: str
    semver_delta: str = "unknown"  # major, minor, patch, unknown
