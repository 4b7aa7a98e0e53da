"""package.json reading and workspace discovery."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ProjectInvalidError
from .models import WorkspaceInfo

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"


class WorkspacesConfig(BaseModel):
    """Object form of the `workspaces` field."""

    packages: list[str]
    nohoist: list[str] = Field(default_factory=list)


class PackageJson(BaseModel):
    """A parsed package.json manifest."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str | None = None
    version: str | None = None
    description: str | None = None
    private: bool = False
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    peer_dependencies: dict[str, str] = Field(default_factory=dict, alias="peerDependencies")
    optional_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="optionalDependencies"
    )
    workspaces: list[str] | WorkspacesConfig | None = None

    @field_validator("name", "version", "description", mode="before")
    @classmethod
    def _drop_non_string(cls, value):
        return value if isinstance(value, str) else None

    @field_validator("private", mode="before")
    @classmethod
    def _drop_non_bool(cls, value):
        return value if isinstance(value, bool) else False

    @field_validator(
        "dependencies",
        "dev_dependencies",
        "peer_dependencies",
        "optional_dependencies",
        mode="before",
    )
    @classmethod
    def _keep_string_ranges(cls, value):
        # npm ignores a section that is not an object, and entries that are not ranges
        if not isinstance(value, dict):
            return {}
        return {name: spec for name, spec in value.items() if isinstance(spec, str)}

    @field_validator("workspaces", mode="before")
    @classmethod
    def _drop_malformed_workspaces(cls, value):
        # Anything other than a list of patterns or {packages: [...]} means no workspaces
        if isinstance(value, list) and all(isinstance(item, str) for item in value):
            return value
        if isinstance(value, dict):
            try:
                return WorkspacesConfig.model_validate(value)
            except ValidationError:
                return None
        return None

    def all_dependencies(self) -> dict[str, str]:
        """Merge every dependency section, `dependencies` taking precedence."""
        merged: dict[str, str] = {}
        for section in (
            self.optional_dependencies,
            self.peer_dependencies,
            self.dev_dependencies,
            self.dependencies,
        ):
            merged.update(section)
        return merged


@dataclass
class ManifestRead:
    """Result of reading a manifest from disk."""

    status: str  # ok, not_found, parse_error
    path: Path
    manifest: PackageJson | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def read_manifest(directory: Path) -> ManifestRead:
    """Read package.json in a directory.

    Args:
        directory: Project directory to look in

    Returns:
        ManifestRead with status ok, not_found or parse_error. Fields of
        the wrong type fall back to their defaults, so only unreadable,
        non-JSON or non-object content is a parse_error.
    """
    path = Path(directory) / MANIFEST_FILENAME
    if not path.is_file():
        return ManifestRead(status="not_found", path=path)

    try:
        data = json.loads(path.read_bytes().decode("utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        return ManifestRead(status="parse_error", path=path, error=str(e))

    if not isinstance(data, dict):
        return ManifestRead(
            status="parse_error", path=path, error="top-level value is not an object"
        )

    return ManifestRead(status="ok", path=path, manifest=PackageJson.model_validate(data))


def get_workspace_info(directory: Path) -> WorkspaceInfo:
    """Return the workspace patterns declared in a directory's package.json.

    A missing or unreadable manifest, or a `workspaces` field of any other
    shape, means the project has no workspaces.
    """
    result = read_manifest(directory)
    if not result.ok:
        if result.status == "parse_error":
            logger.debug("Ignoring unreadable manifest %s: %s", result.path, result.error)
        return WorkspaceInfo(has_workspaces=False, packages=[])

    workspaces = result.manifest.workspaces
    if isinstance(workspaces, list):
        return WorkspaceInfo(has_workspaces=True, packages=list(workspaces))
    if isinstance(workspaces, WorkspacesConfig):
        return WorkspaceInfo(has_workspaces=True, packages=list(workspaces.packages))
    return WorkspaceInfo(has_workspaces=False, packages=[])


def check_project_validity(directory: Path) -> PackageJson:
    """Ensure a directory holds a readable package.json.

    Raises:
        ProjectInvalidError: If package.json is missing or cannot be parsed
    """
    result = read_manifest(directory)
    if result.status == "not_found":
        raise ProjectInvalidError(f"No package.json found in {Path(directory)}")
    if result.status == "parse_error":
        raise ProjectInvalidError(f"Error reading package.json: {result.error}")
    return result.manifest
