"""Pytest configuration and fixtures."""

import json
from pathlib import Path

import pytest

from core.errors import CommandFailedError
from core.models import CommandResult


class FakeRunner:
    """Scripted stand-in for CommandRunner that records every call."""

    def __init__(self):
        self.calls: list[tuple[tuple[str, ...], Path]] = []
        self._responses: dict = {}

    def respond(self, args, stdout="", stderr="", exit_code=0, cwd=None):
        """Script the output for a command, optionally only in one directory."""
        self._responses[self._key(args, cwd)] = (stdout, stderr, exit_code)

    def fail(self, args, error, cwd=None):
        """Make a command raise, e.g. CommandNotFoundError."""
        self._responses[self._key(args, cwd)] = error

    def commands(self, program_args=None):
        """Recorded (args, cwd) pairs, optionally filtered by exact args."""
        if program_args is None:
            return list(self.calls)
        return [call for call in self.calls if call[0] == tuple(program_args)]

    @staticmethod
    def _key(args, cwd):
        return (tuple(args), Path(cwd).resolve() if cwd is not None else None)

    async def run(self, args, cwd, check=True):
        cwd = Path(cwd)
        self.calls.append((tuple(args), cwd))

        response = self._responses.get(self._key(args, cwd))
        if response is None:
            response = self._responses.get(self._key(args, None), ("", "", 0))
        if isinstance(response, Exception):
            raise response

        stdout, stderr, exit_code = response
        result = CommandResult(
            args=list(args), cwd=cwd, stdout=stdout, stderr=stderr, exit_code=exit_code
        )
        if check and exit_code != 0:
            raise CommandFailedError(result)
        return result


@pytest.fixture
def fake_runner():
    """A FakeRunner with no scripted commands (everything succeeds silently)."""
    return FakeRunner()


@pytest.fixture
def write_package_json():
    """Write a package.json into a directory, creating it if needed."""

    def _write(directory: Path, data) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "package.json"
        if isinstance(data, str):
            path.write_text(data)
        else:
            path.write_text(json.dumps(data, indent=2))
        return path

    return _write


@pytest.fixture
def sample_package_json():
    """Sample package.json content for testing."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "dependencies": {
            "express": "^4.18.0",
            "lodash": "~4.17.21",
        },
        "devDependencies": {
            "jest": "^29.0.0",
        },
    }


@pytest.fixture
def workspace_project(tmp_path, write_package_json):
    """A yarn-style monorepo with two packages under packages/."""
    write_package_json(tmp_path, {
        "name": "monorepo",
        "version": "1.0.0",
        "private": True,
        "workspaces": ["packages/*"],
    })
    write_package_json(tmp_path / "packages" / "alpha", {"name": "alpha", "version": "1.0.0"})
    write_package_json(tmp_path / "packages" / "beta", {"name": "beta", "version": "1.0.0"})
    return tmp_path


@pytest.fixture
def npm_audit_clean():
    """`npm audit --json` output with no vulnerabilities."""
    return json.dumps({
        "auditReportVersion": 2,
        "vulnerabilities": {},
        "metadata": {
            "vulnerabilities": {
                "info": 0, "low": 0, "moderate": 0, "high": 0, "critical": 0, "total": 0
            }
        },
    })


@pytest.fixture
def npm_audit_vulnerable():
    """`npm audit --json` output reporting two vulnerable packages."""
    return json.dumps({
        "auditReportVersion": 2,
        "vulnerabilities": {
            "minimist": {
                "name": "minimist",
                "severity": "critical",
                "range": "<0.2.4",
                "via": [
                    {
                        "source": 1097677,
                        "title": "Prototype Pollution in minimist",
                        "url": "https://github.com/advisories/GHSA-xvch-5gv4-984h",
                        "severity": "critical",
                    }
                ],
                "fixAvailable": {"name": "mkdirp", "version": "1.0.4", "isSemVerMajor": True},
            },
            "mkdirp": {
                "name": "mkdirp",
                "severity": "moderate",
                "range": "0.4.1 - 0.5.1",
                "via": ["minimist"],
                "fixAvailable": True,
            },
        },
        "metadata": {
            "vulnerabilities": {
                "info": 0, "low": 0, "moderate": 1, "high": 0, "critical": 1, "total": 2
            }
        },
    })
