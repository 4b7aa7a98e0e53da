"""Tests for external command execution."""

import sys

import pytest

from core.errors import CommandFailedError, CommandNotFoundError
from core.runner import CommandRunner


class TestCommandRunner:
    """Test subprocess capture against real child processes."""

    @pytest.mark.asyncio
    async def test_captures_output_and_cwd(self, tmp_path):
        runner = CommandRunner()
        script = "import os, sys; print(os.getcwd()); print('oops', file=sys.stderr)"

        result = await runner.run([sys.executable, "-c", script], cwd=tmp_path)

        assert result.ok
        assert result.exit_code == 0
        assert result.stdout.strip() == str(tmp_path.resolve())
        assert result.stderr.strip() == "oops"

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, tmp_path):
        runner = CommandRunner()

        with pytest.raises(CommandFailedError) as exc_info:
            await runner.run([sys.executable, "-c", "import sys; sys.exit(3)"], cwd=tmp_path)

        assert exc_info.value.result.exit_code == 3

    @pytest.mark.asyncio
    async def test_nonzero_exit_without_check(self, tmp_path):
        runner = CommandRunner()

        result = await runner.run(
            [sys.executable, "-c", "print('{}'); raise SystemExit(1)"], cwd=tmp_path, check=False
        )

        assert result.exit_code == 1
        assert result.stdout.strip() == "{}"

    @pytest.mark.asyncio
    async def test_missing_program(self, tmp_path):
        runner = CommandRunner()

        with pytest.raises(CommandNotFoundError) as exc_info:
            await runner.run(["depmanager-no-such-program"], cwd=tmp_path)

        assert exc_info.value.program == "depmanager-no-such-program"
