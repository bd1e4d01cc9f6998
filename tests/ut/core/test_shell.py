"""LocalExecutor 单元测试"""

from __future__ import annotations

import asyncio
import os
import sys

import pytest

from sitedeploy.core.exceptions import ExecutionError
from sitedeploy.utils.shell import LocalExecutor, get_executor, set_executor

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="依赖 POSIX shell 命令")


class TestLocalExecutor:
    @pytest.mark.asyncio
    async def test_success(self, tmp_path) -> None:
        r = await LocalExecutor().execute("echo hello", cwd=str(tmp_path))
        assert r.success
        assert "hello" in r.stdout

    @pytest.mark.asyncio
    async def test_nonzero_exit_returns_result(self, tmp_path) -> None:
        r = await LocalExecutor().execute(
            ["sh", "-c", "echo 'syntax error' >&2; exit 3"], cwd=str(tmp_path),
        )
        assert not r.success
        assert r.returncode == 3
        assert "syntax error" in r.stderr

    @pytest.mark.asyncio
    async def test_runs_in_cwd(self, tmp_path) -> None:
        r = await LocalExecutor().execute("pwd", cwd=str(tmp_path))
        assert os.path.realpath(r.stdout.strip()) == os.path.realpath(str(tmp_path))

    @pytest.mark.asyncio
    async def test_env_passed(self, tmp_path) -> None:
        env = {**os.environ, "MY_TEST_VAR": "42"}
        r = await LocalExecutor().execute("env", cwd=str(tmp_path), env=env)
        assert "MY_TEST_VAR=42" in r.stdout

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_path) -> None:
        with pytest.raises(ExecutionError, match="超时"):
            await LocalExecutor().execute("sleep 5", cwd=str(tmp_path), timeout=0.2)

    @pytest.mark.asyncio
    async def test_cancel_propagates(self, tmp_path) -> None:
        task = asyncio.create_task(LocalExecutor().execute("sleep 5", cwd=str(tmp_path)))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_empty_command(self) -> None:
        with pytest.raises(ExecutionError):
            await LocalExecutor().execute("")

    @pytest.mark.asyncio
    async def test_missing_binary_raises_oserror(self, tmp_path) -> None:
        with pytest.raises(OSError):
            await LocalExecutor().execute("definitely-not-a-real-binary-xyz", cwd=str(tmp_path))


def test_set_executor_roundtrip() -> None:
    original = get_executor()
    replacement = LocalExecutor()
    try:
        set_executor(replacement)
        assert get_executor() is replacement
    finally:
        set_executor(original)
