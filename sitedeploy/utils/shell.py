"""Shell 命令执行工具: 异步子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
默认实现基于 asyncio 子进程：等待期间让出事件循环，
被取消或超时时终止子进程，不留僵尸进程。
"""

from __future__ import annotations

import asyncio
import logging
import shlex

from sitedeploy.core.exceptions import ExecutionError
from sitedeploy.core.models import CommandResult
from sitedeploy.core.protocols import CommandExecutor

logger = logging.getLogger(__name__)


# =========================================================================
# 默认实现: 本地异步执行器
# =========================================================================

class LocalExecutor:
    """本地命令执行器（默认实现）"""

    async def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
        if not args:
            raise ExecutionError("命令为空")
        logger.debug("执行命令: %s (cwd=%s)", " ".join(args), cwd)
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd, env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            await _kill(proc)
            raise ExecutionError(
                f"命令超时 ({timeout}s): {' '.join(args)}", returncode=None,
            ) from None
        except asyncio.CancelledError:
            await _kill(proc)
            raise
        return CommandResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试或远程执行场景）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor
