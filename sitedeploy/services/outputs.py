"""资源输出值解析

外部编排引擎创建资源后，把输出值（endpoint、连接串等）写入 outputs 文件:

    deploy-storage:
      blobEndpoint: https://example.blob.core.windows.net/
    deploy-afd:
      endpointUrl: https://example.azurefd.net

YamlOutputResolver 轮询该文件，直到资源出现或超时。
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from sitedeploy.core.exceptions import ConfigError, DependencyUnresolvedError
from sitedeploy.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


def parse_output_overrides(pairs: tuple[str, ...] | list[str]) -> dict[str, dict[str, str]]:
    """解析 resource.key=value 形式的覆盖参数，格式不对抛 ConfigError"""
    result: dict[str, dict[str, str]] = {}
    for p in pairs:
        ref, eq, value = p.partition("=")
        resource, sep, key = ref.strip().rpartition(".")
        if not eq or not sep or not resource or not key:
            raise ConfigError(f"资源输出覆盖格式应为 resource.key=value: {p!r}")
        result.setdefault(resource, {})[key] = value.strip()
    return result


class StaticOutputResolver:
    """从内存映射解析输出值（测试 / 命令行覆盖）"""

    def __init__(self, outputs: dict[str, dict[str, str]] | None = None) -> None:
        self.outputs = outputs or {}

    async def get_output(self, resource: str, key: str) -> str:
        values = self.outputs.get(resource)
        if values is None:
            raise DependencyUnresolvedError(
                f"资源 '{resource}' 未创建", resource=resource, key=key,
            )
        if key not in values:
            raise DependencyUnresolvedError(
                f"资源 '{resource}' 没有输出 '{key}'", resource=resource, key=key,
            )
        return str(values[key] or "")


class YamlOutputResolver:
    """轮询 outputs 文件解析输出值

    - 资源尚未出现: 每 poll_interval 秒重读一次，超过 timeout 抛 DependencyUnresolvedError
    - 资源已出现但缺少该输出: 立即抛 DependencyUnresolvedError
    - overrides 中的值优先于文件
    """

    def __init__(
        self,
        outputs_file: str,
        *,
        timeout: float = 600.0,
        poll_interval: float = 2.0,
        overrides: dict[str, dict[str, str]] | None = None,
    ) -> None:
        self.outputs_file = Path(outputs_file)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.overrides = overrides or {}

    async def get_output(self, resource: str, key: str) -> str:
        override = self.overrides.get(resource, {})
        if key in override:
            return override[key]

        deadline = time.monotonic() + self.timeout
        while True:
            data = await asyncio.to_thread(load_yaml, self.outputs_file)
            values = data.get(resource)
            if isinstance(values, dict):
                if key not in values:
                    raise DependencyUnresolvedError(
                        f"资源 '{resource}' 没有输出 '{key}'", resource=resource, key=key,
                    )
                return str(values[key] or "")
            if time.monotonic() >= deadline:
                raise DependencyUnresolvedError(
                    f"等待资源 '{resource}' 超时 ({self.timeout:g}s): {self.outputs_file}",
                    resource=resource, key=key,
                )
            logger.debug("资源 %s 尚未就绪，%ss 后重试", resource, self.poll_interval)
            await asyncio.sleep(self.poll_interval)
