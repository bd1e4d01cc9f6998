"""领域协议定义

部署编排器依赖的外部能力（命令执行、对象存储、资源输出、进度观察者）
都以 Protocol 描述，编排器只依赖抽象。

使用 typing.Protocol 而非 ABC，使测试替身和第三方 SDK 适配器
无需继承即可满足协议。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from sitedeploy.core.models import CommandResult, ProgressEvent, ServiceProperties


# =========================================================================
# 命令执行协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议: 抽象子进程调用

    实现需可 await、可取消：调用方被取消时应终止子进程。
    """

    async def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """执行命令并返回结果（非零退出码不抛异常）"""
        ...


# =========================================================================
# 对象存储协议
# =========================================================================

class StorageClient(Protocol):
    """对象存储客户端协议

    所有调用都是网络操作，可能因传输或鉴权失败而抛异常。
    """

    async def get_service_properties(self) -> ServiceProperties:
        """读取服务级属性"""
        ...

    async def set_service_properties(self, properties: ServiceProperties) -> None:
        """整体写回服务级属性"""
        ...

    async def create_container_if_not_exists(self, name: str) -> bool:
        """容器不存在时创建，返回是否新建"""
        ...

    async def upload_blob(
        self, container: str, blob_name: str, file_path: str, content_type: str,
    ) -> None:
        """上传本地文件为指定名称的 blob（覆盖已有）"""
        ...


# =========================================================================
# 资源输出协议
# =========================================================================

class OutputResolver(Protocol):
    """资源输出值解析器协议

    资源由外部编排引擎异步创建，解析可能阻塞直到资源就绪。
    资源从未创建或没有该输出时抛 DependencyUnresolvedError。
    """

    async def get_output(self, resource: str, key: str) -> str:
        ...


# =========================================================================
# 进度观察者协议
# =========================================================================

class ProgressSink(Protocol):
    """进度观察者: CLI 显示、日志、Web 轮询缓冲等"""

    def on_event(self, event: ProgressEvent) -> None:
        ...
