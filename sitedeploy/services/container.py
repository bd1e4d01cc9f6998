"""服务容器: 统一依赖注入

命令执行器、资源输出解析器、存储客户端工厂都从容器获取，
CLI 和 Web 层通过 get_container() 拿到同一组协作者，测试可整体替换。

依赖关系图（→ 表示依赖）:
  orchestrator → phases → executor / resolver / storage_factory

用法:
    container = ServiceContainer(config=Config.from_file("configs/default.yml"))
    orch = container.orchestrator(container.target(name="prod"))
    outcome = asyncio.run(orch.deploy())
"""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sitedeploy.core.config import Config
    from sitedeploy.core.protocols import CommandExecutor, OutputResolver
    from sitedeploy.core.reporter import ProgressReporter
    from sitedeploy.services.deploy import DeploymentOrchestrator, DeploymentTarget
    from sitedeploy.services.deploy.phases import StorageFactory

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器: 每个实例持有一组共享的协作者

    编排器和进度上报器不缓存：每次部署都新建，部署之间不共享状态。
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        output_overrides: dict[str, dict[str, str]] | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from sitedeploy.core.config import get_config
            config = get_config()
        self._config = config
        self._output_overrides = output_overrides or {}

    @property
    def config(self) -> Config:
        return self._config

    @property
    def executor(self) -> CommandExecutor:
        if "executor" not in self._instances:
            from sitedeploy.utils.shell import get_executor
            self._instances["executor"] = get_executor()
        return self._instances["executor"]  # type: ignore[return-value]

    @property
    def resolver(self) -> OutputResolver:
        if "resolver" not in self._instances:
            from sitedeploy.services.outputs import YamlOutputResolver
            self._instances["resolver"] = YamlOutputResolver(
                self._config.outputs_file,
                timeout=self._config.output_timeout,
                poll_interval=self._config.poll_interval,
                overrides=self._output_overrides,
            )
        return self._instances["resolver"]  # type: ignore[return-value]

    @property
    def storage_factory(self) -> StorageFactory:
        if "storage_factory" not in self._instances:
            from sitedeploy.services.storage import create_storage_client
            self._instances["storage_factory"] = partial(
                create_storage_client, config=self._config,
            )
        return self._instances["storage_factory"]  # type: ignore[return-value]

    def target(self, *, name: str = "", site_dir: str = "") -> DeploymentTarget:
        from sitedeploy.services.deploy import DeploymentTarget
        return DeploymentTarget.from_config(self._config, name=name, site_dir=site_dir)

    def orchestrator(
        self, target: DeploymentTarget, reporter: ProgressReporter | None = None,
    ) -> DeploymentOrchestrator:
        from sitedeploy.core.reporter import LoggingSink, ProgressReporter
        from sitedeploy.services.deploy import DeploymentOrchestrator, DeploymentPhases
        if reporter is None:
            reporter = ProgressReporter()
            reporter.subscribe(LoggingSink())
        phases = DeploymentPhases(
            executor=self.executor,
            resolver=self.resolver,
            storage_factory=self.storage_factory,
        )
        return DeploymentOrchestrator(target, phases, reporter)


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def set_container(container: ServiceContainer) -> None:
    """替换全局容器（CLI 带覆盖参数启动、测试注入替身时使用）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = container


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
