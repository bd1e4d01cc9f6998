"""测试共享 fixture: 站点目录 + 外部协作者替身

  conftest.py                        测试用例
  ┌──────────────────────┐     ┌──────────────────────────────┐
  │ site        站点目录 │────>│ orch = make_orchestrator()   │
  │ FakeExecutor 命令    │     │ outcome = await orch.deploy()│
  │ FakeStorage  存储    │────>│ assert storage.started == 2  │
  │ resolver     输出值  │     └──────────────────────────────┘
  └──────────────────────┘
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from sitedeploy.core.config import Config
from sitedeploy.core.exceptions import RemoteOperationError
from sitedeploy.core.models import CommandResult
from sitedeploy.core.reporter import EventLog, ProgressReporter
from sitedeploy.services.container import ServiceContainer, reset_container, set_container
from sitedeploy.services.deploy import DeploymentOrchestrator, DeploymentPhases, DeploymentTarget
from sitedeploy.services.outputs import StaticOutputResolver
from sitedeploy.services.storage.memory import MemoryStorageClient

STORAGE_ENDPOINT = "https://deploystorage.blob.example.net/"
PUBLIC_ENDPOINT = "https://deploy-afd.example.net"


class FakeExecutor:
    """按顺序返回预设结果的命令执行器"""

    def __init__(self, results: list[CommandResult] | None = None) -> None:
        self.results = list(results or [])
        self.calls: list[tuple[str, str]] = []

    async def execute(self, cmd, *, cwd=".", env=None, timeout=None) -> CommandResult:
        self.calls.append((cmd, cwd))
        if self.results:
            return self.results.pop(0)
        return CommandResult(returncode=0)


class FakeStorage(MemoryStorageClient):
    """带延迟 / 失败注入 / 并发计数的内存存储"""

    def __init__(self, delay: float = 0.0, fail_on: tuple[str, ...] = ()) -> None:
        super().__init__()
        self.delay = delay
        self.fail_on = set(fail_on)
        self.started = 0
        self.finished = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.upload_started = asyncio.Event()
        self.calls: list[str] = []

    async def get_service_properties(self):
        self.calls.append("get_service_properties")
        return await super().get_service_properties()

    async def set_service_properties(self, properties) -> None:
        self.calls.append("set_service_properties")
        await super().set_service_properties(properties)

    async def create_container_if_not_exists(self, name: str) -> bool:
        self.calls.append(f"create_container:{name}")
        return await super().create_container_if_not_exists(name)

    async def upload_blob(self, container, blob_name, file_path, content_type) -> None:
        self.calls.append(f"upload:{blob_name}")
        self.started += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.upload_started.set()
        try:
            await asyncio.sleep(self.delay)
            if blob_name in self.fail_on:
                raise RemoteOperationError(f"quota exceeded: {blob_name}")
            await super().upload_blob(container, blob_name, file_path, content_type)
            self.finished += 1
        finally:
            self.in_flight -= 1


@pytest.fixture()
def site(tmp_path: Path) -> Path:
    """带构建产物的静态站点目录: dist/index.html + dist/assets/app.js"""
    root = tmp_path / "static-site"
    (root / "dist" / "assets").mkdir(parents=True)
    (root / "package.json").write_text("{}", encoding="utf-8")
    (root / "dist" / "index.html").write_text("<html></html>", encoding="utf-8")
    (root / "dist" / "assets" / "app.js").write_text("console.log(1)", encoding="utf-8")
    return root


@pytest.fixture()
def target(site: Path) -> DeploymentTarget:
    return DeploymentTarget(site_dir=str(site))


@pytest.fixture()
def resolver() -> StaticOutputResolver:
    return StaticOutputResolver({
        "deploy-storage": {"blobEndpoint": STORAGE_ENDPOINT},
        "deploy-afd": {"endpointUrl": PUBLIC_ENDPOINT},
    })


@pytest.fixture()
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def events() -> EventLog:
    return EventLog()


@pytest.fixture()
def make_orchestrator(target, executor, resolver, storage, events):
    """用替身协作者组装编排器，关键字参数可替换任意协作者"""

    def _make(**overrides) -> DeploymentOrchestrator:
        store = overrides.get("storage", storage)
        phases = DeploymentPhases(
            executor=overrides.get("executor", executor),
            resolver=overrides.get("resolver", resolver),
            storage_factory=overrides.get("storage_factory", lambda endpoint: store),
        )
        reporter = ProgressReporter()
        reporter.subscribe(overrides.get("events", events))
        return DeploymentOrchestrator(overrides.get("target", target), phases, reporter)

    return _make


class FakeContainer(ServiceContainer):
    """预先注入替身协作者的服务容器（CLI / Web 测试用）"""

    def __init__(self, config: Config, *, executor, resolver, storage) -> None:
        super().__init__(config)
        self._instances["executor"] = executor
        self._instances["resolver"] = resolver
        self._instances["storage_factory"] = lambda endpoint: storage


@pytest.fixture()
def fake_container(site, executor, resolver, storage):
    """注册为全局容器，测试结束后重置"""
    container = FakeContainer(
        Config(site_dir=str(site)), executor=executor, resolver=resolver, storage=storage,
    )
    set_container(container)
    yield container
    reset_container()
