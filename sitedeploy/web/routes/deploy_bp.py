"""部署 API Blueprint

职责:
- 在后台线程触发一次部署（同一进程同时只允许一个部署）
- 提供进度轮询接口

站点目录只取自服务端配置，请求体不能指定（构建命令会在该目录中执行）。
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from flask import Blueprint, request

from sitedeploy.core.reporter import EventLog, LoggingSink, ProgressReporter
from sitedeploy.web.responses import bad_request, conflict, ok

logger = logging.getLogger(__name__)

deploy_bp = Blueprint("deploy", __name__, url_prefix="/api")


class DeploymentRun:
    """进程内唯一的部署运行状态

    存储容器和服务属性都是共享的远端资源，并发部署同一目标不安全，
    因此这里用锁保证同一时间只有一个部署在跑。
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.thread: threading.Thread | None = None
        self.events = EventLog()
        self.outcome: dict[str, Any] | None = None
        self.error = ""

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self, *, name: str = "") -> bool:
        """启动后台部署，已有部署在运行时返回 False"""
        with self._lock:
            if self.running:
                return False
            from sitedeploy.services.container import get_container
            container = get_container()
            target = container.target(name=name)

            self.events = EventLog()
            self.outcome = None
            self.error = ""
            reporter = ProgressReporter()
            reporter.subscribe(LoggingSink())
            reporter.subscribe(self.events)
            orch = container.orchestrator(target, reporter)

            self.thread = threading.Thread(
                target=self._run, args=(orch,), name="sitedeploy-run", daemon=True,
            )
            self.thread.start()
            return True

    def _run(self, orch: Any) -> None:
        try:
            outcome = asyncio.run(orch.deploy())
            self.outcome = outcome.to_dict()
        except Exception as e:  # noqa: BLE001 - 后台线程的异常只能记录，由状态接口返回
            logger.exception("部署异常终止")
            self.error = str(e) or type(e).__name__

    def join(self, timeout: float | None = None) -> None:
        if self.thread is not None:
            self.thread.join(timeout)

    def status(self) -> dict[str, Any]:
        failure = self.events.last_failure()
        return {
            "running": self.running,
            "events": [e.to_dict() for e in self.events.events],
            "outcome": self.outcome,
            "error": self.error,
            "last_failure": failure.message if failure else "",
        }


_run = DeploymentRun()


def get_run() -> DeploymentRun:
    return _run


def reset_run() -> None:
    """丢弃当前运行状态（仅用于测试）"""
    global _run  # noqa: PLW0603
    _run = DeploymentRun()


@deploy_bp.route("/deploy", methods=["POST"])
def api_deploy():
    """触发一次部署"""
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        return bad_request("请求体必须是 JSON 对象")
    if "site_dir" in body:
        return bad_request("site_dir 只能在服务端配置中指定")
    started = _run.start(name=str(body.get("name", "")))
    if not started:
        return conflict("已有部署正在进行")
    return ok({"status": "started"}, 202)


@deploy_bp.route("/deploy/status")
def api_deploy_status():
    """轮询当前 / 最近一次部署的进度"""
    return ok(_run.status())
