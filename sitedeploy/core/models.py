"""核心数据模型

进度状态、阶段结果、部署结果以及存储服务属性集中定义于此，
reporter / phases / storage 各层统一从这里导入。
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from sitedeploy.core.exceptions import SiteDeployError

# =========================================================================
# 进度状态
# =========================================================================


class TaskState(str, Enum):
    """步骤 / 任务状态"""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.FAILED)


class EventKind(str, Enum):
    """进度通知类型"""

    STEP_CREATED = "step_created"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"
    PUBLISH_COMPLETED = "publish_completed"


@dataclass(frozen=True)
class ProgressEvent:
    """推送给进度观察者的一次状态变化"""

    kind: EventKind
    step: str = ""
    task: str = ""
    state: TaskState | None = None
    message: str = ""
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "step": self.step,
            "task": self.task,
            "state": self.state.value if self.state else None,
            "message": self.message,
            "timestamp": self.timestamp,
        }


# =========================================================================
# 外部命令
# =========================================================================


@dataclass
class CommandResult:
    """命令执行结果（与 asyncio 子进程解耦）"""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 阶段与部署结果
# =========================================================================


@dataclass
class PhaseResult:
    """单个阶段的成功 / 失败标记

    预期内的失败不抛异常，而是带着 error 返回给编排器。
    """

    phase: str
    success: bool
    message: str = ""
    error: SiteDeployError | None = None

    @classmethod
    def ok(cls, phase: str, message: str) -> PhaseResult:
        return cls(phase=phase, success=True, message=message)

    @classmethod
    def failed(cls, phase: str, error: SiteDeployError, message: str = "") -> PhaseResult:
        return cls(phase=phase, success=False, message=message or str(error), error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "success": self.success,
            "message": self.message,
            "error_code": self.error.code if self.error else None,
        }


@dataclass
class DeploymentOutcome:
    """一次部署的最终结果

    summary 仅在成功时填充（公开访问地址），error 仅在失败时填充。
    """

    success: bool
    summary: str = ""
    error: SiteDeployError | None = None
    phases: list[PhaseResult] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        return str(self.error) if self.error else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "summary": self.summary,
            "error": self.error_message,
            "error_code": self.error.code if self.error else None,
            "phases": [p.to_dict() for p in self.phases],
        }


# =========================================================================
# 存储服务属性
# =========================================================================


@dataclass
class StaticWebsite:
    """静态网站托管设置"""

    enabled: bool = False
    index_document: str = ""
    error_document_404_path: str = ""


@dataclass
class ServiceProperties:
    """存储服务级属性

    static_website 之外的设置（logging、cors、metrics 等）放在 settings 中，
    原样读出原样写回，配置阶段不会触碰。
    """

    static_website: StaticWebsite = field(default_factory=StaticWebsite)
    settings: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceProperties:
        data = dict(data)
        sw = data.pop("static_website", None) or {}
        return cls(
            static_website=StaticWebsite(
                enabled=bool(sw.get("enabled", False)),
                index_document=sw.get("index_document", ""),
                error_document_404_path=sw.get("error_document_404_path", ""),
            ),
            settings=data,
        )

    def to_dict(self) -> dict[str, Any]:
        return {**self.settings, "static_website": asdict(self.static_website)}
