"""部署进度上报器（Observer 模式）

ProgressReporter 创建并跟踪步骤 (StepHandle) 与任务 (TaskHandle)，
每次状态变化都会通知所有通过 subscribe() 注册的观察者。

步骤和任务句柄都是作用域资源，用 with 管理:

    reporter = ProgressReporter()
    reporter.subscribe(LoggingSink())
    with reporter.create_step("Deploying static site") as step:
        with step.create_task("Building static site") as task:
            task.update("npm install")
            task.complete("构建完成")
        step.complete("部署完成")

退出 with 只释放句柄，不会替调用方设置终态；
调用方必须在每条路径（包括异常）上显式 complete / fail。
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import TYPE_CHECKING

from sitedeploy.core.exceptions import StateError
from sitedeploy.core.models import EventKind, ProgressEvent, TaskState

if TYPE_CHECKING:
    from types import TracebackType

    from sitedeploy.core.protocols import ProgressSink

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex[:8]


class TaskHandle:
    """步骤下的最小可上报单元"""

    def __init__(self, step: StepHandle, name: str) -> None:
        self.id = _new_id()
        self.name = name
        self.step = step
        self.state = TaskState.PENDING
        self.message = ""

    def __enter__(self) -> TaskHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.step._release_task(self)

    def update(self, message: str) -> None:
        """上报进行中的状态文本"""
        if self.state.terminal:
            logger.warning("任务 %s 已结束 (%s)，忽略进度更新", self.name, self.state.value)
            return
        self.state = TaskState.RUNNING
        self.message = message
        self.step.reporter._emit(EventKind.TASK_UPDATED, self.step, self, message)

    def complete(self, message: str) -> None:
        self._finish(TaskState.COMPLETED, message)

    def fail(self, message: str) -> None:
        self._finish(TaskState.FAILED, message)

    def _finish(self, state: TaskState, message: str) -> None:
        if self.state.terminal:
            # 重复结束属于调用方违约，按最后一次写入处理
            logger.warning(
                "任务 %s 重复结束: %s -> %s", self.name, self.state.value, state.value,
            )
        self.state = state
        self.message = message
        if state is TaskState.FAILED:
            self.step._on_task_failed(self)
        kind = EventKind.TASK_COMPLETED if state is TaskState.COMPLETED else EventKind.TASK_FAILED
        self.step.reporter._emit(kind, self.step, self, message)

    def __repr__(self) -> str:
        return f"TaskHandle({self.name!r}, {self.state.value})"


class StepHandle:
    """由有序任务组成的命名步骤

    只有全部任务 COMPLETED 时步骤才能 COMPLETED；
    任意任务 FAILED 会立即把步骤置为 FAILED 并禁止再创建任务。
    """

    def __init__(self, reporter: ProgressReporter, name: str) -> None:
        self.id = _new_id()
        self.name = name
        self.reporter = reporter
        self.state = TaskState.RUNNING
        self.message = ""
        self.tasks: list[TaskHandle] = []
        self._open_tasks: dict[str, TaskHandle] = {}

    def __enter__(self) -> StepHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.reporter._release_step(self)

    @property
    def open_tasks(self) -> list[TaskHandle]:
        return list(self._open_tasks.values())

    def create_task(self, name: str) -> TaskHandle:
        if self.state.terminal:
            raise StateError(
                f"步骤 '{self.name}' 已结束 ({self.state.value})，不能再创建任务 '{name}'",
            )
        task = TaskHandle(self, name)
        self.tasks.append(task)
        self._open_tasks[task.id] = task
        self.reporter._emit(EventKind.TASK_CREATED, self, task, name)
        return task

    def complete(self, message: str, state: TaskState = TaskState.COMPLETED) -> None:
        if state is TaskState.FAILED:
            self.fail(message)
            return
        if state is not TaskState.COMPLETED:
            raise StateError(f"步骤只能以 completed / failed 结束，收到 {state.value}")
        unfinished = [t.name for t in self.tasks if t.state is not TaskState.COMPLETED]
        if unfinished:
            raise StateError(
                f"步骤 '{self.name}' 存在未完成的任务: {', '.join(unfinished)}",
            )
        self._finish(TaskState.COMPLETED, message)

    def fail(self, message: str) -> None:
        self._finish(TaskState.FAILED, message)

    def _finish(self, state: TaskState, message: str) -> None:
        if self.state is TaskState.COMPLETED:
            logger.warning("步骤 %s 重复结束: completed -> %s", self.name, state.value)
        self.state = state
        self.message = message
        kind = EventKind.STEP_COMPLETED if state is TaskState.COMPLETED else EventKind.STEP_FAILED
        self.reporter._emit(kind, self, None, message)

    def _on_task_failed(self, task: TaskHandle) -> None:
        # 任务失败即步骤失败；步骤自身的失败通知由调用方 fail() 时发出
        if self.state is not TaskState.FAILED:
            self.state = TaskState.FAILED
            self.message = task.message

    def _release_task(self, task: TaskHandle) -> None:
        self._open_tasks.pop(task.id, None)

    def __repr__(self) -> str:
        return f"StepHandle({self.name!r}, {self.state.value}, tasks={len(self.tasks)})"


class ProgressReporter:
    """步骤 / 任务的创建者与状态广播中心

    进程内唯一的共享状态是当前打开的步骤集合，每次部署结束时清空。
    """

    def __init__(self) -> None:
        self._sinks: list[ProgressSink] = []
        self._open_steps: dict[str, StepHandle] = {}
        self.summary = ""

    def subscribe(self, sink: ProgressSink) -> None:
        """注册进度观察者"""
        self._sinks.append(sink)

    @property
    def open_steps(self) -> list[StepHandle]:
        return list(self._open_steps.values())

    def create_step(self, name: str) -> StepHandle:
        step = StepHandle(self, name)
        self._open_steps[step.id] = step
        self._emit(EventKind.STEP_CREATED, step, None, name)
        return step

    def complete_publish(self, message: str) -> None:
        """上报整个发布流程的最终结果"""
        self.summary = message
        self._notify(ProgressEvent(kind=EventKind.PUBLISH_COMPLETED, message=message))

    def _release_step(self, step: StepHandle) -> None:
        self._open_steps.pop(step.id, None)
        # 步骤释放时连带释放其下所有任务，不保留外部引用
        step._open_tasks.clear()

    def _emit(
        self, kind: EventKind, step: StepHandle,
        task: TaskHandle | None, message: str,
    ) -> None:
        state = task.state if task is not None else step.state
        self._notify(ProgressEvent(
            kind=kind,
            step=step.name,
            task=task.name if task is not None else "",
            state=state,
            message=message,
        ))

    def _notify(self, event: ProgressEvent) -> None:
        for sink in self._sinks:
            try:
                sink.on_event(event)
            except (ValueError, RuntimeError, OSError, TypeError):
                logger.exception("进度观察者执行失败: %s", type(sink).__name__)


# =========================================================================
# 内置观察者
# =========================================================================


class LoggingSink:
    """把进度事件写入日志（失败事件记为 ERROR）"""

    def __init__(self, name: str = "sitedeploy.progress") -> None:
        self._logger = logging.getLogger(name)

    def on_event(self, event: ProgressEvent) -> None:
        failed = event.kind in (EventKind.TASK_FAILED, EventKind.STEP_FAILED)
        level = logging.ERROR if failed else logging.INFO
        label = f"{event.step} / {event.task}" if event.task else event.step
        self._logger.log(
            level, "[%s] %s: %s", event.kind.value, label or "publish", event.message,
            extra={
                "step": event.step,
                "task": event.task,
                "state": event.state.value if event.state else "",
            },
        )


class EventLog:
    """线程安全的事件缓冲，供 Web 层轮询读取"""

    def __init__(self) -> None:
        self._events: list[ProgressEvent] = []
        self._lock = threading.Lock()

    def on_event(self, event: ProgressEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[ProgressEvent]:
        with self._lock:
            return list(self._events)

    def last_failure(self) -> ProgressEvent | None:
        """最深层（最后一次）任务失败事件"""
        for event in reversed(self.events):
            if event.kind is EventKind.TASK_FAILED:
                return event
        return None
