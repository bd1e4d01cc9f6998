"""统一异常体系

所有业务异常继承 SiteDeployError，每种失败类型带一个稳定的 code。
部署阶段不直接抛出这些异常，而是放进 PhaseResult 交给编排器；
Web 层据 code 映射 HTTP 状态码，CLI 层据此输出友好提示。
"""

from __future__ import annotations


class SiteDeployError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(SiteDeployError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class NotFoundError(SiteDeployError):
    """必需的本地目录不存在（站点源码、构建输出）"""

    code = "NOT_FOUND"

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class ExecutionError(SiteDeployError):
    """外部命令（依赖安装 / 构建）以非零退出码结束"""

    code = "EXTERNAL_PROCESS_FAILURE"

    def __init__(
        self, message: str, returncode: int | None = None, stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class DependencyUnresolvedError(SiteDeployError):
    """远端资源的输出值缺失或为空"""

    code = "DEPENDENCY_UNRESOLVED"

    def __init__(self, message: str, resource: str = "", key: str = "") -> None:
        super().__init__(message)
        self.resource = resource
        self.key = key


class RemoteOperationError(SiteDeployError):
    """存储服务调用失败（网络、鉴权、配额等）"""

    code = "REMOTE_OPERATION_FAILURE"


class AggregateUploadError(RemoteOperationError):
    """并发上传中有一个或多个文件失败"""

    code = "AGGREGATE_UPLOAD_FAILURE"

    def __init__(self, message: str, failures: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or {}


class StateError(SiteDeployError):
    """违反进度上报的状态约束（例如向已结束的步骤添加任务）"""

    code = "INVALID_STATE"
