"""部署编排数据模型

数据类：
- DeploymentTarget: 部署目标（本次部署用到哪些目录、命令、资源）
- DeploymentContext: 单次部署的运行期上下文
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from sitedeploy.core.exceptions import ConfigError

if TYPE_CHECKING:
    from sitedeploy.core.config import Config
    from sitedeploy.core.models import PhaseResult
    from sitedeploy.core.protocols import StorageClient


@dataclass
class DeploymentTarget:
    """部署目标: 声明本次部署需要哪些本地目录和远端资源"""

    site_dir: str
    output_dir: str = "dist"
    install_cmd: str = "npm install"
    build_cmd: str = "npm run build"
    command_timeout: float | None = 1800

    container: str = "$web"
    index_document: str = "index.html"
    error_document: str = "index.html"

    storage_resource: str = "deploy-storage"
    storage_endpoint_output: str = "blobEndpoint"
    frontdoor_resource: str = "deploy-afd"
    frontdoor_endpoint_output: str = "endpointUrl"

    upload_concurrency: int = 0

    @property
    def site_path(self) -> Path:
        return Path(self.site_dir)

    @property
    def output_path(self) -> Path:
        return self.site_path / self.output_dir

    def validate(self) -> None:
        if not self.install_cmd.strip() or not self.build_cmd.strip():
            raise ConfigError("install_cmd / build_cmd 不能为空")
        if not self.container:
            raise ConfigError("container 不能为空")
        if self.upload_concurrency < 0:
            raise ConfigError(f"upload_concurrency 不能为负数: {self.upload_concurrency}")

    @classmethod
    def from_config(
        cls, config: Config, *, name: str = "", site_dir: str = "",
    ) -> DeploymentTarget:
        """从全局配置构建部署目标，资源名按 <name>-storage / <name>-afd 派生"""
        name = name or config.deployment_name
        target = cls(
            site_dir=site_dir or config.site_dir,
            output_dir=config.output_dir,
            install_cmd=config.install_cmd,
            build_cmd=config.build_cmd,
            command_timeout=config.command_timeout or None,
            container=config.container,
            index_document=config.index_document,
            error_document=config.error_document,
            storage_resource=f"{name}-storage",
            storage_endpoint_output=config.storage_endpoint_output,
            frontdoor_resource=f"{name}-afd",
            frontdoor_endpoint_output=config.frontdoor_endpoint_output,
            upload_concurrency=int(config.upload_concurrency),
        )
        target.validate()
        return target


@dataclass
class DeploymentContext:
    """单次部署的运行期状态，部署结束即丢弃"""

    target: DeploymentTarget
    storage_endpoint: str = ""
    storage: StorageClient | None = None
    uploaded: list[str] = field(default_factory=list)
    phases: list[PhaseResult] = field(default_factory=list)
