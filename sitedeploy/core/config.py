"""集中配置管理

部署目标、固定名称、超时和存储后端等统一在 Config 中声明，
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

from sitedeploy.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """全局配置"""

    # 部署目标（资源名由 deployment_name 派生: <name>-storage / <name>-afd）
    deployment_name: str = "deploy"
    site_dir: str = "../static-site"
    output_dir: str = "dist"

    # 构建命令
    install_cmd: str = "npm install"
    build_cmd: str = "npm run build"
    command_timeout: int = 1800

    # 静态网站
    container: str = "$web"
    index_document: str = "index.html"
    error_document: str = "index.html"

    # 资源输出
    storage_endpoint_output: str = "blobEndpoint"
    frontdoor_endpoint_output: str = "endpointUrl"
    outputs_file: str = "data/outputs.yml"
    output_timeout: float = 600.0
    poll_interval: float = 2.0

    # 存储
    storage_backend: str = "local"
    storage_root: str = "data/storage"
    upload_concurrency: int = 0  # 0 表示不限制并发

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = "configs/default.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI / Web 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/default.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
