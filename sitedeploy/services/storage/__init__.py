"""对象存储后端

- local.py: 本地目录后端（默认）
- memory.py: 内存后端（--dry-run / 测试）

create_storage_client() 按 endpoint 和配置构造客户端，
编排器只依赖 StorageClient 协议。
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from sitedeploy.core.exceptions import ConfigError
from sitedeploy.services.storage.local import LocalStorageClient
from sitedeploy.services.storage.memory import MemoryStorageClient

if TYPE_CHECKING:
    from sitedeploy.core.config import Config
    from sitedeploy.core.protocols import StorageClient

STORAGE_BACKENDS = ("local", "memory")

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_.\-]")


def endpoint_dir_name(endpoint: str) -> str:
    """把 endpoint 映射为本地后端下的子目录名"""
    parsed = urlparse(endpoint)
    host = parsed.netloc or parsed.path.strip("/") or "default"
    return _UNSAFE_CHARS.sub("_", host)


def create_storage_client(endpoint: str, config: Config) -> StorageClient:
    """按配置的后端为 endpoint 创建存储客户端"""
    backend = config.storage_backend
    if backend == "local":
        return LocalStorageClient(Path(config.storage_root) / endpoint_dir_name(endpoint))
    if backend == "memory":
        return MemoryStorageClient()
    raise ConfigError(f"不支持的存储后端: {backend}（可用: {list(STORAGE_BACKENDS)}）")


__all__ = [
    "LocalStorageClient",
    "MemoryStorageClient",
    "STORAGE_BACKENDS",
    "create_storage_client",
    "endpoint_dir_name",
]
