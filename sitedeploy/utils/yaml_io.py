"""YAML 文件读写工具

配置文件、资源输出文件、本地存储的服务属性都通过这里读写。
统一 encoding="utf-8"、空文件保护、原子写入。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 资源输出文件由外部编排引擎写入，限制大小防止误读大文件
MAX_YAML_SIZE = 10 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """先写同目录临时文件再 rename，读方不会看到写了一半的文件

    轮询 outputs 文件的解析器依赖这一点。
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, str(path))
    except Exception:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 映射

    文件不存在、为空或顶层不是映射时返回空字典；
    格式错误和 IO 错误原样抛出。
    """
    p = Path(path)
    if not p.exists():
        return {}

    size = p.stat().st_size
    if size > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文件过大: {p} ({size} 字节)")

    try:
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError:
        logger.error("解析 YAML 文件失败: %s", p)
        raise

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("%s 顶层不是映射 (%s)，按空处理", p, type(data).__name__)
        return {}
    return data


def save_yaml(path: str | Path, data: Any) -> None:
    """原子写入 YAML，保持键顺序"""
    content = yaml.safe_dump(
        data, default_flow_style=False,
        allow_unicode=True, sort_keys=False,
    )
    atomic_write(Path(path), content)
