"""本地目录对象存储

目录布局:
    <root>/_service.yml                    服务级属性
    <root>/<container>/<blob path>         blob 内容
    <root>/_content_types/<container>.yml  blob → Content-Type 索引

容器目录就是对外托管的站点根目录，只存放 blob 本身。

适合把静态站点发布到本机目录（由 nginx 等直接托管）或做部署演练。
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path, PurePosixPath

from sitedeploy.core.exceptions import RemoteOperationError
from sitedeploy.core.models import ServiceProperties
from sitedeploy.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)

PROPERTIES_FILE = "_service.yml"
CONTENT_TYPE_DIR = "_content_types"
_RESERVED_NAMES = (PROPERTIES_FILE, CONTENT_TYPE_DIR)


def _copy(src: str, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)


class LocalStorageClient:
    """以本地目录模拟存储账户"""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._index_lock = asyncio.Lock()

    async def get_service_properties(self) -> ServiceProperties:
        data = await asyncio.to_thread(load_yaml, self.root / PROPERTIES_FILE)
        return ServiceProperties.from_dict(data)

    async def set_service_properties(self, properties: ServiceProperties) -> None:
        await asyncio.to_thread(save_yaml, self.root / PROPERTIES_FILE, properties.to_dict())

    async def create_container_if_not_exists(self, name: str) -> bool:
        path = self._container_path(name)
        if path.is_dir():
            return False
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
        logger.info("已创建容器: %s", path)
        return True

    async def upload_blob(
        self, container: str, blob_name: str, file_path: str, content_type: str,
    ) -> None:
        base = self._container_path(container)
        if not base.is_dir():
            raise RemoteOperationError(f"容器不存在: {container}")
        target = base / self._safe_blob_path(blob_name)
        try:
            await asyncio.to_thread(_copy, file_path, target)
        except OSError as e:
            raise RemoteOperationError(f"写入 blob {blob_name} 失败: {e}") from e

        async with self._index_lock:
            index_file = self._index_path(container)
            index = await asyncio.to_thread(load_yaml, index_file)
            index[blob_name] = content_type
            await asyncio.to_thread(save_yaml, index_file, index)

    def content_types(self, container: str) -> dict[str, str]:
        return load_yaml(self._index_path(container))

    def _index_path(self, container: str) -> Path:
        self._container_path(container)
        return self.root / CONTENT_TYPE_DIR / f"{container}.yml"

    def _container_path(self, name: str) -> Path:
        if (not name or "/" in name or "\\" in name
                or name in (".", "..") or name in _RESERVED_NAMES):
            raise RemoteOperationError(f"非法容器名: {name!r}")
        return self.root / name

    @staticmethod
    def _safe_blob_path(blob_name: str) -> Path:
        parts = PurePosixPath(blob_name).parts
        if not parts or blob_name.startswith("/") or ".." in parts:
            raise RemoteOperationError(f"非法 blob 名称: {blob_name!r}")
        return Path(*parts)
