"""内存对象存储: 用于 --dry-run 和测试"""

from __future__ import annotations

import asyncio
import copy
from pathlib import Path

from sitedeploy.core.exceptions import RemoteOperationError
from sitedeploy.core.models import ServiceProperties


class MemoryStorageClient:
    """把容器和 blob 保存在进程内存中"""

    def __init__(self, properties: ServiceProperties | None = None) -> None:
        self.properties = properties or ServiceProperties()
        self.containers: dict[str, dict[str, bytes]] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def get_service_properties(self) -> ServiceProperties:
        return copy.deepcopy(self.properties)

    async def set_service_properties(self, properties: ServiceProperties) -> None:
        self.properties = copy.deepcopy(properties)

    async def create_container_if_not_exists(self, name: str) -> bool:
        async with self._lock:
            if name in self.containers:
                return False
            self.containers[name] = {}
            return True

    async def upload_blob(
        self, container: str, blob_name: str, file_path: str, content_type: str,
    ) -> None:
        data = await asyncio.to_thread(Path(file_path).read_bytes)
        async with self._lock:
            if container not in self.containers:
                raise RemoteOperationError(f"容器不存在: {container}")
            self.containers[container][blob_name] = data
            self.content_types[(container, blob_name)] = content_type
