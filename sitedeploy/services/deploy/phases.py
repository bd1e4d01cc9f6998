"""部署阶段实现 - 4 阶段流水线

阶段顺序：
1. build - 安装依赖并构建静态站点
2. configure - 开启存储账户的静态网站托管
3. upload - 并发上传构建产物
4. finalize - 解析公开访问地址

前三个阶段各自在顶层步骤下创建一个任务，捕获并上报自己的失败，
返回 PhaseResult 而不是抛异常；取消 (CancelledError) 总是在标记任务失败后继续向上抛。
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Callable

from sitedeploy.core.content_types import content_type_for
from sitedeploy.core.exceptions import (
    AggregateUploadError,
    DependencyUnresolvedError,
    ExecutionError,
    NotFoundError,
    RemoteOperationError,
    SiteDeployError,
)
from sitedeploy.core.models import PhaseResult, StaticWebsite

if TYPE_CHECKING:
    from sitedeploy.core.protocols import CommandExecutor, OutputResolver, StorageClient
    from sitedeploy.core.reporter import StepHandle, TaskHandle
    from sitedeploy.services.deploy.models import DeploymentContext

logger = logging.getLogger(__name__)

StorageFactory = Callable[[str], "StorageClient"]


def blob_name_for(path: PurePath, root: PurePath) -> str:
    """文件相对构建输出目录的路径，统一使用正斜杠"""
    return path.relative_to(root).as_posix()


def collect_files(root: Path) -> list[Path]:
    """递归列出目录下全部文件（按路径排序）"""
    return sorted(p for p in root.rglob("*") if p.is_file())


def _fail(
    task: TaskHandle, phase: str, error: SiteDeployError, prefix: str = "",
) -> PhaseResult:
    message = f"{prefix}: {error}" if prefix else str(error)
    task.fail(message)
    return PhaseResult.failed(phase, error, message)


class DeploymentPhases:
    """部署阶段集合"""

    def __init__(
        self,
        *,
        executor: CommandExecutor,
        resolver: OutputResolver,
        storage_factory: StorageFactory,
    ) -> None:
        self.executor = executor
        self.resolver = resolver
        self.storage_factory = storage_factory

    # ---- 阶段 1 ----

    async def build(self, step: StepHandle, ctx: DeploymentContext) -> PhaseResult:
        """阶段1: 在站点目录依次执行依赖安装和构建命令"""
        target = ctx.target
        with step.create_task("Building static site") as task:
            try:
                site = target.site_path
                if not site.is_dir():
                    return _fail(task, "build", NotFoundError(
                        f"静态站点目录不存在: {site}", path=str(site),
                    ))

                for cmd in (target.install_cmd, target.build_cmd):
                    logger.info("在 %s 中执行: %s", site, cmd)
                    task.update(f"Running {cmd}")
                    r = await self.executor.execute(
                        cmd, cwd=str(site), timeout=target.command_timeout,
                    )
                    if not r.success:
                        return _fail(task, "build", ExecutionError(
                            f"{cmd} 失败 (exit code {r.returncode}): {r.stderr.strip()}",
                            returncode=r.returncode, stderr=r.stderr,
                        ))

                message = "Successfully built static site"
                task.complete(message)
                return PhaseResult.ok("build", message)
            except asyncio.CancelledError:
                task.fail("构建已取消")
                raise
            except SiteDeployError as e:
                return _fail(task, "build", e, "构建失败")
            except Exception as e:  # noqa: BLE001 - 例如 npm 不在 PATH 中
                return _fail(task, "build", ExecutionError(str(e)), "构建失败")

    # ---- 阶段 2 ----

    async def configure(self, step: StepHandle, ctx: DeploymentContext) -> PhaseResult:
        """阶段2: 读-改-写服务属性，只替换 static_website 子属性"""
        target = ctx.target
        with step.create_task("Configuring static website service") as task:
            try:
                task.update(f"Resolving {target.storage_resource}.{target.storage_endpoint_output}")
                endpoint = await self.resolver.get_output(
                    target.storage_resource, target.storage_endpoint_output,
                )
                if not endpoint:
                    return _fail(task, "configure", DependencyUnresolvedError(
                        f"无法获取存储账户的 blob endpoint ({target.storage_resource})",
                        resource=target.storage_resource,
                        key=target.storage_endpoint_output,
                    ))
                ctx.storage_endpoint = endpoint
                ctx.storage = self.storage_factory(endpoint)

                task.update("Updating service properties")
                properties = await ctx.storage.get_service_properties()
                properties.static_website = StaticWebsite(
                    enabled=True,
                    index_document=target.index_document,
                    error_document_404_path=target.error_document,
                )
                await ctx.storage.set_service_properties(properties)

                message = "Successfully configured static website service"
                task.complete(message)
                return PhaseResult.ok("configure", message)
            except asyncio.CancelledError:
                task.fail("静态网站配置已取消")
                raise
            except SiteDeployError as e:
                return _fail(task, "configure", e, "静态网站配置失败")
            except Exception as e:  # noqa: BLE001 - 存储 SDK 的异常类型不可枚举
                return _fail(task, "configure", RemoteOperationError(str(e)), "静态网站配置失败")

    # ---- 阶段 3 ----

    async def upload(self, step: StepHandle, ctx: DeploymentContext) -> PhaseResult:
        """阶段3: 确保容器存在，并发上传构建输出目录下的全部文件"""
        target = ctx.target
        with step.create_task("Uploading static files to storage") as task:
            try:
                storage = ctx.storage
                if storage is None:
                    storage = ctx.storage = self.storage_factory(ctx.storage_endpoint)
                await storage.create_container_if_not_exists(target.container)

                dist = target.output_path
                if not dist.is_dir():
                    return _fail(task, "upload", NotFoundError(
                        f"构建输出目录不存在: {dist}", path=str(dist),
                    ))

                files = collect_files(dist)
                logger.info("上传 %d 个文件到容器 %s", len(files), target.container)
                task.update(f"Uploading {len(files)} files")

                failures = await self._upload_all(storage, ctx, dist, files)
                if failures:
                    names = ", ".join(sorted(failures))
                    return _fail(task, "upload", AggregateUploadError(
                        f"{len(failures)}/{len(files)} 个文件上传失败: {names}; "
                        f"{next(iter(failures.values()))}",
                        failures=failures,
                    ), "文件上传失败")

                message = f"Successfully uploaded {len(files)} files to static website"
                task.complete(message)
                return PhaseResult.ok("upload", message)
            except asyncio.CancelledError:
                task.fail("文件上传已取消")
                raise
            except SiteDeployError as e:
                return _fail(task, "upload", e, "文件上传失败")
            except Exception as e:  # noqa: BLE001 - 存储 SDK 的异常类型不可枚举
                return _fail(task, "upload", RemoteOperationError(str(e)), "文件上传失败")

    async def _upload_all(
        self, storage: StorageClient, ctx: DeploymentContext,
        dist: Path, files: list[Path],
    ) -> dict[str, str]:
        """同时发起全部上传并等待汇合，返回 {blob 名: 错误信息}

        upload_concurrency > 0 时用信号量限制同时进行的上传数。
        """
        target = ctx.target
        limit = target.upload_concurrency
        sem = asyncio.Semaphore(limit) if limit > 0 else None
        names = [blob_name_for(f, dist) for f in files]

        async def _one(path: Path, blob_name: str) -> None:
            content_type = content_type_for(path)
            if sem is None:
                await storage.upload_blob(target.container, blob_name, str(path), content_type)
                return
            async with sem:
                await storage.upload_blob(target.container, blob_name, str(path), content_type)

        results = await asyncio.gather(
            *(_one(f, n) for f, n in zip(files, names)),
            return_exceptions=True,
        )
        # 单个上传被取消时 gather 把取消当作普通结果返回，这里还原为取消
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
        failures: dict[str, str] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                failures[name] = str(result) or type(result).__name__
                logger.error("上传失败 %s: %s", name, failures[name])
            else:
                ctx.uploaded.append(name)
        return failures

    # ---- 阶段 4 ----

    async def finalize(self, ctx: DeploymentContext) -> str:
        """阶段4: 解析边缘路由资源的公开访问地址"""
        target = ctx.target
        endpoint = await self.resolver.get_output(
            target.frontdoor_resource, target.frontdoor_endpoint_output,
        )
        if not endpoint:
            raise DependencyUnresolvedError(
                f"无法获取访问地址 ({target.frontdoor_resource}.{target.frontdoor_endpoint_output})",
                resource=target.frontdoor_resource,
                key=target.frontdoor_endpoint_output,
            )
        return endpoint
