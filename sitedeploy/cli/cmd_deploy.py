"""CLI: 部署与资源输出命令"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import click

from sitedeploy.cli import _svc
from sitedeploy.core.exceptions import ConfigError, SiteDeployError
from sitedeploy.core.models import EventKind, ProgressEvent
from sitedeploy.core.reporter import ProgressReporter
from sitedeploy.services.outputs import parse_output_overrides

_MARKS = {
    EventKind.STEP_CREATED: "==>",
    EventKind.STEP_COMPLETED: "[ok]",
    EventKind.STEP_FAILED: "[x]",
    EventKind.TASK_CREATED: "  ->",
    EventKind.TASK_UPDATED: "   .",
    EventKind.TASK_COMPLETED: "  [ok]",
    EventKind.TASK_FAILED: "  [x]",
    EventKind.PUBLISH_COMPLETED: "***",
}


def register(group: click.Group) -> None:
    group.add_command(deploy)
    group.add_command(outputs)


class ClickSink:
    """把进度事件打印到终端"""

    def on_event(self, event: ProgressEvent) -> None:
        failed = event.kind in (EventKind.TASK_FAILED, EventKind.STEP_FAILED)
        line = f"{_MARKS[event.kind]} {event.message}"
        click.secho(line, fg="red" if failed else None, err=failed)


def _check_outputs(
    ctx: click.Context, param: click.Parameter, value: tuple[str, ...],
) -> tuple[str, ...]:
    """--output 格式错误时立即报参数错误，不进入部署"""
    try:
        parse_output_overrides(value)
    except ConfigError as e:
        raise click.BadParameter(str(e)) from e
    return value


def _container(outputs: tuple[str, ...], dry_run: bool):
    base = _svc()
    if not outputs and not dry_run:
        return base
    from sitedeploy.services.container import ServiceContainer
    cfg = replace(base.config, storage_backend="memory") if dry_run else base.config
    return ServiceContainer(cfg, output_overrides=parse_output_overrides(outputs))


@click.command()
@click.option("--name", default="", help="部署名（资源名前缀，默认取配置）")
@click.option("--site-dir", default="", help="静态站点目录（默认取配置）")
@click.option(
    "--output", "outputs", multiple=True, callback=_check_outputs,
    help="资源输出覆盖 resource.key=value（可多次）",
)
@click.option("--dry-run", is_flag=True, help="使用内存存储后端，不写入真实存储")
def deploy(name: str, site_dir: str, outputs: tuple[str, ...], dry_run: bool) -> None:
    """构建并发布静态站点（build → configure → upload → finalize）"""
    container = _container(outputs, dry_run)
    reporter = ProgressReporter()
    reporter.subscribe(ClickSink())
    try:
        target = container.target(name=name, site_dir=site_dir)
        outcome = asyncio.run(container.orchestrator(target, reporter).deploy())
    except SiteDeployError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e

    if not outcome.success:
        code = outcome.error.code if outcome.error else "UNKNOWN"
        raise click.ClickException(f"[{code}] {outcome.error_message}")
    click.echo(outcome.summary)


@click.command()
@click.argument("resource")
@click.argument("key")
@click.option("--timeout", type=float, default=None, help="等待资源就绪的秒数（默认取配置）")
def outputs(resource: str, key: str, timeout: float | None) -> None:
    """解析单个资源输出值"""
    from sitedeploy.services.outputs import YamlOutputResolver
    cfg = _svc().config
    resolver = YamlOutputResolver(
        cfg.outputs_file,
        timeout=cfg.output_timeout if timeout is None else timeout,
        poll_interval=cfg.poll_interval,
    )
    try:
        value = asyncio.run(resolver.get_output(resource, key))
    except SiteDeployError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
    click.echo(value)
