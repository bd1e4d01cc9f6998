"""CLI: 杂项命令（Content-Type 查询、Web 服务）"""

from __future__ import annotations

import click


def register(group: click.Group) -> None:
    group.add_command(content_type)
    group.add_command(serve)


@click.command(name="content-type")
@click.argument("files", nargs=-1, required=True)
def content_type(files: tuple[str, ...]) -> None:
    """查看文件上传时使用的 Content-Type"""
    from sitedeploy.core.content_types import content_type_for
    for f in files:
        click.echo(f"{f}\t{content_type_for(f)}")


@click.command()
@click.option("--host", default="127.0.0.1", help="监听地址")
@click.option("--port", default=8888, help="监听端口")
def serve(host: str, port: int) -> None:
    """启动部署 API 服务（触发部署、轮询进度）"""
    from sitedeploy.web.app import run_server
    run_server(host=host, port=port)
