"""sitedeploy 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from typing import Any

import click

from sitedeploy import __version__
from sitedeploy.services.container import get_container
from sitedeploy.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-c", "--config", "config_path", default="configs/default.yml",
    envvar="SITEDEPLOY_CONFIG", help="配置文件",
)
def main(config_path: str) -> None:
    """sitedeploy - 静态站点构建与发布编排"""
    from sitedeploy.core.config import init_config
    setup_logging(
        level=os.getenv("SITEDEPLOY_LOG_LEVEL", "INFO"),
        json_output=os.getenv("SITEDEPLOY_LOG_JSON", "") == "1",
    )
    init_config(config_path)


# 注册各领域子命令
from sitedeploy.cli.cmd_deploy import register as _reg_deploy  # noqa: E402
from sitedeploy.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_deploy(main)
_reg_misc(main)
