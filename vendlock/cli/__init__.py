"""vendlock 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import click

from vendlock import __version__
from vendlock.core.config import DEFAULT_CONFIG_FILE, init_config
from vendlock.core.exceptions import VendlockError
from vendlock.utils.logger import setup_logging_from_env


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default=DEFAULT_CONFIG_FILE, help="配置文件路径")
def main(config_path: str) -> None:
    """vendlock - 依赖图解析、锁定与本地安装"""
    setup_logging_from_env()
    try:
        init_config(config_path)
    except VendlockError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e


# 注册各领域子命令
from vendlock.cli.cmd_deps import register as _reg_deps  # noqa: E402

_reg_deps(main)
