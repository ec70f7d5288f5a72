"""extbuild 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from typing import TYPE_CHECKING

import click

from extbuild import __version__
from extbuild.core.config import DEFAULT_CONFIG_FILE, init_config
from extbuild.core.exceptions import ExtBuildError
from extbuild.utils.logger import setup_logging

if TYPE_CHECKING:
    from extbuild.services.external_service import ExternalService


def _svc(manifest: str = "") -> "ExternalService":
    """按当前配置构造外部依赖服务"""
    from extbuild.services.external_service import ExternalService
    return ExternalService(manifest)


def _fail(exc: ExtBuildError) -> click.ClickException:
    """业务异常 → ClickException（退出码 1）"""
    return click.ClickException(f"[{exc.code}] {exc}")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-c", "--config", "config_path", default=DEFAULT_CONFIG_FILE,
    show_default=True, help="配置文件路径（不存在时使用默认配置）",
)
def main(config_path: str) -> None:
    """extbuild - 外部依赖下载 / 校验 / 构建 / 安装"""
    setup_logging(
        level=os.getenv("EXTBUILD_LOG_LEVEL", "INFO"),
        json_output=os.getenv("EXTBUILD_LOG_JSON", "") == "1",
    )
    try:
        init_config(config_path)
    except ExtBuildError as e:
        raise _fail(e) from e


# 注册各领域子命令
from extbuild.cli.cmd_external import register as _reg_external  # noqa: E402
from extbuild.cli.cmd_find import register as _reg_find  # noqa: E402

_reg_external(main)
_reg_find(main)
