"""CLI — 库定位命令"""

from __future__ import annotations

import click

from extbuild.cli import _fail, _svc
from extbuild.core.exceptions import ExtBuildError
from extbuild.utils.yaml_io import save_yaml


def register(group: click.Group) -> None:
    group.add_command(find)


@click.command()
@click.argument("names", nargs=-1)
@click.option("--manifest", default="", help="清单路径（默认取配置中的 manifest）")
@click.option("--output", default=None, help="将接口聚合写入 YAML 文件")
def find(names: tuple[str, ...], manifest: str, output: str | None) -> None:
    """在安装前缀中定位头文件和库（不指定则定位清单 find 中的全部条目）"""
    try:
        targets = _svc(manifest).find_all(list(names))
    except ExtBuildError as e:
        raise _fail(e) from e

    for name, t in targets.items():
        mark = "found" if t.found else "missing"
        click.echo(f"  {name:20s} [{mark}]")
        for d in t.include_dirs:
            click.echo(f"      include: {d}")
        for lib in t.link_libraries:
            click.echo(f"      link:    {lib}")

    if output:
        save_yaml(output, {name: t.to_dict() for name, t in targets.items()})
        click.echo(f"已写入: {output}")
