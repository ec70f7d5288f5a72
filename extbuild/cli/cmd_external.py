"""CLI — 外部依赖构建命令"""

from __future__ import annotations

import click

from extbuild.cli import _fail, _svc
from extbuild.core.exceptions import ExtBuildError
from extbuild.core.models import PackageDescriptor, Stage

_MANIFEST_HELP = "清单路径（默认取配置中的 manifest）"


def register(group: click.Group) -> None:
    group.add_command(build)
    group.add_command(list_externals)
    group.add_command(status)
    group.add_command(clean)
    group.add_command(paths)
    group.add_command(add)


@click.command()
@click.argument("names", nargs=-1)
@click.option("--manifest", default="", help=_MANIFEST_HELP)
@click.option("--verbose", is_flag=True, help="阶段输出直接打印到终端")
def build(names: tuple[str, ...], manifest: str, verbose: bool) -> None:
    """下载、校验、构建并安装外部依赖（不指定则按清单顺序全部构建）"""
    try:
        results = _svc(manifest).build_all(list(names), verbose=verbose)
    except ExtBuildError as e:
        raise _fail(e) from e
    for r in results:
        done = ", ".join(s.value for s in r.executed) or "已是最新"
        click.echo(f"  {r.name:20s} {done}")


@click.command(name="list")
@click.option("--manifest", default="", help=_MANIFEST_HELP)
def list_externals(manifest: str) -> None:
    """列出清单中的外部依赖"""
    try:
        items = _svc(manifest).list_all()
    except ExtBuildError as e:
        raise _fail(e) from e
    if not items:
        click.echo("清单中没有外部依赖。")
        return
    for it in items:
        state = "installed" if it["installed"] else "-"
        digest = "sha256" if it["sha256"] else "no-digest"
        click.echo(f"  {it['name']:20s} [{state:9s}] ({digest}) {it['url']}")


@click.command()
@click.argument("name")
@click.option("--manifest", default="", help=_MANIFEST_HELP)
def status(name: str, manifest: str) -> None:
    """显示各阶段标记的完成时间"""
    try:
        stamps = _svc(manifest).status(name)
    except ExtBuildError as e:
        raise _fail(e) from e
    for stage, when in stamps.items():
        click.echo(f"  {stage:10s} {when or '-'}")


@click.command()
@click.argument("name")
@click.option(
    "--stage", type=click.Choice([s.value for s in Stage]), default=Stage.DOWNLOAD.value,
    show_default=True, help="从该阶段起失效",
)
@click.option("--manifest", default="", help=_MANIFEST_HELP)
def clean(name: str, stage: str, manifest: str) -> None:
    """删除阶段标记，下次构建从该阶段重新执行"""
    try:
        removed = _svc(manifest).clean(name, Stage(stage))
    except ExtBuildError as e:
        raise _fail(e) from e
    click.echo(f"已清理: {', '.join(s.value for s in removed) or '无标记'}")


@click.command()
@click.argument("name")
@click.option("--manifest", default="", help=_MANIFEST_HELP)
def paths(name: str, manifest: str) -> None:
    """显示包的工作目录布局"""
    try:
        layout = _svc(manifest).paths(name)
    except ExtBuildError as e:
        raise _fail(e) from e
    for key, value in layout.items():
        click.echo(f"  {key:14s} {value}")


@click.command()
@click.argument("name")
@click.option("--url", required=True, help="源码归档 URL (http/https)")
@click.option("--sha256", default="", help="归档 SHA256")
@click.option("--define", "defines", multiple=True, help="KEY=VALUE，可多次指定")
@click.option("--config-command", default=None, help="覆盖 configure 命令")
@click.option("--build-command", default=None, help="覆盖 build 命令")
@click.option("--install-command", default=None, help="覆盖 install 命令")
@click.option("--netrc", is_flag=True, help="下载时使用 netrc 凭据")
@click.option("--verbose", is_flag=True, help="阶段输出直接打印到终端")
@click.option("--manifest", default="", help=_MANIFEST_HELP)
def add(
    name: str, url: str, sha256: str, defines: tuple[str, ...],
    config_command: str | None, build_command: str | None,
    install_command: str | None, netrc: bool, verbose: bool, manifest: str,
) -> None:
    """向清单注册外部依赖"""
    from extbuild.core.external.registry import parse_descriptor

    info: dict = {"url": url, "sha256": sha256, "define": list(defines)}
    for key, value in (
        ("config_command", config_command),
        ("build_command", build_command),
        ("install_command", install_command),
    ):
        if value is not None:
            info[key] = value
    info["netrc"] = netrc
    info["verbose"] = verbose
    try:
        descriptor: PackageDescriptor = parse_descriptor(name, info)
        _svc(manifest).register(descriptor)
    except ExtBuildError as e:
        raise _fail(e) from e
    click.echo(f"已注册: {name}")
