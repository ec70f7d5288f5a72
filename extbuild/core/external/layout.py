"""工作目录布局推导

纯函数，不访问文件系统；同一输入始终得到同一组绝对路径。
"""

from __future__ import annotations

from pathlib import Path

from extbuild.core.exceptions import DeclarationError
from extbuild.core.models import WorkingPaths


def validate_name(name: str) -> None:
    """包名会成为目录名，禁止为空、路径分隔符和 . / .."""
    if not name or not name.strip():
        raise DeclarationError("外部依赖名称不能为空")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise DeclarationError(f"外部依赖名称非法: {name!r}")


def resolve_paths(
    name: str,
    root_dir: str | Path,
    install_dir: str | Path | None = None,
) -> WorkingPaths:
    """推导单个包的工作路径

    参数:
        name: 包名
        root_dir: 所有外部依赖的根目录
        install_dir: 共享安装前缀，为空时使用 {root_dir}/install
    """
    validate_name(name)
    root = Path(root_dir).absolute()
    top = root / name
    install = Path(install_dir).absolute() if install_dir else root / "install"
    return WorkingPaths(
        top_dir=top,
        download_dir=top / "download",
        tmp_dir=top / "tmp",
        source_dir=top / "src",
        build_dir=top / "build",
        logs_dir=top / "logs",
        install_dir=install,
    )
