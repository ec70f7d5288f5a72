"""安装前缀中的头文件 / 库定位

只搜索 {install}/include 和 {install}/lib、{install}/lib64，不查系统路径。
"""

from __future__ import annotations

import fnmatch
import logging
import platform
from pathlib import Path

from extbuild.core.exceptions import DiscoveryError
from extbuild.core.models import FindSpec, InterfaceTarget

logger = logging.getLogger(__name__)

LIB_SUBDIRS = ("lib", "lib64")
_LIB_SUFFIXES = (".a", ".so", ".dylib", ".lib", ".dll")


def library_patterns(name: str, system: str | None = None) -> list[str]:
    """按平台生成库文件名模式，动态库优先于静态库"""
    if name.endswith(_LIB_SUFFIXES) or ".so." in name:
        return [name]
    system = system or platform.system()
    if system == "Windows":
        return [f"{name}.lib", f"lib{name}.lib", f"lib{name}.a"]
    if system == "Darwin":
        return [f"lib{name}.dylib", f"lib{name}.so", f"lib{name}.a"]
    return [f"lib{name}.so", f"lib{name}.so.*", f"lib{name}.a"]


class LibraryLocator:
    """在共享安装前缀中查找头文件与库"""

    def __init__(self, install_dir: str | Path) -> None:
        self.install_dir = Path(install_dir).absolute()

    @property
    def include_dir(self) -> Path:
        return self.install_dir / "include"

    def find_header(self, header: str) -> Path | None:
        path = self.include_dir / header
        return path if path.is_file() else None

    def find_library(self, library: str) -> Path | None:
        for sub in LIB_SUBDIRS:
            libdir = self.install_dir / sub
            if not libdir.is_dir():
                continue
            files = sorted(p.name for p in libdir.iterdir() if p.is_file())
            for pattern in library_patterns(library):
                matches = fnmatch.filter(files, pattern)
                if matches:
                    return libdir / matches[0]
        return None

    def locate(
        self,
        name: str,
        header: str = "",
        library: str = "",
        required: bool = False,
    ) -> InterfaceTarget:
        """返回接口聚合；全部请求项都找到时 found 为 True

        未找到且 required → DiscoveryError；否则警告一次，已找到的部分仍填入目标。
        """
        missing: list[str] = []
        target = InterfaceTarget(name=name)

        header_path = None
        if header:
            header_path = self.find_header(header)
            if header_path is None:
                missing.append(f"头文件 {header}")
        library_path = None
        if library:
            library_path = self.find_library(library)
            if library_path is None:
                missing.append(f"库 {library}")

        if missing:
            msg = f"{name}: 在 {self.install_dir} 中未找到 " + ", ".join(missing)
            if required:
                raise DiscoveryError(msg)
            logger.warning(msg)

        if header_path is not None:
            target.include_dirs.append(str(self.include_dir))
        if library_path is not None:
            target.link_libraries.append(str(library_path))
        if missing:
            return target

        target.found = True
        logger.info("已定位 %s: %s", name, target.to_dict())
        return target

    def locate_spec(self, spec: FindSpec) -> InterfaceTarget:
        return self.locate(spec.name, spec.header, spec.library, spec.required)
