"""核心数据模型

外部依赖流水线的数据类集中定义，其他模块统一从此处导入。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union
from urllib.parse import unquote, urlparse

INSTALL_DIR_PLACEHOLDER = "<INSTALL_DIR>"


# =========================================================================
# 依赖声明
# =========================================================================


@dataclass(frozen=True)
class PackageDescriptor:
    """单个外部依赖的声明，解析后不再修改"""

    name: str
    url: str
    sha256: str = ""
    definitions: tuple[str, ...] = ()          # KEY=VALUE，传给默认 configure 命令
    config_command: tuple[str, ...] | None = None
    build_command: tuple[str, ...] | None = None
    install_command: tuple[str, ...] | None = None
    netrc: bool = False                        # 下载时必须使用 netrc 凭据
    verbose: bool = False                      # 阶段输出直接打印到终端

    @property
    def remote_filename(self) -> str:
        """URL 路径的最后一段，如 v3.3.2.tar.gz"""
        path = unquote(urlparse(self.url).path)
        return path.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class FindSpec:
    """库定位声明：头文件和/或库文件"""

    name: str
    header: str = ""
    library: str = ""
    required: bool = False


# =========================================================================
# 工作路径与阶段
# =========================================================================


class Stage(str, Enum):
    """流水线阶段，定义顺序即执行顺序"""

    DOWNLOAD = "download"
    NORMALIZE = "source"
    CONFIGURE = "config"
    BUILD = "build"
    INSTALL = "install"

    @property
    def stamp_name(self) -> str:
        return f"{self.value}.stamp"

    @property
    def predecessor(self) -> Stage | None:
        order = list(Stage)
        idx = order.index(self)
        return order[idx - 1] if idx > 0 else None

    @property
    def successors(self) -> list[Stage]:
        order = list(Stage)
        return order[order.index(self) + 1:]


BUILD_STAGES = (Stage.CONFIGURE, Stage.BUILD, Stage.INSTALL)


@dataclass(frozen=True)
class WorkingPaths:
    """由 (包名, 根目录, 安装目录) 推导的工作路径，每次调用重新计算"""

    top_dir: Path
    download_dir: Path
    tmp_dir: Path
    source_dir: Path
    build_dir: Path
    logs_dir: Path
    install_dir: Path

    def stamp(self, stage: Stage) -> Path:
        return self.top_dir / stage.stamp_name

    def to_dict(self) -> dict[str, str]:
        return {
            "top_dir": str(self.top_dir),
            "download_dir": str(self.download_dir),
            "tmp_dir": str(self.tmp_dir),
            "source_dir": str(self.source_dir),
            "build_dir": str(self.build_dir),
            "logs_dir": str(self.logs_dir),
            "install_dir": str(self.install_dir),
        }


# =========================================================================
# 结构化命令
# =========================================================================


class PathRef(Enum):
    """命令参数中的路径引用，执行前才解析为绝对路径"""

    INSTALL_DIR = "install_dir"
    SOURCE_DIR = "source_dir"


Segment = Union[str, PathRef]


@dataclass(frozen=True)
class CommandArg:
    """单个命令参数，由字面量片段和路径引用拼接而成"""

    segments: tuple[Segment, ...]

    @classmethod
    def literal(cls, text: str) -> CommandArg:
        return cls((text,))

    @classmethod
    def ref(cls, ref: PathRef, prefix: str = "") -> CommandArg:
        return cls((prefix, ref) if prefix else (ref,))

    @classmethod
    def parse(cls, text: str) -> CommandArg:
        """将参数中的 <INSTALL_DIR> 占位符拆为 PathRef.INSTALL_DIR 片段"""
        segments: list[Segment] = []
        for i, part in enumerate(text.split(INSTALL_DIR_PLACEHOLDER)):
            if i > 0:
                segments.append(PathRef.INSTALL_DIR)
            if part:
                segments.append(part)
        return cls(tuple(segments))

    def render(self, refs: dict[PathRef, Path]) -> str:
        return "".join(
            str(refs[s]) if isinstance(s, PathRef) else s for s in self.segments
        )

    def __str__(self) -> str:
        return "".join(
            f"<{s.name}>" if isinstance(s, PathRef) else s for s in self.segments
        )


@dataclass(frozen=True)
class CommandTemplate:
    """阶段命令：参数列表 + 是否来自用户覆盖"""

    args: tuple[CommandArg, ...]
    overridden: bool = False

    def render(self, paths: WorkingPaths) -> list[str]:
        refs = {
            PathRef.INSTALL_DIR: paths.install_dir,
            PathRef.SOURCE_DIR: paths.source_dir,
        }
        return [a.render(refs) for a in self.args]

    def __str__(self) -> str:
        return " ".join(str(a) for a in self.args)


# =========================================================================
# 执行结果
# =========================================================================


class StageStatus(str, Enum):
    """单阶段执行状态"""

    EXECUTED = "executed"
    SKIPPED = "skipped"     # 标记已是最新
    BLOCKED = "blocked"     # 前置阶段标记不存在


@dataclass
class StageOutcome:
    """单阶段执行结果"""

    stage: Stage
    status: StageStatus
    duration: float = 0.0
    artifact: str = ""
    log_paths: list[str] = field(default_factory=list)


@dataclass
class PipelineResult:
    """单个包的流水线结果"""

    name: str
    paths: WorkingPaths
    outcomes: list[StageOutcome] = field(default_factory=list)

    @property
    def executed(self) -> list[Stage]:
        return [o.stage for o in self.outcomes if o.status == StageStatus.EXECUTED]

    @property
    def success(self) -> bool:
        return self.paths.stamp(Stage.INSTALL).exists()


@dataclass
class InterfaceTarget:
    """接口聚合：下游构建目标使用的 include 目录和链接库"""

    name: str
    found: bool = False
    include_dirs: list[str] = field(default_factory=list)
    link_libraries: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "include_dirs": list(self.include_dirs),
            "link_libraries": list(self.link_libraries),
        }
