"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from extbuild.core.exceptions import ConfigError
from extbuild.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "extbuild.yml"

_STR_FIELDS = ("root_dir", "install_dir", "manifest", "cmake", "generator", "netrc_file")
_BOOL_FIELDS = ("verify_cached", "touch_extracted")


@dataclass
class Config:
    """extbuild 全局配置"""

    # 目录
    root_dir: str = "build/_external"
    install_dir: str = ""                 # 为空时使用 {root_dir}/install
    manifest: str = "externals.yml"

    # 构建工具
    cmake: str = "cmake"
    generator: str = ""                   # 为空时使用 CMake 默认生成器
    ambient_definitions: dict = field(default_factory=dict)
    unset_env: list = field(default_factory=list)

    # 下载
    netrc_file: str = ""
    download_timeout: int = 600
    verify_cached: bool = False

    # 解压
    touch_extracted: bool = True

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"无法读取配置文件 {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        cfg.validate()
        return cfg

    def validate(self) -> None:
        for name in _STR_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str):
                raise ConfigError(f"{name} 必须是字符串: {value!r}")
        for name in _BOOL_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ConfigError(f"{name} 必须是布尔值: {value!r}")
        if not isinstance(self.ambient_definitions, dict):
            raise ConfigError("ambient_definitions 必须是字典")
        if not isinstance(self.unset_env, list):
            raise ConfigError("unset_env 必须是列表")
        timeout = self.download_timeout
        if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout <= 0:
            raise ConfigError(
                f"download_timeout 必须是正整数: {self.download_timeout!r}"
            )

    @property
    def install_root(self) -> Path:
        """共享安装前缀"""
        if self.install_dir:
            return Path(self.install_dir)
        return Path(self.root_dir) / "install"

    def to_dict(self) -> dict:
        from dataclasses import asdict
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current


def reset_config() -> None:
    """恢复为未初始化状态（测试使用）"""
    global _current  # noqa: PLW0603
    _current = None
