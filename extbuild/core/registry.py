"""YAML 注册表基类

清单文件中的各个 section（externals, find）共享相同的加载、保存、增删改查逻辑。
子类只需指定 section_key，即可继承完整 CRUD。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from extbuild.core.exceptions import DeclarationError
from extbuild.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class YamlRegistry:
    """YAML 文件注册表基类

    子类用法:
        class MyRegistry(YamlRegistry):
            section_key = "items"
    """

    section_key: str = "entries"

    def __init__(self, registry_file: str | Path = "") -> None:
        self.registry_file = Path(self._resolve_registry_file(registry_file))
        try:
            self._data: dict[str, Any] = load_yaml(self.registry_file)
        except (yaml.YAMLError, ValueError) as e:
            raise DeclarationError(f"无法读取清单 {self.registry_file}: {e}") from e

    @staticmethod
    def _resolve_registry_file(registry_file: str | Path) -> str:
        """未指定时使用 Config.manifest"""
        if registry_file:
            return str(registry_file)
        from extbuild.core.config import get_config
        return get_config().manifest

    def _section(self) -> dict[str, Any]:
        """获取当前 section 字典（自动创建）"""
        section = self._data.setdefault(self.section_key, {})
        if section is None:
            section = self._data[self.section_key] = {}
        if not isinstance(section, dict):
            raise DeclarationError(
                f"{self.registry_file}: '{self.section_key}' 必须是字典"
            )
        return section

    def _save(self) -> None:
        """持久化到 YAML 文件"""
        save_yaml(self.registry_file, self._data)

    def _put(self, name: str, entry: dict[str, Any]) -> dict[str, Any]:
        """写入条目并保存"""
        self._section()[name] = entry
        self._save()
        return entry

    def _get_raw(self, name: str) -> Any:
        """获取原始条目"""
        return self._section().get(name)

    def _names(self) -> list[str]:
        """按清单顺序列出条目名"""
        return [str(k) for k in self._section()]

    def _remove(self, name: str) -> bool:
        """删除条目"""
        section = self._section()
        if name not in section:
            return False
        del section[name]
        self._save()
        return True
