"""清单声明解析与校验

清单 YAML:
    externals:
      fmt:
        url: https://github.com/fmtlib/fmt/archive/9.1.0.tar.gz
        sha256: ...
        define: [FMT_DOC=OFF]
    find:
      fmt: {inc: fmt/core.h, lib: fmt, required: true}

所有校验在任何网络或文件系统操作之前完成。
"""

from __future__ import annotations

import logging
import shlex
from typing import Any

from extbuild.core.exceptions import DeclarationError, ValidationError
from extbuild.core.external.layout import validate_name
from extbuild.core.models import FindSpec, PackageDescriptor
from extbuild.core.registry import YamlRegistry
from extbuild.utils.net import validate_url_scheme

logger = logging.getLogger(__name__)

_EXTERNAL_FIELDS = frozenset((
    "url", "sha256", "define", "config_command", "build_command",
    "install_command", "netrc", "verbose",
))
_FIND_FIELDS = frozenset(("inc", "lib", "required"))


# =========================================================================
# 字段解析
# =========================================================================

def _parse_bool(name: str, key: str, value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise DeclarationError(f"{name}: '{key}' 必须是布尔值，实际为 {value!r}")
    return value


def _parse_definitions(name: str, value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, dict):
        items = []
        for k, v in value.items():
            if isinstance(v, bool):
                v = "ON" if v else "OFF"
            items.append(f"{k}={'' if v is None else v}")
        return tuple(items)
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise DeclarationError(f"{name}: 'define' 必须是列表或字典")
    return tuple(str(v) for v in value)


def _parse_command(name: str, key: str, value: Any) -> tuple[str, ...] | None:
    """字符串按 shell 规则拆分，列表逐项转为字符串"""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            return tuple(shlex.split(value))
        except ValueError as e:
            raise DeclarationError(f"{name}: '{key}' 无法解析: {e}") from e
    if isinstance(value, list):
        return tuple(str(v) for v in value)
    raise DeclarationError(f"{name}: '{key}' 必须是字符串或列表")


def parse_descriptor(name: str, info: Any) -> PackageDescriptor:
    """将清单条目解析为 PackageDescriptor 并校验"""
    if not isinstance(info, dict):
        raise DeclarationError(f"{name}: 声明必须是字典")
    unknown = sorted(set(info) - _EXTERNAL_FIELDS)
    if unknown:
        raise DeclarationError(f"{name}: 未知字段 {unknown}", details=unknown)

    url = info.get("url")
    if not isinstance(url, str):
        raise DeclarationError(f"{name}: 缺少 url")
    sha256 = info.get("sha256") or ""
    if not isinstance(sha256, str):
        raise DeclarationError(f"{name}: 'sha256' 必须是字符串")

    descriptor = PackageDescriptor(
        name=str(name),
        url=url.strip(),
        sha256=sha256.strip(),
        definitions=_parse_definitions(name, info.get("define")),
        config_command=_parse_command(name, "config_command", info.get("config_command")),
        build_command=_parse_command(name, "build_command", info.get("build_command")),
        install_command=_parse_command(name, "install_command", info.get("install_command")),
        netrc=_parse_bool(name, "netrc", info.get("netrc")),
        verbose=_parse_bool(name, "verbose", info.get("verbose")),
    )
    validate_descriptor(descriptor)
    return descriptor


def validate_descriptor(d: PackageDescriptor) -> None:
    """收集全部问题后一次性抛出 DeclarationError"""
    validate_name(d.name)
    errors: list[str] = []
    if not d.url:
        errors.append("缺少 url")
    else:
        try:
            validate_url_scheme(d.url, context=d.name)
        except ValidationError as e:
            errors.append(str(e))
        if not d.remote_filename:
            errors.append(f"无法从 URL 解析文件名: {d.url}")
    for definition in d.definitions:
        if "=" not in definition or definition.startswith("="):
            errors.append(f"定义缺少 '=': {definition!r}")
    for key in ("config_command", "build_command", "install_command"):
        cmd = getattr(d, key)
        if cmd is not None and not cmd:
            errors.append(f"'{key}' 不能为空")
    if errors:
        raise DeclarationError(f"{d.name}: " + "; ".join(errors), details=errors)


def descriptor_to_entry(d: PackageDescriptor) -> dict[str, Any]:
    """PackageDescriptor → 清单条目（只写非默认字段）"""
    entry: dict[str, Any] = {"url": d.url}
    if d.sha256:
        entry["sha256"] = d.sha256
    if d.definitions:
        entry["define"] = list(d.definitions)
    for key in ("config_command", "build_command", "install_command"):
        cmd = getattr(d, key)
        if cmd is not None:
            entry[key] = list(cmd)
    if d.netrc:
        entry["netrc"] = True
    if d.verbose:
        entry["verbose"] = True
    return entry


def parse_find_spec(name: str, info: Any) -> FindSpec:
    if info is None:
        info = {}
    if not isinstance(info, dict):
        raise DeclarationError(f"find {name}: 声明必须是字典")
    unknown = sorted(set(info) - _FIND_FIELDS)
    if unknown:
        raise DeclarationError(f"find {name}: 未知字段 {unknown}", details=unknown)
    header = info.get("inc") or ""
    library = info.get("lib") or ""
    if not isinstance(header, str) or not isinstance(library, str):
        raise DeclarationError(f"find {name}: 'inc' / 'lib' 必须是字符串")
    return FindSpec(
        name=str(name),
        header=header,
        library=library,
        required=_parse_bool(f"find {name}", "required", info.get("required")),
    )


# =========================================================================
# 清单注册表
# =========================================================================

class ExternalRegistry(YamlRegistry):
    """清单中的 externals 声明"""

    section_key = "externals"

    def names(self) -> list[str]:
        return self._names()

    def get(self, name: str) -> PackageDescriptor:
        info = self._get_raw(name)
        if info is None:
            raise DeclarationError(
                f"外部依赖 '{name}' 不在清单中。可用: {self.names()}"
            )
        return parse_descriptor(name, info)

    def load(self) -> list[PackageDescriptor]:
        """按清单顺序解析全部声明"""
        return [self.get(name) for name in self.names()]

    def register(self, descriptor: PackageDescriptor) -> dict[str, Any]:
        validate_descriptor(descriptor)
        entry = self._put(descriptor.name, descriptor_to_entry(descriptor))
        logger.info("外部依赖已注册: %s", descriptor.name)
        return entry

    def remove(self, name: str) -> bool:
        return self._remove(name)


class FindRegistry(YamlRegistry):
    """清单中的 find 声明"""

    section_key = "find"

    def names(self) -> list[str]:
        return self._names()

    def get(self, name: str) -> FindSpec:
        if name not in self._section():
            raise DeclarationError(
                f"库定位 '{name}' 不在清单中。可用: {self.names()}"
            )
        return parse_find_spec(name, self._get_raw(name))

    def load(self) -> list[FindSpec]:
        return [self.get(name) for name in self.names()]
