"""configure / build / install 命令模板

用户覆盖命令原样使用，仅将 <INSTALL_DIR> 占位符转为路径引用；
未覆盖时生成默认的 CMake 命令。本模块无 IO。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from extbuild.core.models import (
    CommandArg,
    CommandTemplate,
    PackageDescriptor,
    PathRef,
    Stage,
)

# 宿主构建中会传给子构建的环境定义（白名单）
PROPAGATED_DEFINITIONS = ("CMAKE_OSX_DEPLOYMENT_TARGET", "BUILD_SHARED_LIBS")
BUILD_TYPE = "Release"


def collect_ambient(
    configured: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """收集白名单中的环境定义，配置值优先于环境变量，空值丢弃"""
    configured = configured or {}
    environ = environ or {}
    result: dict[str, str] = {}
    for key in PROPAGATED_DEFINITIONS:
        value = configured.get(key, environ.get(key, ""))
        if isinstance(value, bool):
            value = "ON" if value else "OFF"
        text = "" if value is None else str(value)
        if text:
            result[key] = text
    return result


@dataclass(frozen=True)
class StageCommands:
    """三个构建阶段的命令"""

    configure: CommandTemplate
    build: CommandTemplate
    install: CommandTemplate

    def for_stage(self, stage: Stage) -> CommandTemplate:
        if stage == Stage.CONFIGURE:
            return self.configure
        if stage == Stage.BUILD:
            return self.build
        if stage == Stage.INSTALL:
            return self.install
        raise ValueError(f"阶段 {stage.value} 没有构建命令")


def _override(args: Sequence[str]) -> CommandTemplate:
    return CommandTemplate(tuple(CommandArg.parse(a) for a in args), overridden=True)


def _literal(*args: str) -> tuple[CommandArg, ...]:
    return tuple(CommandArg.literal(a) for a in args)


class CommandTemplater:
    """根据包声明生成阶段命令"""

    def __init__(self, cmake: str = "cmake", generator: str = "") -> None:
        self.cmake = cmake
        self.generator = generator

    def configure_command(
        self,
        descriptor: PackageDescriptor,
        ambient: Mapping[str, str] | None = None,
    ) -> CommandTemplate:
        if descriptor.config_command is not None:
            return _override(descriptor.config_command)

        args: list[CommandArg] = [CommandArg.literal(self.cmake)]
        if self.generator:
            args.extend(_literal("-G", self.generator))
        for definition in descriptor.definitions:
            args.extend(_literal("-D", definition))
        for key, value in (ambient or {}).items():
            if value:
                args.extend(_literal("-D", f"{key}={value}"))
        args.extend(_literal("-D", f"CMAKE_BUILD_TYPE={BUILD_TYPE}"))
        args.append(CommandArg.literal("-D"))
        args.append(CommandArg.ref(PathRef.INSTALL_DIR, prefix="CMAKE_INSTALL_PREFIX="))
        args.append(CommandArg.ref(PathRef.SOURCE_DIR))
        return CommandTemplate(tuple(args))

    def build_command(self, descriptor: PackageDescriptor) -> CommandTemplate:
        if descriptor.build_command is not None:
            return _override(descriptor.build_command)
        return CommandTemplate(_literal(self.cmake, "--build", ".", "--config", BUILD_TYPE))

    def install_command(self, descriptor: PackageDescriptor) -> CommandTemplate:
        if descriptor.install_command is not None:
            return _override(descriptor.install_command)
        return CommandTemplate(_literal(self.cmake, "--install", ".", "--config", BUILD_TYPE))

    def commands(
        self,
        descriptor: PackageDescriptor,
        ambient: Mapping[str, str] | None = None,
    ) -> StageCommands:
        return StageCommands(
            configure=self.configure_command(descriptor, ambient),
            build=self.build_command(descriptor),
            install=self.install_command(descriptor),
        )
