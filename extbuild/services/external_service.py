"""外部依赖服务 — 清单读取 / 构建 / 定位 / 状态

串联清单注册表、构建流水线和库定位器，供 CLI 调用。

执行策略:
  - 按清单顺序逐个构建，第一个致命错误即停止
  - 标记即缓存；clean 是唯一的人工失效入口
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from typing import Any

from extbuild.core.config import Config, get_config
from extbuild.core.external.locator import LibraryLocator
from extbuild.core.external.markers import MarkerLedger
from extbuild.core.external.pipeline import ExternalPipeline
from extbuild.core.external.registry import ExternalRegistry, FindRegistry
from extbuild.core.models import (
    FindSpec,
    InterfaceTarget,
    PackageDescriptor,
    PipelineResult,
    Stage,
)
from extbuild.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class ExternalService:
    """外部依赖生命周期管理"""

    def __init__(
        self,
        manifest: str = "",
        config: Config | None = None,
        *,
        executor: CommandExecutor | None = None,
        pipeline: ExternalPipeline | None = None,
    ) -> None:
        self.config = config or get_config()
        self.manifest = manifest or self.config.manifest
        self.externals = ExternalRegistry(self.manifest)
        self.finds = FindRegistry(self.manifest)
        self.pipeline = pipeline or ExternalPipeline(self.config, executor=executor)

    # ---- 清单 ----

    def list_all(self) -> list[dict[str, Any]]:
        """列出清单中的外部依赖及其安装状态"""
        items = []
        for d in self.externals.load():
            ledger = MarkerLedger(self.pipeline.paths_for(d.name))
            items.append({
                "name": d.name,
                "url": d.url,
                "sha256": d.sha256,
                "installed": ledger.exists(Stage.INSTALL),
            })
        return items

    def register(self, descriptor: PackageDescriptor) -> dict[str, Any]:
        return self.externals.register(descriptor)

    # ---- 构建 ----

    def build(self, name: str, *, verbose: bool = False) -> PipelineResult:
        descriptor = self.externals.get(name)
        return self.pipeline.run(descriptor, verbose=verbose)

    def build_all(
        self, names: list[str] | None = None, *, verbose: bool = False,
    ) -> list[PipelineResult]:
        """顺序构建，致命错误直接向上抛出，后续包不再执行"""
        targets = names or self.externals.names()
        # 先解析全部声明，声明错误在任何 IO 之前暴露
        descriptors = [self.externals.get(n) for n in targets]
        results = []
        for d in descriptors:
            results.append(self.pipeline.run(d, verbose=verbose))
        logger.info("外部依赖构建完成: %d 个", len(results))
        return results

    # ---- 定位 ----

    def locator(self) -> LibraryLocator:
        return LibraryLocator(self.config.install_root)

    def find(self, name: str) -> InterfaceTarget:
        return self.locator().locate_spec(self.finds.get(name))

    def find_all(self, names: list[str] | None = None) -> dict[str, InterfaceTarget]:
        specs: list[FindSpec] = (
            [self.finds.get(n) for n in names] if names else self.finds.load()
        )
        locator = self.locator()
        return {s.name: locator.locate_spec(s) for s in specs}

    # ---- 状态 / 清理 ----

    def paths(self, name: str) -> dict[str, str]:
        return self.pipeline.paths_for(name).to_dict()

    def status(self, name: str) -> dict[str, str]:
        """各阶段标记的完成时间，未完成为空字符串"""
        ledger = MarkerLedger(self.pipeline.paths_for(name))
        result: dict[str, str] = {}
        for stage, ns in ledger.snapshot().items():
            result[stage] = (
                datetime.fromtimestamp(ns / 1e9).isoformat(timespec="seconds")
                if ns is not None else ""
            )
        return result

    def clean(self, name: str, stage: Stage = Stage.DOWNLOAD) -> list[Stage]:
        """使 stage 及其后续阶段失效

        从 source 阶段起清理时一并删除 src/，否则 create-once 的源码目录不会重新解压。
        """
        paths = self.pipeline.paths_for(name)
        removed = MarkerLedger(paths).clear(stage)
        if stage in (Stage.DOWNLOAD, Stage.NORMALIZE) and paths.source_dir.exists():
            shutil.rmtree(paths.source_dir)
        logger.info(
            "已清理 %s: %s", name, ", ".join(s.value for s in removed) or "无标记",
        )
        return removed
