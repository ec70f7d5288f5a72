"""单包完整流水线

布局推导 → 命令模板 → 下载校验 → 解压规整 → configure / build / install。
每一步消费上一步的输出并写入标记，任何致命错误立即中止本包。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from extbuild.core.config import Config, get_config
from extbuild.core.external.fetcher import ArchiveFetcher
from extbuild.core.external.layout import resolve_paths
from extbuild.core.external.markers import MarkerLedger
from extbuild.core.external.normalizer import ArchiveNormalizer
from extbuild.core.external.registry import validate_descriptor
from extbuild.core.external.stages import StageRunner
from extbuild.core.external.templater import (
    CommandTemplater,
    StageCommands,
    collect_ambient,
)
from extbuild.core.models import PackageDescriptor, PipelineResult, WorkingPaths
from extbuild.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class ExternalPipeline:
    """外部依赖构建流水线

    组件均可注入，默认按 Config 构造。
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        executor: CommandExecutor | None = None,
        fetcher: ArchiveFetcher | None = None,
        normalizer: ArchiveNormalizer | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config or get_config()
        self.environ = dict(os.environ if environ is None else environ)
        self.templater = CommandTemplater(self.config.cmake, self.config.generator)
        self.fetcher = fetcher or ArchiveFetcher(
            timeout=self.config.download_timeout,
            netrc_file=self.config.netrc_file,
            verify_cached=self.config.verify_cached,
        )
        self.normalizer = normalizer or ArchiveNormalizer(
            touch=self.config.touch_extracted,
        )
        self.runner = StageRunner(executor=executor, env=self._stage_env())

    def _stage_env(self) -> dict[str, str]:
        """阶段命令的环境: 去掉 unset_env 中列出的变量（如 CC / CXX）"""
        drop = {str(v) for v in self.config.unset_env}
        return {k: v for k, v in self.environ.items() if k not in drop}

    def paths_for(self, name: str) -> WorkingPaths:
        return resolve_paths(name, self.config.root_dir, self.config.install_root)

    def commands_for(self, descriptor: PackageDescriptor) -> StageCommands:
        ambient = collect_ambient(self.config.ambient_definitions, self.environ)
        return self.templater.commands(descriptor, ambient)

    def run(self, descriptor: PackageDescriptor, *, verbose: bool = False) -> PipelineResult:
        """执行单包流水线，返回各阶段结果

        verbose 与声明中的 verbose 任一为真时阶段输出直接打印到终端。
        """
        validate_descriptor(descriptor)
        logger.info("外部依赖: %s", descriptor.name)

        paths = self.paths_for(descriptor.name)
        commands = self.commands_for(descriptor)
        ledger = MarkerLedger(paths)
        result = PipelineResult(name=descriptor.name, paths=paths)

        download = self.fetcher.acquire(descriptor, paths, ledger)
        result.outcomes.append(download)

        source = self.normalizer.normalize(Path(download.artifact), paths, ledger)
        result.outcomes.append(source)

        result.outcomes.extend(self.runner.run_all(
            commands, paths, ledger,
            name=descriptor.name,
            verbose=verbose or descriptor.verbose,
        ))
        return result
