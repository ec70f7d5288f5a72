"""configure / build / install 阶段执行

每个阶段由前置标记和自身标记决定: 前置不存在则阻塞，自身已是最新则跳过，
否则在 build/ 目录执行命令，成功后写入标记。失败不重试、不回滚。
"""

from __future__ import annotations

import logging
import time
from typing import Mapping

from extbuild.core.exceptions import InstallError, StageError
from extbuild.core.external.markers import MarkerLedger
from extbuild.core.external.templater import StageCommands
from extbuild.core.models import (
    BUILD_STAGES,
    CommandTemplate,
    Stage,
    StageOutcome,
    StageStatus,
    WorkingPaths,
)
from extbuild.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)

_STAGE_LABELS = {
    Stage.CONFIGURE: "configure",
    Stage.BUILD: "build",
    Stage.INSTALL: "install",
}


class StageRunner:
    """按标记门控执行构建阶段"""

    def __init__(
        self,
        executor: CommandExecutor | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._executor = executor
        self.env = dict(env) if env is not None else None

    @property
    def executor(self) -> CommandExecutor:
        return self._executor or get_executor()

    def run_stage(
        self,
        stage: Stage,
        command: CommandTemplate,
        paths: WorkingPaths,
        ledger: MarkerLedger,
        *,
        name: str = "",
        verbose: bool = False,
    ) -> StageOutcome:
        pred = stage.predecessor
        if pred is not None and not ledger.exists(pred):
            logger.debug("%s: 前置阶段 %s 未完成，跳过 %s", name, pred.value, stage.value)
            return StageOutcome(stage=stage, status=StageStatus.BLOCKED)
        if ledger.is_current(stage):
            logger.debug("%s: %s 已是最新", name, stage.value)
            return StageOutcome(stage=stage, status=StageStatus.SKIPPED)

        label = _STAGE_LABELS.get(stage, stage.value)
        argv = command.render(paths)
        logger.info("%s: %s", label, name)
        logger.debug("  命令: %s", " ".join(argv))

        log_paths: list[str] = []
        stdout_file = stderr_file = None
        if not verbose:
            stdout_file = paths.logs_dir / f"{label}-out.log"
            stderr_file = paths.logs_dir / f"{label}-err.log"
            log_paths = [str(stdout_file), str(stderr_file)]

        start = time.monotonic()
        try:
            result = self.executor.execute(
                argv,
                cwd=str(paths.build_dir),
                env=self.env,
                stdout_file=stdout_file,
                stderr_file=stderr_file,
                capture=False,
            )
        except OSError as e:
            raise StageError(
                f"{name}: {label} 命令无法启动: {argv[0] if argv else ''} - {e}",
                stage=stage.value,
            ) from e
        duration = time.monotonic() - start

        if not result.success:
            hint = f"，日志: {stderr_file}" if stderr_file else ""
            raise StageError(
                f"{name}: {label} 失败 (返回码 {result.returncode}){hint}",
                stage=stage.value,
            )

        ledger.touch(stage)
        logger.info("%s: %s 完成 (%.1fs)", name, label, duration)
        return StageOutcome(
            stage=stage,
            status=StageStatus.EXECUTED,
            duration=duration,
            log_paths=log_paths,
        )

    def run_all(
        self,
        commands: StageCommands,
        paths: WorkingPaths,
        ledger: MarkerLedger,
        *,
        name: str = "",
        verbose: bool = False,
    ) -> list[StageOutcome]:
        """依次执行 configure / build / install，最后确认 install 标记存在"""
        paths.build_dir.mkdir(parents=True, exist_ok=True)
        if not verbose:
            paths.logs_dir.mkdir(parents=True, exist_ok=True)

        outcomes = [
            self.run_stage(
                stage, commands.for_stage(stage), paths, ledger,
                name=name, verbose=verbose,
            )
            for stage in BUILD_STAGES
        ]
        if not ledger.exists(Stage.INSTALL):
            raise InstallError(f"{name}: 安装失败，未找到 {ledger.path(Stage.INSTALL)}")
        return outcomes
