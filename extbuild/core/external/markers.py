"""阶段标记账本

标记文件的 mtime（纳秒）即阶段完成时间。
标记只在阶段成功后写入，从不自动删除；clear() 仅供用户显式失效。
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from extbuild.core.models import Stage, WorkingPaths

logger = logging.getLogger(__name__)


class MarkerLedger:
    """单个包的阶段标记集合"""

    def __init__(self, paths: WorkingPaths) -> None:
        self.paths = paths

    def path(self, stage: Stage) -> Path:
        return self.paths.stamp(stage)

    def exists(self, stage: Stage) -> bool:
        return self.path(stage).is_file()

    def mtime_ns(self, stage: Stage) -> int | None:
        try:
            return self.path(stage).stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def is_current(self, stage: Stage) -> bool:
        """标记存在，且不早于前置阶段的标记"""
        own = self.mtime_ns(stage)
        if own is None:
            return False
        pred = stage.predecessor
        if pred is None:
            return True
        pred_ns = self.mtime_ns(pred)
        return pred_ns is not None and own >= pred_ns

    def touch(self, stage: Stage) -> Path:
        """写入标记

        时间戳严格晚于前置标记和所有已存在的后续标记，
        因此重新执行的阶段会使其下游全部过期。
        """
        target = time.time_ns()
        pred = stage.predecessor
        if pred is not None:
            pred_ns = self.mtime_ns(pred)
            if pred_ns is not None:
                target = max(target, pred_ns + 1)
        for succ in stage.successors:
            succ_ns = self.mtime_ns(succ)
            if succ_ns is not None:
                target = max(target, succ_ns + 1)

        path = self.path(stage)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        os.utime(path, ns=(target, target))
        logger.debug("标记写入: %s", path)
        return path

    def clear(self, from_stage: Stage = Stage.DOWNLOAD) -> list[Stage]:
        """删除 from_stage 及其后续阶段的标记，返回实际删除的阶段"""
        removed: list[Stage] = []
        for stage in [from_stage, *from_stage.successors]:
            path = self.path(stage)
            if path.is_file():
                path.unlink()
                removed.append(stage)
        return removed

    def snapshot(self) -> dict[str, int | None]:
        """各阶段标记的 mtime（纳秒），不存在为 None"""
        return {stage.value: self.mtime_ns(stage) for stage in Stage}
