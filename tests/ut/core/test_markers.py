"""阶段标记账本测试"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from extbuild.core.external.layout import resolve_paths
from extbuild.core.external.markers import MarkerLedger
from extbuild.core.models import Stage


@pytest.fixture()
def ledger(tmp_path: Path) -> MarkerLedger:
    return MarkerLedger(resolve_paths("libx", tmp_path))


def _set_mtime(path: Path, ns: int) -> None:
    os.utime(path, ns=(ns, ns))


class TestMarkerLedger:
    def test_touch_creates(self, ledger: MarkerLedger) -> None:
        assert not ledger.exists(Stage.DOWNLOAD)
        ledger.touch(Stage.DOWNLOAD)
        assert ledger.exists(Stage.DOWNLOAD)
        assert ledger.is_current(Stage.DOWNLOAD)

    def test_touch_newer_than_predecessor(self, ledger: MarkerLedger) -> None:
        ledger.touch(Stage.CONFIGURE)
        # 前置标记来自未来
        future = ledger.mtime_ns(Stage.CONFIGURE) + 10**12
        _set_mtime(ledger.path(Stage.CONFIGURE), future)
        ledger.touch(Stage.BUILD)
        assert ledger.mtime_ns(Stage.BUILD) > future
        assert ledger.is_current(Stage.BUILD)

    def test_touch_newer_than_successors(self, ledger: MarkerLedger) -> None:
        ledger.touch(Stage.CONFIGURE)
        ledger.touch(Stage.BUILD)
        ledger.touch(Stage.INSTALL)
        ledger.touch(Stage.CONFIGURE)
        assert ledger.mtime_ns(Stage.CONFIGURE) > ledger.mtime_ns(Stage.INSTALL)
        assert not ledger.is_current(Stage.BUILD)

    def test_stale_when_older_than_predecessor(self, ledger: MarkerLedger) -> None:
        ledger.touch(Stage.CONFIGURE)
        ledger.touch(Stage.BUILD)
        _set_mtime(ledger.path(Stage.BUILD), 1_000_000_000)
        assert not ledger.is_current(Stage.BUILD)

    def test_missing_predecessor_not_current(self, ledger: MarkerLedger) -> None:
        ledger.touch(Stage.BUILD)
        assert not ledger.is_current(Stage.BUILD)

    def test_clear_from_stage(self, ledger: MarkerLedger) -> None:
        for stage in Stage:
            ledger.touch(stage)
        removed = ledger.clear(Stage.BUILD)
        assert removed == [Stage.BUILD, Stage.INSTALL]
        assert ledger.exists(Stage.CONFIGURE)
        assert not ledger.exists(Stage.INSTALL)

    def test_snapshot(self, ledger: MarkerLedger) -> None:
        ledger.touch(Stage.DOWNLOAD)
        snap = ledger.snapshot()
        assert list(snap) == ["download", "source", "config", "build", "install"]
        assert snap["download"] is not None
        assert snap["install"] is None


class TestStageOrder:
    def test_predecessor(self) -> None:
        assert Stage.DOWNLOAD.predecessor is None
        assert Stage.CONFIGURE.predecessor == Stage.NORMALIZE
        assert Stage.INSTALL.predecessor == Stage.BUILD

    def test_successors(self) -> None:
        assert Stage.BUILD.successors == [Stage.INSTALL]
        assert Stage.INSTALL.successors == []
