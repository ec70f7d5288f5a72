"""阶段执行测试 - 标记门控 / 失败处理 / 日志重定向"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from extbuild.core.exceptions import InstallError, StageError
from extbuild.core.external.layout import resolve_paths
from extbuild.core.external.markers import MarkerLedger
from extbuild.core.external.stages import StageRunner
from extbuild.core.external.templater import StageCommands
from extbuild.core.models import CommandArg, CommandTemplate, Stage, StageStatus
from extbuild.utils.shell import CommandResult


class RecordingExecutor:
    """记录调用，按阶段返回预设返回码"""

    def __init__(self, codes: dict[str, int] | None = None) -> None:
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self.codes = codes or {}

    def execute(self, cmd, **kwargs) -> CommandResult:
        self.calls.append(list(cmd))
        self.kwargs.append(kwargs)
        return CommandResult(returncode=self.codes.get(cmd[0], 0))


def _cmd(*args: str) -> CommandTemplate:
    return CommandTemplate(tuple(CommandArg.parse(a) for a in args), overridden=True)


@pytest.fixture()
def paths(tmp_path: Path):
    return resolve_paths("libx", tmp_path / "ext", tmp_path / "prefix")


@pytest.fixture()
def ledger(paths) -> MarkerLedger:
    led = MarkerLedger(paths)
    led.touch(Stage.DOWNLOAD)
    led.touch(Stage.NORMALIZE)
    return led


COMMANDS = StageCommands(
    configure=_cmd("configure", "--prefix=<INSTALL_DIR>"),
    build=_cmd("build"),
    install=_cmd("install"),
)


class TestRunStage:
    def test_blocked_without_predecessor(self, paths) -> None:
        ex = RecordingExecutor()
        out = StageRunner(ex).run_stage(Stage.CONFIGURE, COMMANDS.configure, paths, MarkerLedger(paths))
        assert out.status == StageStatus.BLOCKED
        assert ex.calls == []

    def test_executes_and_touches(self, paths, ledger) -> None:
        ex = RecordingExecutor()
        out = StageRunner(ex).run_stage(Stage.CONFIGURE, COMMANDS.configure, paths, ledger)
        assert out.status == StageStatus.EXECUTED
        assert ex.calls == [["configure", f"--prefix={paths.install_dir}"]]
        assert ex.kwargs[0]["cwd"] == str(paths.build_dir)
        assert ledger.is_current(Stage.CONFIGURE)

    def test_skipped_when_current(self, paths, ledger) -> None:
        ex = RecordingExecutor()
        runner = StageRunner(ex)
        runner.run_stage(Stage.CONFIGURE, COMMANDS.configure, paths, ledger)
        out = runner.run_stage(Stage.CONFIGURE, COMMANDS.configure, paths, ledger)
        assert out.status == StageStatus.SKIPPED
        assert len(ex.calls) == 1

    def test_logs_redirected(self, paths, ledger) -> None:
        ex = RecordingExecutor()
        out = StageRunner(ex).run_stage(Stage.CONFIGURE, COMMANDS.configure, paths, ledger)
        assert ex.kwargs[0]["stdout_file"] == paths.logs_dir / "configure-out.log"
        assert ex.kwargs[0]["stderr_file"] == paths.logs_dir / "configure-err.log"
        assert len(out.log_paths) == 2

    def test_verbose_goes_to_terminal(self, paths, ledger) -> None:
        ex = RecordingExecutor()
        out = StageRunner(ex).run_stage(
            Stage.CONFIGURE, COMMANDS.configure, paths, ledger, verbose=True,
        )
        assert ex.kwargs[0]["stdout_file"] is None
        assert ex.kwargs[0]["capture"] is False
        assert out.log_paths == []

    def test_failure_raises_and_no_marker(self, paths, ledger) -> None:
        ex = RecordingExecutor({"configure": 2})
        with pytest.raises(StageError, match="返回码 2") as exc_info:
            StageRunner(ex).run_stage(Stage.CONFIGURE, COMMANDS.configure, paths, ledger, name="libx")
        assert exc_info.value.stage == "config"
        assert not ledger.exists(Stage.CONFIGURE)

    def test_unstartable_command(self, paths, ledger) -> None:
        cmd = _cmd("/nonexistent/tool-xyz")
        paths.build_dir.mkdir(parents=True)
        with pytest.raises(StageError, match="无法启动"):
            StageRunner().run_stage(Stage.CONFIGURE, cmd, paths, ledger)
        assert not ledger.exists(Stage.CONFIGURE)

    def test_env_passed(self, paths, ledger) -> None:
        ex = RecordingExecutor()
        StageRunner(ex, env={"A": "1"}).run_stage(Stage.CONFIGURE, COMMANDS.configure, paths, ledger)
        assert ex.kwargs[0]["env"] == {"A": "1"}


class TestRunAll:
    def test_all_stages(self, paths, ledger) -> None:
        ex = RecordingExecutor()
        outs = StageRunner(ex).run_all(COMMANDS, paths, ledger)
        assert [o.status for o in outs] == [StageStatus.EXECUTED] * 3
        assert [c[0] for c in ex.calls] == ["configure", "build", "install"]
        assert paths.build_dir.is_dir()

    def test_build_failure_stops(self, paths, ledger) -> None:
        ex = RecordingExecutor({"build": 1})
        with pytest.raises(StageError) as exc_info:
            StageRunner(ex).run_all(COMMANDS, paths, ledger)
        assert exc_info.value.stage == "build"
        assert ledger.exists(Stage.CONFIGURE)
        assert not ledger.exists(Stage.BUILD)
        assert not ledger.exists(Stage.INSTALL)
        assert [c[0] for c in ex.calls] == ["configure", "build"]

    def test_resume_after_fix(self, paths, ledger) -> None:
        with pytest.raises(StageError):
            StageRunner(RecordingExecutor({"build": 1})).run_all(COMMANDS, paths, ledger)
        ex = RecordingExecutor()
        StageRunner(ex).run_all(COMMANDS, paths, ledger)
        assert [c[0] for c in ex.calls] == ["build", "install"]

    def test_install_only_after_marker_removed(self, paths, ledger) -> None:
        StageRunner(RecordingExecutor()).run_all(COMMANDS, paths, ledger)
        ledger.path(Stage.INSTALL).unlink()
        ex = RecordingExecutor()
        StageRunner(ex).run_all(COMMANDS, paths, ledger)
        assert [c[0] for c in ex.calls] == ["install"]

    def test_reconfigure_cascades(self, paths, ledger) -> None:
        StageRunner(RecordingExecutor()).run_all(COMMANDS, paths, ledger)
        ledger.touch(Stage.NORMALIZE)
        ex = RecordingExecutor()
        StageRunner(ex).run_all(COMMANDS, paths, ledger)
        assert [c[0] for c in ex.calls] == ["configure", "build", "install"]

    def test_blocked_pipeline_raises_install_error(self, paths) -> None:
        with pytest.raises(InstallError):
            StageRunner(RecordingExecutor()).run_all(COMMANDS, paths, MarkerLedger(paths))


class TestRealProcess:
    def test_output_in_log_files(self, paths, ledger) -> None:
        cmd = _cmd(
            sys.executable, "-c",
            "import sys; print('hello-out'); print('hello-err', file=sys.stderr)",
        )
        paths.build_dir.mkdir(parents=True)
        StageRunner().run_stage(Stage.CONFIGURE, cmd, paths, ledger)
        assert "hello-out" in (paths.logs_dir / "configure-out.log").read_text()
        assert "hello-err" in (paths.logs_dir / "configure-err.log").read_text()
