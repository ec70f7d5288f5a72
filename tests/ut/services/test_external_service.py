"""外部依赖服务测试（阶段命令由记录执行器代替）"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from extbuild.core.config import Config
from extbuild.core.exceptions import DeclarationError, DiscoveryError, StageError
from extbuild.core.models import PackageDescriptor, Stage
from extbuild.services.external_service import ExternalService
from extbuild.utils.shell import CommandResult


class RecordingExecutor:
    def __init__(self, fail: str = "") -> None:
        self.calls: list[list[str]] = []
        self.fail = fail

    def execute(self, cmd, **kwargs) -> CommandResult:
        self.calls.append(list(cmd))
        return CommandResult(returncode=1 if cmd[0] == self.fail else 0)


@pytest.fixture()
def served(file_server, tar_factory):
    tar_factory(file_server.root / "a-1.0.tar.gz", {"a-1.0/CMakeLists.txt": b""})
    tar_factory(file_server.root / "b-2.0.tar.gz", {"b-2.0/CMakeLists.txt": b""})
    return file_server


def _svc(tmp_path: Path, served, executor: RecordingExecutor, **extra) -> ExternalService:
    manifest = tmp_path / "externals.yml"
    manifest.write_text(yaml.dump({
        "externals": {
            "a": {"url": served.url("a-1.0.tar.gz"), **extra},
            "b": {"url": served.url("b-2.0.tar.gz")},
        },
        "find": {"a": {"inc": "a.h", "required": True}},
    }))
    cfg = Config(root_dir=str(tmp_path / "ext"), unset_env=["CC"])
    return ExternalService(str(manifest), cfg, executor=executor)


class TestExternalService:
    def test_list_all(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        items = svc.list_all()
        assert [i["name"] for i in items] == ["a", "b"]
        assert not items[0]["installed"]

    def test_build_default_cmake_commands(self, tmp_path: Path, served) -> None:
        ex = RecordingExecutor()
        svc = _svc(tmp_path, served, ex)
        result = svc.build("a")
        assert result.success
        assert result.executed == [
            Stage.DOWNLOAD, Stage.NORMALIZE, Stage.CONFIGURE, Stage.BUILD, Stage.INSTALL,
        ]
        assert ex.calls[0][0] == "cmake"
        assert ex.calls[0][-1] == str(result.paths.source_dir)
        assert ex.calls[1] == ["cmake", "--build", ".", "--config", "Release"]

    def test_build_all_in_order(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        results = svc.build_all()
        assert [r.name for r in results] == ["a", "b"]
        assert svc.list_all()[1]["installed"]

    def test_build_all_stops_on_first_error(self, tmp_path: Path, served) -> None:
        ex = RecordingExecutor(fail="make")
        svc = _svc(tmp_path, served, ex, build_command=["make"])
        with pytest.raises(StageError):
            svc.build_all()
        assert not (tmp_path / "ext" / "b").exists()

    def test_build_all_unknown_name_before_io(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        with pytest.raises(DeclarationError):
            svc.build_all(["a", "missing"])
        assert served.requests == []

    def test_unset_env(self, tmp_path: Path, served, monkeypatch) -> None:
        monkeypatch.setenv("CC", "gcc-ancient")
        svc = _svc(tmp_path, served, RecordingExecutor())
        assert "CC" not in svc.pipeline.runner.env

    def test_status_and_clean(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        svc.build("a")
        assert all(svc.status("a").values())
        removed = svc.clean("a", Stage.BUILD)
        assert removed == [Stage.BUILD, Stage.INSTALL]
        status = svc.status("a")
        assert status["config"] and not status["install"]

    def test_clean_source_removes_src(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        result = svc.build("a")
        svc.clean("a", Stage.NORMALIZE)
        assert not result.paths.source_dir.exists()
        again = svc.build("a")
        assert again.executed == [Stage.NORMALIZE, Stage.CONFIGURE, Stage.BUILD, Stage.INSTALL]

    def test_paths(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        p = svc.paths("a")
        assert p["source_dir"] == str(tmp_path / "ext" / "a" / "src")
        assert p["install_dir"] == str(tmp_path / "ext" / "install")

    def test_find_required_missing(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        with pytest.raises(DiscoveryError):
            svc.find("a")

    def test_find_after_install(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        inc = tmp_path / "ext" / "install" / "include"
        inc.mkdir(parents=True)
        (inc / "a.h").write_text("")
        targets = svc.find_all()
        assert targets["a"].found
        assert targets["a"].include_dirs == [str(inc)]

    def test_register(self, tmp_path: Path, served) -> None:
        svc = _svc(tmp_path, served, RecordingExecutor())
        svc.register(PackageDescriptor(name="c", url=served.url("c.tar.gz")))
        assert svc.externals.names() == ["a", "b", "c"]
