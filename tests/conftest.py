"""共享 fixture: 本地 HTTP 服务、归档构造、全局状态复位"""

from __future__ import annotations

import functools
import io
import tarfile
import threading
import zipfile
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from extbuild.core.config import reset_config


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        pass


class FileServer:
    """在 root 目录上提供静态文件，记录请求路径和 Authorization 头"""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.requests: list[str] = []
        self.auth_headers: list[str] = []
        server = self

        class Handler(_QuietHandler):
            def do_GET(self) -> None:  # noqa: N802
                server.requests.append(self.path)
                server.auth_headers.append(self.headers.get("Authorization", ""))
                super().do_GET()

        self._httpd = ThreadingHTTPServer(
            ("127.0.0.1", 0), functools.partial(Handler, directory=str(root)),
        )
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)

    @property
    def base_url(self) -> str:
        host, port = self._httpd.server_address[:2]
        return f"http://{host}:{port}"

    def url(self, name: str) -> str:
        return f"{self.base_url}/{name}"

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._httpd.shutdown()
        self._httpd.server_close()


@pytest.fixture()
def file_server(tmp_path: Path):
    root = tmp_path / "www"
    root.mkdir()
    server = FileServer(root)
    server.start()
    yield server
    server.stop()


def make_tar(path: Path, files: dict[str, bytes | None]) -> Path:
    """构造 tar.gz；值为 None 表示目录"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            if data is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tf.addfile(info)
            else:
                info.size = len(data)
                info.mode = 0o644
                tf.addfile(info, io.BytesIO(data))
    return path


def make_zip(path: Path, files: dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return path


@pytest.fixture(autouse=True)
def _reset_global_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture()
def tar_factory():
    return make_tar


@pytest.fixture()
def zip_factory():
    return make_zip
