"""归档下载与校验

职责:
- 下载归档到 download/{name}-{remote_filename}（缓存命中则不下载）
- netrc 凭据
- SHA256 校验（首次使用时信任，download.stamp 记录已校验）
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import os
import time
import urllib.error
import urllib.request
from pathlib import Path

from extbuild.core.exceptions import IntegrityError, TransportError
from extbuild.core.external.markers import MarkerLedger
from extbuild.core.models import (
    PackageDescriptor,
    Stage,
    StageOutcome,
    StageStatus,
    WorkingPaths,
)
from extbuild.utils.net import netrc_authorization, validate_url_scheme

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


def file_sha256(path: Path) -> str:
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


class ArchiveFetcher:
    """归档拉取器 - 缓存优先 + HTTP(S) 下载"""

    def __init__(
        self,
        timeout: int = 600,
        netrc_file: str = "",
        verify_cached: bool = False,
    ) -> None:
        self.timeout = timeout
        self.netrc_file = netrc_file
        self.verify_cached = verify_cached

    @staticmethod
    def cache_path(descriptor: PackageDescriptor, paths: WorkingPaths) -> Path:
        return paths.download_dir / f"{descriptor.name}-{descriptor.remote_filename}"

    def acquire(
        self,
        descriptor: PackageDescriptor,
        paths: WorkingPaths,
        ledger: MarkerLedger,
    ) -> StageOutcome:
        """确保归档存在且已校验，返回 download 阶段结果（artifact 为归档路径）"""
        start = time.monotonic()
        dest = self.cache_path(descriptor, paths)

        if dest.is_file():
            # 已有 download.stamp 表示此前校验通过，首次使用后即信任
            if ledger.exists(Stage.DOWNLOAD) and not self.verify_cached:
                logger.debug("缓存命中: %s", dest)
                return StageOutcome(
                    stage=Stage.DOWNLOAD,
                    status=StageStatus.SKIPPED,
                    artifact=str(dest),
                )
            logger.info("使用已有归档: %s", dest)
        else:
            self._download(descriptor, dest)

        self.verify(descriptor, dest)
        ledger.touch(Stage.DOWNLOAD)
        return StageOutcome(
            stage=Stage.DOWNLOAD,
            status=StageStatus.EXECUTED,
            duration=time.monotonic() - start,
            artifact=str(dest),
        )

    def verify(self, descriptor: PackageDescriptor, path: Path) -> None:
        """比较 SHA256；未声明时仅警告，不一致时抛出 IntegrityError 并保留归档"""
        if not descriptor.sha256:
            logger.warning(
                "%s 未声明 sha256，跳过完整性校验: %s", descriptor.name, path.name,
            )
            return
        logger.info("校验哈希: %s", path.name)
        actual = file_sha256(path)
        if actual.lower() != descriptor.sha256.lower():
            logger.error("哈希不匹配: %s", path)
            raise IntegrityError(
                f"{descriptor.name}: 校验和不匹配 {path}: "
                f"期望 {descriptor.sha256}, 实际 {actual}",
            )
        logger.info("哈希匹配: %s", path.name)

    def _download(self, descriptor: PackageDescriptor, dest: Path) -> None:
        url = descriptor.url
        validate_url_scheme(url, context=f"external {descriptor.name}")
        headers = {}
        if descriptor.netrc:
            headers["Authorization"] = netrc_authorization(url, self.netrc_file)

        dest.parent.mkdir(parents=True, exist_ok=True)
        part = dest.with_name(dest.name + ".part")
        logger.info("下载: %s", url)
        request = urllib.request.Request(url, headers=headers)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as resp:  # nosec B310
                expected = resp.headers.get("Content-Length")
                received = 0
                with open(part, "wb") as f:
                    for chunk in iter(lambda: resp.read(CHUNK_SIZE), b""):
                        f.write(chunk)
                        received += len(chunk)
        except (urllib.error.HTTPError, urllib.error.URLError, OSError,
                http.client.HTTPException) as e:
            part.unlink(missing_ok=True)
            raise TransportError(f"下载失败: {url} - {e}") from e

        # 对端提前关闭连接时 read() 不报错，只能按 Content-Length 判断
        if expected is not None and expected.strip().isdigit() and received != int(expected):
            part.unlink(missing_ok=True)
            raise TransportError(
                f"下载不完整: {url} - 期望 {int(expected)} 字节, 实际 {received} 字节",
            )
        os.replace(part, dest)
        logger.info("已保存: %s", dest)
