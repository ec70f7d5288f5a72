"""归档解压与源码目录规整

归档解压到 tmp/，若顶层只有一个目录则将其提升为 src/，否则 tmp/ 本身成为 src/。
src/ 只创建一次；删除 src/ 才会重新解压。
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import time
import zipfile
from pathlib import Path

from extbuild.core.exceptions import ArchiveError
from extbuild.core.external.markers import MarkerLedger
from extbuild.core.models import Stage, StageOutcome, StageStatus, WorkingPaths

logger = logging.getLogger(__name__)


def _restore_zip_mode(info: zipfile.ZipInfo, target: str) -> None:
    """zipfile 不恢复权限位；Unix 生成的条目按 external_attr 高 16 位还原"""
    if info.create_system != 3 or info.is_dir():
        return
    mode = (info.external_attr >> 16) & 0o777
    if mode and not os.path.islink(target):
        os.chmod(target, mode)


def extract_archive(archive: Path, dest: Path) -> None:
    """完整解压归档，zip 走 zipfile，其余交给 tarfile 自动识别压缩格式"""
    dest.mkdir(parents=True, exist_ok=True)
    if zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                target = zf.extract(info, dest)
                _restore_zip_mode(info, target)
        return
    with tarfile.open(archive, "r:*") as tf:
        tf.extractall(dest, filter="data")


def touch_tree(root: Path) -> None:
    """将解压出的文件时间设为当前时间，符号链接不跟随"""
    now = time.time_ns()
    for dirpath, dirnames, filenames in os.walk(root):
        for entry in (*dirnames, *filenames):
            path = os.path.join(dirpath, entry)
            if os.path.islink(path):
                continue
            os.utime(path, ns=(now, now))


class ArchiveNormalizer:
    """将归档规整为 {top}/src 源码目录"""

    def __init__(self, touch: bool = True) -> None:
        self.touch = touch

    def normalize(
        self, archive: Path, paths: WorkingPaths, ledger: MarkerLedger,
    ) -> StageOutcome:
        start = time.monotonic()
        src = paths.source_dir

        if src.exists():
            logger.debug("源码目录已存在，跳过解压: %s", src)
            # 归档重新下载后 source.stamp 会过期，刷新以触发重新 configure
            if not ledger.is_current(Stage.NORMALIZE):
                ledger.touch(Stage.NORMALIZE)
            return StageOutcome(
                stage=Stage.NORMALIZE, status=StageStatus.SKIPPED, artifact=str(src),
            )

        tmp = paths.tmp_dir
        if tmp.exists():
            shutil.rmtree(tmp)

        logger.info("解压: %s -> %s", archive.name, tmp)
        try:
            extract_archive(archive, tmp)
        except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
            shutil.rmtree(tmp, ignore_errors=True)
            raise ArchiveError(f"解压失败: {archive} - {e}") from e

        if self.touch:
            touch_tree(tmp)

        entries = list(tmp.iterdir())
        if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
            entries[0].rename(src)
            shutil.rmtree(tmp)
        else:
            tmp.rename(src)
        logger.info("源码目录: %s", src)

        ledger.touch(Stage.NORMALIZE)
        return StageOutcome(
            stage=Stage.NORMALIZE,
            status=StageStatus.EXECUTED,
            duration=time.monotonic() - start,
            artifact=str(src),
        )
