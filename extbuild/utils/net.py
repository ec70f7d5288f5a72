"""网络工具: URL 安全校验 + netrc 凭据"""

from __future__ import annotations

import base64
import netrc
import os
from pathlib import Path
from urllib.parse import urlparse

from extbuild.core.exceptions import TransportError, ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def default_netrc_path() -> Path:
    """$NETRC 优先，否则 ~/.netrc"""
    env = os.environ.get("NETRC", "")
    if env:
        return Path(env)
    return Path.home() / ".netrc"


def netrc_authorization(url: str, netrc_file: str | Path = "") -> str:
    """从 netrc 文件取出 URL 主机的凭据，返回 Basic Authorization 头

    凭据缺失视为传输错误，在发起任何网络请求之前抛出。
    """
    host = urlparse(url).hostname or ""
    path = Path(netrc_file) if netrc_file else default_netrc_path()
    try:
        auth = netrc.netrc(str(path)).authenticators(host)
    except (OSError, netrc.NetrcParseError) as e:
        raise TransportError(f"无法读取 netrc 文件 {path}: {e}") from e
    if auth is None:
        raise TransportError(f"netrc 中缺少主机 {host} 的凭据: {path}")
    login, _account, password = auth
    token = base64.b64encode(f"{login}:{password or ''}".encode()).decode("ascii")
    return f"Basic {token}"
