"""网络工具 — URL 安全校验与文件名解析"""

from __future__ import annotations

from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

from simplex.core.exceptions import ValidationError

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


def url_filename(url: str) -> str:
    """取 URL 路径的最后一段作为本地文件名

    Raises:
        ValidationError: 无法得到可用文件名
    """
    name = PurePosixPath(unquote(urlparse(url).path)).name
    if not name or name in (".", "..") or "\\" in name:
        raise ValidationError(f"无法从 URL 解析文件名: {url}")
    return name
