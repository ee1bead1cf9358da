"""网络工具 - 仓库 URL 安全校验"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from vendlock.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https", "ssh", "git"))
_SCP_URL_RE = re.compile(r"^[\w.\-]+@[\w.\-]+:.+$")


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验仓库 URL 仅使用 http/https/ssh/git 或 scp 形式（git@host:path）

    防止 file:// 或 ext:: 等非预期传输协议被带进 git 命令。

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    if _SCP_URL_RE.match(url):
        return
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ValidationError(f"无法解析 URL: {url} ({e})") from e
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 {'/'.join(sorted(_ALLOWED_SCHEMES))}: {url}"
        )
