"""
soundboard.core.cors
~~~~~~~~~~~~~~~~~~~~

跨域来源匹配：HTTP 的 ``CORSMiddleware`` 与 WebSocket 握手共用同一套规则。

``ALLOWED_ORIGINS`` 中的条目可以包含 ``*`` 通配符（如 ``https://*.vercel.app``），
通配条目会被转换成正则交给 ``allow_origin_regex``。
"""
from __future__ import annotations

import re

from soundboard.core.settings import Settings


def split_origins(origins: list[str]) -> tuple[list[str], str | None]:
    """将来源列表拆分为精确来源与合并后的通配正则。

    Returns:
        ``(精确来源列表, 通配正则或 None)``。
    """
    exact = [origin for origin in origins if "*" not in origin]
    patterns = [
        re.escape(origin).replace(r"\*", "[^/]*")
        for origin in origins
        if "*" in origin
    ]
    regex = "|".join(f"(?:{p})" for p in patterns) if patterns else None
    return exact, regex


def is_origin_allowed(origin: str | None, settings: Settings) -> bool:
    """判断来源是否被允许。

    没有 ``Origin`` 头（curl、移动端等非浏览器客户端）时直接放行。
    """
    if origin is None or settings.allow_cors_all_origins:
        return True
    exact, regex = split_origins(settings.ALLOWED_ORIGINS)
    if origin in exact:
        return True
    return regex is not None and re.fullmatch(regex, origin) is not None
