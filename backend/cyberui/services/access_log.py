"""Structured access logger for security events.

Separate 'cyberui.access' logger: easy to filter or route to its own file.
"""
from __future__ import annotations

import logging

logger = logging.getLogger("cyberui.access")


def log_access(
    *,
    action: str,
    path: str = "",
    client_ip: str = "",
    result: str = "ok",
    detail: str = "",
) -> None:
    logger.info(
        "action=%s path=%s ip=%s result=%s detail=%s",
        action, path, client_ip, result, detail,
    )
