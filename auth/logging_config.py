"""Process-wide logging setup shared by the entry points."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _level(name: str, default: str) -> int:
    raw = (os.environ.get(name) or default).strip().upper()
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.getLevelName(default)


def configure_logging() -> None:
    """
    Configure the root logger and MSAL's logger.

    LOG_LEVEL controls the app (default INFO). MSAL_LOG_LEVEL controls the
    `msal` logger (default DEBUG, the library's verbose output). MSAL never
    logs PII because the client app is built with `enable_pii_log=False`. The
    INFO line for a token response redacts tokens and ID token claims; the full
    response is only logged at DEBUG.
    """

    root_level = _level("LOG_LEVEL", "INFO")
    logging.basicConfig(level=root_level, format=LOG_FORMAT)
    # basicConfig leaves the level alone when a server already added handlers.
    logging.getLogger().setLevel(root_level)
    logging.getLogger("msal").setLevel(_level("MSAL_LOG_LEVEL", "DEBUG"))
    # The Azure SDK logs every HTTP request at INFO.
    logging.getLogger("azure.core.pipeline.policies.http_logging_policy").setLevel(logging.WARNING)
