from __future__ import annotations

import logging

from recruitdesk.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("multipart", "python_multipart", "urllib3", "httpx")

_LOG_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once per process; later calls are no-ops."""
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    name = (level or get_settings().log_level).upper()
    resolved = getattr(logging, name, logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(resolved, logging.WARNING))
    _LOG_CONFIGURED = True
