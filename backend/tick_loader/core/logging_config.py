from __future__ import annotations

import logging
from typing import Callable

_FORMAT = '[%(levelname)s] %(name)s: %(message)s'


class HostNotifyHandler(logging.Handler):
    """Forward ERROR records to the host's notification primitive.

    The host wipes whatever notifier it was given at the end of each
    invocation, so the loop reinstalls one bound to the current host every
    time (see ``install_error_reporter``).
    """

    def __init__(self, notify: Callable[[str], None]) -> None:
        super().__init__(level=logging.ERROR)
        self.notify = notify
        self.setFormatter(logging.Formatter('%(name)s: %(message)s'))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            self.notify(message)
        except Exception:
            self.handleError(record)


_REPORTER: HostNotifyHandler | None = None


def _ensure_stream_handler(logger: logging.Logger) -> None:
    handler_exists = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, HostNotifyHandler)
        for h in logger.handlers
    )
    if handler_exists:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)


def configure_logging(level_name: str | None = None) -> None:
    """Configure the root logger with the project's console format."""

    lvl = getattr(logging, (level_name or 'INFO').upper(), None)
    if not isinstance(lvl, int):
        lvl = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(lvl)
    _ensure_stream_handler(root_logger)


def install_error_reporter(notify: Callable[[str], None], logger_name: str = 'tick_loader') -> HostNotifyHandler:
    """Replace the error reporter on ``logger_name`` with one bound to ``notify``."""

    global _REPORTER

    logger = logging.getLogger(logger_name)
    if _REPORTER is not None:
        logger.removeHandler(_REPORTER)
    _REPORTER = HostNotifyHandler(notify)
    logger.addHandler(_REPORTER)
    return _REPORTER


def remove_error_reporter(logger_name: str = 'tick_loader') -> None:
    global _REPORTER

    if _REPORTER is not None:
        logging.getLogger(logger_name).removeHandler(_REPORTER)
        _REPORTER = None
