from __future__ import annotations

from contextvars import ContextVar, Token
import logging
import sys

_VERBOSE_LOGGING: ContextVar[bool] = ContextVar("yupdate_verbose_logging", default=False)

_LOG_FORMAT = "%(levelname)s: %(message)s"


def get_verbose_logging() -> bool:
    return _VERBOSE_LOGGING.get()


def set_verbose_logging(enabled: bool) -> Token[bool]:
    return _VERBOSE_LOGGING.set(bool(enabled))


def configure_logging() -> None:
    level = logging.DEBUG if get_verbose_logging() else logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr)
