"""Logging helpers for qbitwatch.

All modules log through the module-level functions below, which forward to the
stdlib logger named ``qbitwatch``.
"""

import logging
import sys
from typing import Any
from urllib.parse import urlparse, urlunparse

LOGGER_NAME = "qbitwatch"

# Between INFO and WARNING
SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_logger_instance: logging.Logger | None = None


def init_logger(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a stream handler to the ``qbitwatch`` logger.

    Calling it again only updates the level.

    Args:
        level: Logging level name or number.

    Returns:
        logging.Logger: The configured logger.
    """
    global _logger_instance
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level)

    if _logger_instance is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        log.addHandler(handler)
        log.propagate = False
        _logger_instance = log

    return log


def _get_logger() -> logging.Logger:
    return _logger_instance or logging.getLogger(LOGGER_NAME)


def debug(msg: str, *args: Any, **kwargs: Any) -> None:
    _get_logger().debug(msg, *args, **kwargs)


def info(msg: str, *args: Any, **kwargs: Any) -> None:
    _get_logger().info(msg, *args, **kwargs)


def success(msg: str, *args: Any, **kwargs: Any) -> None:
    _get_logger().log(SUCCESS, msg, *args, **kwargs)


def warning(msg: str, *args: Any, **kwargs: Any) -> None:
    _get_logger().warning(msg, *args, **kwargs)


def error(msg: str, *args: Any, **kwargs: Any) -> None:
    _get_logger().error(msg, *args, **kwargs)


def critical(msg: str, *args: Any, **kwargs: Any) -> None:
    _get_logger().critical(msg, *args, **kwargs)


def exception(msg: str, *args: Any, **kwargs: Any) -> None:
    _get_logger().exception(msg, *args, **kwargs)


def redact_url_password(url: str) -> str:
    """Replace the password of a URL with ``***``.

    Args:
        url: URL that may carry ``user:password@`` credentials.

    Returns:
        str: The URL with its password hidden, or the URL unchanged.
    """
    parsed = urlparse(url)
    if not parsed.password:
        return url

    netloc = f"{parsed.username}:***@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))
