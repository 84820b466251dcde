import logging
from typing import Any, Optional

from firedoc.settings import settings as api_settings

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# Loggers created through `Logger` live below this name
ROOT_LOGGER = "firedoc"

_configured = False


def setup_global_logging(level: str = "INFO") -> None:
    """Configure the root logger once in a standardized format.

    The HTTP client libraries log every request at INFO; they are held at
    WARNING unless DEBUG is asked for.

    Args:
        level: Log level name (e.g., "DEBUG", "INFO")
    """
    global _configured
    if _configured:
        return
    lvl = _LEVELS.get(level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(lvl if lvl == logging.DEBUG else max(lvl, logging.WARNING))
    _configured = True


def get_logger(name: Optional[str] = None) -> "Logger":
    """Return a firedoc logger. Ensures global logging is configured.

    Args:
        name: Component name, e.g. ``"Database"``; namespaced under ``firedoc``
    """
    return Logger(name)


def _qualify(name: Optional[str]) -> str:
    if not name:
        return ROOT_LOGGER
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return name
    return f"{ROOT_LOGGER}.{name}"


class Logger:
    """Thin wrapper over standard logging for firedoc components.

    - Names are namespaced under ``firedoc`` so applications can tune the
      whole client with one ``logging.getLogger("firedoc")``.
    - `.message(text)` is the action log: INFO under the default LOG_LEVEL,
      DEBUG when LOG_LEVEL is DEBUG, otherwise the configured level.
    - `.request(...)` records one HTTP exchange at DEBUG, or at WARNING for
      error statuses.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        if not _configured:
            setup_global_logging(api_settings.LOG_LEVEL)
        self._logger = logging.getLogger(_qualify(name))

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs) -> None:
        self._logger.critical(msg, *args, **kwargs)

    def message(self, msg: str, *args, **kwargs) -> None:
        level = (api_settings.LOG_LEVEL or "").upper()
        if level == "DEBUG":
            self.debug(msg, *args, **kwargs)
        elif level == "INFO" or level == "":
            self.info(msg, *args, **kwargs)
        else:
            self._logger.log(_LEVELS.get(level, logging.INFO), msg, *args, **kwargs)

    def request(self, method: str, path: str, status: Any = None) -> None:
        """Log one request; `status` is None before the response arrives."""
        if status is None:
            self.debug("%s %s", method, path)
        elif isinstance(status, int) and status >= 400:
            self.warning("%s %s -> %s", method, path, status)
        else:
            self.debug("%s %s -> %s", method, path, status)
