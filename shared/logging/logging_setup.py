from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}

# connection indicator colours, keyed by store status value
STATUS_COLORS: dict[str, str] = {
    "remote-ok": "green",
    "remote-error": "red",
    "local-only": "yellow",
}


def _resolve_level() -> int:
    """LOG_LEVEL (debug, info, warning, error), read at setup time. Unknown names fall back to info."""
    return _LEVELS.get(os.getenv("LOG_LEVEL", "info").strip().lower(), logging.INFO)


class CustomFormatter(logging.Formatter):
    """Formatter with timezone-aware timestamps and a level marker for warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # malformed format args; log the raw template instead of failing
            message = str(record.msg)

        if record.levelno >= logging.ERROR:
            message = "⛔ " + message
        elif record.levelno == logging.WARNING:
            message = "⚠️ " + message

        # args are already merged into message
        record.msg = message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter that paints a line when its record carries a ``color`` attribute.

    The attribute is set through ``extra={"color": ...}`` or the ``color=``
    keyword of :class:`ColorLogger`. Unknown colour names are ignored.
    """

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Wrapper around :class:`logging.Logger` whose log methods accept ``color=``.

    Usage::

        logger.info("Loaded %d document(s)", count)
        logger.info("Store status: %s", status, color=STATUS_COLORS[status])

    Colors only reach the console handler; the log file stays plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs = {**kwargs, "extra": {**(kwargs.get("extra") or {}), "color": color}}
        # stacklevel points %(funcName)s and friends at the caller, not this wrapper
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        """Delegate all other Logger attributes (e.g. setLevel, handlers) transparently."""
        return getattr(self._logger, name)


def _build_config(log_file: str, tz_name: str, level: int) -> dict:
    line_format = "%(asctime)s - %(levelname)s - %(message)s"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": CustomFormatter,
                "format": line_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": line_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "level": level,
                "filename": log_file,
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": level,
        },
    }


def setup_logging(name: str = "dts_tracker") -> ColorLogger:
    """Configure console + file logging and return the application logger.

    The log file is <ROOT_DIR>/logs/app.log (ROOT_DIR defaults to the working
    directory). Timestamps use TIMEZONE (default UTC), the level LOG_LEVEL.
    """
    log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    os.makedirs(log_dir, exist_ok=True)
    level = _resolve_level()

    logging.config.dictConfig(_build_config(os.path.join(log_dir, "app.log"), os.getenv("TIMEZONE", "UTC"), level))

    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if level == logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(name))
