from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

LOGGER_NAME = "docurag"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# chatty third-party loggers, only shown in debug mode
_QUIET_LOGGERS = ("httpx", "httpcore", "pypdf")

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

_LEVEL_PREFIX: dict[int, str] = {
    logging.ERROR: "⛔ ",
    logging.CRITICAL: "⛔ ",
    logging.WARNING: "⚠️ ",
}


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in a fixed timezone and prefixes warnings and errors with a marker."""

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
            # third-party records with mismatched format args are dropped
            return ""

        # work on a copy, the record is shared between the console and file handler
        record = logging.makeLogRecord(record.__dict__)
        record.msg = _LEVEL_PREFIX.get(record.levelno, "") + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(TimezoneFormatter):
    """Console formatter that colors a line when the record carries a ``color`` attribute.

    The attribute is set by passing ``color=<name>`` to :class:`ColorLogger` methods.
    """

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if line and ansi else line


class ColorLogger:
    """Wrapper around :class:`logging.Logger` adding an optional ``color=`` keyword.

    Usage::

        logger.info("Ingested 'report.pdf' (12 chunks)", color="green")
        logger.info("Reaped %d idle session(s).", 2, color="yellow")

    Colors only reach the console handler; the log file stays plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, method: str, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        # keep the caller's frame as the record origin
        kwargs.setdefault("stacklevel", 3)
        getattr(self._logger, method)(msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log("debug", msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log("info", msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log("warning", msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log("error", msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._log("critical", msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        self._log("exception", msg, args, color, kwargs)

    def __getattr__(self, name):
        """Delegate all other Logger attributes (e.g. setLevel, handlers) transparently."""
        return getattr(self._logger, name)


def _build_logging_config(tz_name: str, log_file: str | None) -> dict:
    formatter_args = {"format": LOG_FORMAT, "datefmt": LOG_DATEFMT, "tz_name": tz_name}
    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": loglevel,
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": loglevel,
            "filename": log_file,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"()": TimezoneFormatter, **formatter_args},
            "colored": {"()": ColoredFormatter, **formatter_args},
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": loglevel,
        },
    }


def setup_logging() -> ColorLogger:
    """Configure console and file logging and return the application logger.

    The log file is written to $ROOT_DIR/logs/app.log unless LOG_TO_FILE is false.
    """
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    log_file = None
    if os.getenv("LOG_TO_FILE", "true").lower() in ("true", "1", "yes"):
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, "app.log")

    logging.config.dictConfig(_build_logging_config(tz_name, log_file))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug_mode else logging.WARNING)
    # pypdf warns on every slightly malformed xref table
    logging.getLogger("pypdf").setLevel(logging.DEBUG if debug_mode else logging.ERROR)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
