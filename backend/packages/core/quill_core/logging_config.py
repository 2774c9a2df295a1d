"""
Logging configuration.

Sets up standard library logging with a formatter that renders the
``extra={...}`` context passed at call sites as ``key=value`` pairs.
"""

import logging
import sys

# Attributes present on every LogRecord; anything else came from ``extra``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class ContextFormatter(logging.Formatter):
    """Formatter that appends extra record attributes to the message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        # Keep tracebacks at the end
        if record.exc_text and base.endswith(record.exc_text):
            head = base[: -len(record.exc_text)].rstrip("\n")
            return f"{head} [{rendered}]\n{record.exc_text}"
        return f"{base} [{rendered}]"


def init_logging(level: str | int = "INFO") -> None:
    """
    Configure root logging for the application.

    Safe to call more than once; the handler is replaced rather than
    duplicated.

    Args:
        level: Log level name or number.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(_LOG_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing.formatter, ContextFormatter):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
