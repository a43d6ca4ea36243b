import json
import logging
import os
import sys
from typing import Any, MutableMapping


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured debug output.

    Produces one JSON object per log record with fields: ts, level, logger, msg.
    Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class NodeLogger(logging.LoggerAdapter):
    """Prefix every message with a node label, e.g. ``[/docs] [push]``.

    ``child("push")`` returns a new adapter with one more prefix segment.
    """

    def __init__(self, logger: logging.Logger, *prefixes: str) -> None:
        super().__init__(logger, {})
        self.prefixes = tuple(p for p in prefixes if p)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        if not self.prefixes:
            return msg, kwargs
        label = " ".join(f"[{p}]" for p in self.prefixes)
        return f"{label} {msg}", kwargs

    def child(self, prefix: str) -> "NodeLogger":
        return NodeLogger(self.logger, *self.prefixes, prefix)


DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers kept at WARNING unless --debug is on
NOISY_LOGGERS = ("urllib3", "requests", "charset_normalizer")


def _formatter(log_format: str, with_name: bool = False) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    name = " %(name)s" if with_name else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s", datefmt=DATE_FORMAT
    )


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """Configure logging for a docsync command.

    Records go to stderr so ``--json`` output on stdout stays parseable.
    ``LOG_LEVEL`` picks the level (default INFO); *debug* forces DEBUG.
    With *log_file* every record is also appended to that file, tagged with
    its logger name.  *debug_format* is ``"text"`` or ``"json"``.
    """
    if debug:
        log_level = logging.DEBUG
    else:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_level = getattr(logging, env_level, logging.INFO)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(debug_format))
    handlers: list[logging.Handler] = [console]

    if log_file:
        to_file = logging.FileHandler(log_file, mode="a")
        to_file.setFormatter(_formatter(debug_format, with_name=True))
        handlers.append(to_file)

    logging.basicConfig(level=log_level, handlers=handlers)

    if log_level != logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
