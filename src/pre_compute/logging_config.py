"""Logging setup for the pre-compute stage.

Every record is redacted before it is rendered, so dataset keys and the
worker authorization token never reach the output even when a caller logs
them by mistake.

``LogContext`` binds task fields (``chain_task_id``, ``dataset``) for the
duration of a block. Both formatters attach them: the text formatter as a
trailing ``[chain_task_id=... dataset=...]``, the JSON formatter as
top-level keys. Errors logged with ``extra=exc.as_log_fields()`` keep their
code and context in JSON output.
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pre_compute.secrets import redact_string, redact_structure

LOG_FORMATS = ("text", "json")
_ERROR_FIELDS = ("error_code", "error_message", "error_context")
_HANDLER_MARKER = "_pre_compute_handler"

_bound_fields: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar(
    "pre_compute_log_fields", default=MappingProxyType({})
)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the fields bound to the current context."""
    return dict(_bound_fields.get())


class LogContext:
    """Bind fields to every record logged inside the block; blocks nest."""

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._token: contextvars.Token[Mapping[str, Any]] | None = None

    def __enter__(self) -> LogContext:
        merged = {**_bound_fields.get(), **self.fields}
        self._token = _bound_fields.set(MappingProxyType(merged))
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _bound_fields.reset(self._token)
            self._token = None


def _render_message(record: logging.LogRecord) -> str:
    msg = redact_structure(record.msg)
    args = redact_structure(record.args)
    text = str(msg)
    if args:
        try:
            text = text % args
        except (TypeError, ValueError):
            pass
    return redact_string(text)


class TextFormatter(logging.Formatter):
    """``<utc time> | LEVEL | logger | message [k=v ...]``"""

    converter = time.gmtime

    def __init__(self) -> None:
        super().__init__("%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        record.message = _render_message(record)
        record.asctime = self.formatTime(record, self.datefmt)
        line = self.formatMessage(record)
        fields = redact_structure(get_log_context())
        if fields:
            line += " [" + " ".join(f"{key}={value}" for key, value in fields.items()) + "]"
        if record.exc_info:
            line += "\n" + redact_string(self.formatException(record.exc_info))
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line; bound fields and error fields are top-level keys."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": _render_message(record),
        }
        payload.update(redact_structure(get_log_context()))
        for name in _ERROR_FIELDS:
            if hasattr(record, name):
                payload[name] = redact_structure(getattr(record, name))
        if record.exc_info:
            payload["exc_info"] = redact_string(self.formatException(record.exc_info))
        # SecretStr values render as <REDACTED> through str().
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(*, level: str | int | None = None, fmt: str = "text") -> None:
    """Install one stderr handler on the root logger.

    Calling it again swaps the formatter and level of the handler installed
    earlier instead of stacking a second one.
    """
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    root.setLevel(logging.INFO if level is None else level)

    handler = next((h for h in root.handlers if getattr(h, _HANDLER_MARKER, False)), None)
    if handler is None:
        handler = logging.StreamHandler()
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)
    handler.setFormatter(JsonFormatter() if fmt.lower() == "json" else TextFormatter())


def add_logging_args(parser: Any) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        default="text",
        choices=LOG_FORMATS,
        help="Logging format (default: text)",
    )
