"""Logging setup for the launchpad core.

Handlers are installed once on the root logger by ``setup_logging``. Every
record passes through redaction before it is written, so key material typed
into a message or attached as context never reaches a log sink. Transaction
hashes and account addresses are kept by default since they are public and
needed to trace a submission.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

REDACTED = "[REDACTED]"


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def numeric(self) -> int:
        return logging.getLevelName(self.value)


@dataclass
class LoggingConfig:
    log_level: LogLevel = LogLevel.INFO
    log_format: str = "human"
    log_to_stdout: bool = True
    log_file: Path | None = None
    sanitize_sensitive: bool = True
    preserve_addresses: bool = True
    # Chatty third-party loggers held at WARNING regardless of log_level.
    quiet_loggers: tuple[str, ...] = ("web3", "urllib3", "requests", "httpx")

    @property
    def log_to_file(self) -> bool:
        return self.log_file is not None

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        """Read LAUNCHPAD_LOG_LEVEL, LAUNCHPAD_LOG_FORMAT, LAUNCHPAD_LOG_STDOUT
        and LAUNCHPAD_LOG_FILE. Unknown values fall back to the defaults."""
        level_name = os.getenv("LAUNCHPAD_LOG_LEVEL", "INFO").strip().upper()
        level = LogLevel.__members__.get(level_name, LogLevel.INFO)

        log_format = os.getenv("LAUNCHPAD_LOG_FORMAT", "human").strip().lower()
        if log_format not in ("human", "json"):
            log_format = "human"

        stdout = os.getenv("LAUNCHPAD_LOG_STDOUT", "true").strip().lower()
        file_path = os.getenv("LAUNCHPAD_LOG_FILE", "").strip()

        return cls(
            log_level=level,
            log_format=log_format,
            log_to_stdout=stdout not in ("0", "false", "no", "off"),
            log_file=Path(file_path).expanduser() if file_path else None,
        )


def _assignment(key: str, value: str) -> re.Pattern[str]:
    # Matches `key=value`, `key: value` and `"key": "value"`, keeping the key.
    return re.compile(rf"({key}['\"]?\s*[:=]\s*['\"]?)({value})", re.IGNORECASE)


# A bare 64-char hex string is left alone: EVM transaction hashes share that shape.
_REDACTIONS = (
    _assignment(r"private[_-]?key", r"(?:0x)?[0-9a-f]{64}"),
    _assignment(r"secret[_-]?key", r"[1-9A-HJ-NP-Za-km-z]{64,90}|\[[\d,\s]+\]"),
    _assignment(r"(?:mnemonic|seed[_ -]?phrase)", r"[a-z]+(?:\s+[a-z]+){11,23}"),
    _assignment(r"password", r"[^\s'\"]+"),
)

_ADDRESS = re.compile(r"\b(?:0x[0-9a-fA-F]{40}|[1-9A-HJ-NP-Za-km-z]{32,44})\b")

_SENSITIVE_KEY = re.compile(
    r"private_?key|secret|mnemonic|seed|password", re.IGNORECASE
)


def sanitize_message(message: str, preserve_addresses: bool = True) -> str:
    if not message:
        return message
    for pattern in _REDACTIONS:
        message = pattern.sub(rf"\1{REDACTED}", message)
    if not preserve_addresses:
        message = _ADDRESS.sub("[ADDRESS_REDACTED]", message)
    return message


def _sanitize_value(value: Any, preserve_addresses: bool) -> Any:
    if isinstance(value, str):
        return sanitize_message(value, preserve_addresses)
    if isinstance(value, dict):
        return sanitize_dict(value, preserve_addresses)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item, preserve_addresses) for item in value]
    return value


def sanitize_dict(data: dict[str, Any], preserve_addresses: bool = True) -> dict[str, Any]:
    return {
        key: REDACTED
        if _SENSITIVE_KEY.search(str(key))
        else _sanitize_value(value, preserve_addresses)
        for key, value in data.items()
    }


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    context = getattr(record, "context", None)
    return dict(context) if isinstance(context, dict) else {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Transaction fields are lifted to the top level so log pipelines can
    filter on them without parsing the nested context.
    """

    promoted_fields = ("kind", "tx_hash", "pool_id", "ledger")

    def __init__(self, sanitize: bool = True, preserve_addresses: bool = True):
        super().__init__()
        self.sanitize = sanitize
        self.preserve_addresses = preserve_addresses

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        context = _record_context(record)
        if self.sanitize:
            message = sanitize_message(message, self.preserve_addresses)
            context = sanitize_dict(context, self.preserve_addresses)

        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "source": f"{record.module}:{record.lineno}",
        }
        for name in self.promoted_fields:
            if name in context:
                entry[name] = context.pop(name)
        if context:
            entry["context"] = context

        if record.exc_info:
            trace = self.formatException(record.exc_info)
            entry["exception"] = (
                sanitize_message(trace, self.preserve_addresses) if self.sanitize else trace
            )

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``time LEVEL logger: message [key=value ...]``"""

    def __init__(self, sanitize: bool = True, preserve_addresses: bool = True):
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.sanitize = sanitize
        self.preserve_addresses = preserve_addresses

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _record_context(record)
        if self.sanitize:
            line = sanitize_message(line, self.preserve_addresses)
            context = sanitize_dict(context, self.preserve_addresses)
        if context:
            pairs = " ".join(f"{key}={context[key]}" for key in sorted(context))
            line = f"{line} [{pairs}]"
        return line


class ContextAdapter(logging.LoggerAdapter):
    """Attaches a fixed context dict to every record as ``record.context``."""

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        super().__init__(logger, dict(context or {}))

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = {**self.extra, **extra.get("context", {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextAdapter":
        return ContextAdapter(self.logger, {**self.extra, **context})


_installed_handlers: list[logging.Handler] = []


def _formatter_for(config: LoggingConfig) -> logging.Formatter:
    if config.log_format == "json":
        return StructuredFormatter(config.sanitize_sensitive, config.preserve_addresses)
    return HumanReadableFormatter(config.sanitize_sensitive, config.preserve_addresses)


def setup_logging(config: LoggingConfig | None = None, force: bool = False) -> None:
    """Install root handlers. Later calls are no-ops unless ``force`` is set,
    in which case the handlers from the previous call are replaced."""
    if _installed_handlers and not force:
        return
    config = config or LoggingConfig.from_environment()

    root = logging.getLogger()
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    if config.log_to_stdout:
        _installed_handlers.append(logging.StreamHandler(sys.stdout))
    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        _installed_handlers.append(logging.FileHandler(config.log_file, encoding="utf-8"))
    if not _installed_handlers:
        _installed_handlers.append(logging.NullHandler())

    formatter = _formatter_for(config)
    for handler in _installed_handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(config.log_level.numeric)

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(max(logging.WARNING, config.log_level.numeric))


def get_logger(name: str, context: dict[str, Any] | None = None) -> ContextAdapter:
    return ContextAdapter(logging.getLogger(name), context)


def log_with_context(
    logger: logging.Logger | ContextAdapter,
    level: int,
    message: str,
    **context: Any,
) -> None:
    if isinstance(logger, ContextAdapter):
        logger.with_context(**context).log(level, message)
    else:
        logger.log(level, message, extra={"context": context})


__all__ = [
    "LogLevel",
    "LoggingConfig",
    "ContextAdapter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "sanitize_message",
    "sanitize_dict",
    "setup_logging",
    "get_logger",
    "log_with_context",
]
