"""Logging layer for the Telenot bridge.

Wraps the standard library logger with two extra levels used by the panel
tooling (DISCOVER for unmapped sensors and unknown frames, VERBOSE for command
tracing), dual output (human-readable + JSON lines) and correlation IDs.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import cast

from typing_extensions import override

__all__ = [
    "DISCOVER",
    "VERBOSE",
    "DiscoverOnlyFilter",
    "HumanReadableFormatter",
    "JSONFormatter",
    "TelenotLogger",
    "get_logger",
    "set_level_all",
]

# Sits between INFO and DEBUG, DISCOVER above VERBOSE
DISCOVER = 17
VERBOSE = 15
logging.addLevelName(DISCOVER, "DISCOVER")
logging.addLevelName(VERBOSE, "VERBOSE")

_discover_handler: logging.Handler | None = None
_loggers: dict[str, TelenotLogger] = {}


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        from telenot_bridge.correlation import get_correlation_id

        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            log_data["context"] = dict(cast("Mapping[str, object]", extra_data))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with correlation IDs.

    Multi-line messages (published payloads) are indented so they stay visually
    attached to their header line.
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        from telenot_bridge.correlation import get_correlation_id

        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id[:16]}]" if correlation_id else "[----------------]"

        formatted = super().format(record)
        if "\n" in formatted:
            head, *rest = formatted.split("\n")
            formatted = "\n".join([head, *(f"    {line}" for line in rest)])

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            context_str = " | ".join(f"{k}={v}" for k, v in context_map.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


class DiscoverOnlyFilter(logging.Filter):
    """Let only DISCOVER records through (used by the discover log file)."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno == DISCOVER


def _discover_file_handler(path: str | Path) -> logging.Handler | None:
    """Shared daily-rotating handler for discovery output (one per process)."""
    global _discover_handler
    if _discover_handler is not None:
        return _discover_handler
    try:
        discover_path = Path(path)
        discover_path.parent.mkdir(parents=True, exist_ok=True)
        handler = TimedRotatingFileHandler(discover_path, when="midnight", backupCount=90)
    except OSError as e:
        print(f"Warning: Failed to create discover log file {path}: {e}", file=sys.stderr)
        return None
    handler.setLevel(DISCOVER)
    handler.addFilter(DiscoverOnlyFilter())
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S"))
    _discover_handler = handler
    return handler


class TelenotLogger:
    """Logger abstraction with dual-format output and structured context."""

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
        discover_file: str | Path | None = None,
    ) -> None:
        """Initialize TelenotLogger.

        Args:
            name: Logger name (typically module name)
            log_format: Output format - "json", "human", or "both"
            json_file: Path for JSON output file (None to disable file output)
            human_output: "stdout", "stderr", or file path for human-readable output
            discover_file: Path of the rotating discover log (None to disable)

        """
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)
        self.log_format: str = log_format

        from telenot_bridge.const import TELENOT_DEBUG, TELENOT_DISCOVER

        if TELENOT_DEBUG:
            self.logger.setLevel(logging.DEBUG)
        elif TELENOT_DISCOVER:
            self.logger.setLevel(DISCOVER)
        else:
            self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            self._configure_handlers(json_file, human_output, discover_file)

    def _configure_handlers(
        self,
        json_file: str | Path | None,
        human_output: str | None,
        discover_file: str | Path | None,
    ) -> None:
        # Handlers pass everything the logger lets through; the logger level gates output
        if self.log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
                json_handler.setFormatter(JSONFormatter())
                self.logger.addHandler(json_handler)
            except OSError as e:
                print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)

        if self.log_format in ("human", "both"):
            normalized_output = human_output or "stdout"
            if normalized_output == "stdout":
                human_handler: logging.Handler = logging.StreamHandler(sys.stdout)
            elif normalized_output == "stderr":
                human_handler = logging.StreamHandler(sys.stderr)
            else:
                try:
                    human_path = Path(normalized_output)
                    human_path.parent.mkdir(parents=True, exist_ok=True)
                    human_handler = logging.FileHandler(human_path, mode="a")
                except OSError as e:
                    print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
                    human_handler = logging.StreamHandler(sys.stdout)

            human_handler.setFormatter(HumanReadableFormatter())
            self.logger.addHandler(human_handler)

        if discover_file:
            handler = _discover_file_handler(discover_file)
            if handler is not None:
                self.logger.addHandler(handler)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload: Mapping[str, object] | None = None
        if extra:
            extra_payload = {"extra_data": dict(extra)}
        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def verbose(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log command tracing detail (between DEBUG and INFO)."""
        self._log(VERBOSE, msg, *args, extra=extra)

    def discover(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log discovery output: unmapped sensor bits and unknown frames."""
        self._log(DISCOVER, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def critical(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.CRITICAL, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log exception with traceback and optional structured context."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> TelenotLogger:
    """Get or create a TelenotLogger configured from the environment.

    Args:
        name: Logger name
        log_format: Override default format ("json", "human", or "both")
        json_file: Override default JSON output file
        human_output: Override default human-readable output

    Returns:
        TelenotLogger instance

    """
    from telenot_bridge.const import (
        TELENOT_DISCOVER_LOG_FILE,
        TELENOT_LOG_FORMAT,
        TELENOT_LOG_HUMAN_OUTPUT,
        TELENOT_LOG_JSON_FILE,
    )

    if name in _loggers:
        return _loggers[name]

    _loggers[name] = instance = TelenotLogger(
        name=name,
        log_format=log_format or TELENOT_LOG_FORMAT,
        json_file=json_file or TELENOT_LOG_JSON_FILE,
        human_output=human_output or TELENOT_LOG_HUMAN_OUTPUT,
        discover_file=TELENOT_DISCOVER_LOG_FILE,
    )
    return instance


def set_level_all(level: int) -> None:
    """Apply a level to every logger handed out by get_logger (CLI -D / --discover)."""
    for instance in _loggers.values():
        instance.set_level(level)
