"""Logging configuration using structlog for structured JSON logging."""

import logging
import sys
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer
from structlog.stdlib import LoggerFactory, add_log_level, add_logger_name

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Events shown on the terminal without --verbose (plus all ERROR/CRITICAL)
USER_FACING_EVENTS: set[str] = {
    "stack_built",
    "stack_empty",
    "push_started",
    "push_completed",
    "push_cancelled",
    "push_aborted",
    "duplicates_started",
    "duplicates_completed",
    "purge_started",
    "purge_completed",
    "purge_work_order_failed",
    "config_warning",
    "entries_dropped",
}

LOG_FILE_NAME = "workorder-sync.log"


def _get_level_no(level_name: str) -> int:
    return _LOG_LEVELS.get(level_name.upper(), logging.INFO)


@dataclass(slots=True)
class HighVolumeEventPolicy:
    """
    Rate-limiting policy for high-frequency log events.

    Attributes:
        max_occurrences: Maximum number of events allowed within the window.
        window_seconds: Sliding window size in seconds for counting events.
    """

    max_occurrences: int
    window_seconds: float


class ConsoleNoiseFilterProcessor:
    """
    Structlog processor that rate-limits chatty console events.

    Every remote extraction logs one event, and purges and duplicate
    cleanups re-read the work order after each mutation, so those events
    are capped within a sliding window. Wired onto the console handler
    through ConsoleNoiseFilter.
    """

    def __init__(
        self,
        high_volume_policies: Mapping[str, HighVolumeEventPolicy] | None = None,
        time_func: Callable[[], float] | None = None,
    ) -> None:
        self.high_volume_policies = dict(high_volume_policies or {})
        self._event_windows: dict[str, deque[float]] = {
            event: deque() for event in self.high_volume_policies
        }
        self._lock = threading.Lock()
        self._time_func = time_func or time.monotonic

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        message = event_dict.get("event", "")
        policy = (
            self.high_volume_policies.get(message) if isinstance(message, str) else None
        )
        if policy:
            now = self._time_func()
            with self._lock:
                window = self._event_windows.setdefault(str(message), deque())
                while window and now - window[0] > policy.window_seconds:
                    window.popleft()
                if len(window) >= policy.max_occurrences:
                    raise structlog.DropEvent
                window.append(now)

        return event_dict


class ConsoleNoiseFilter(logging.Filter):
    """Logging filter that applies a ConsoleNoiseFilterProcessor to records.

    Works for both structlog-originated records, whose ``msg`` is the event
    dict, and plain stdlib records.
    """

    def __init__(self, processor: ConsoleNoiseFilterProcessor) -> None:
        super().__init__()
        self.processor = processor

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, dict):
            event = record.msg.get("event", "")
        else:
            event = record.getMessage()
        try:
            self.processor(None, record.levelname.lower(), {"event": event})
        except structlog.DropEvent:
            return False
        return True


class UserFacingConsoleFilter(logging.Filter):
    """Logging filter that only passes user-facing events to the console.

    Allows:
    - Events in USER_FACING_EVENTS
    - All ERROR and CRITICAL level messages
    - Everything when verbose mode is enabled
    """

    def __init__(self, verbose: bool = False) -> None:
        super().__init__()
        self.verbose = verbose

    def filter(self, record: logging.LogRecord) -> bool:
        if self.verbose:
            return True

        if record.levelno >= logging.ERROR:
            return True

        event = record.getMessage()
        if event in USER_FACING_EVENTS:
            return True
        return any(user_event in event for user_event in USER_FACING_EVENTS)


class UserFriendlyConsoleRenderer:
    """Renders user-facing lifecycle events as short terminal lines.

    Anything not handled explicitly falls back to structlog's console
    renderer.
    """

    def __init__(self) -> None:
        self._fallback = ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = event_dict.get("event", "")
        level = str(event_dict.get("level", "info")).upper()

        if event == "stack_built":
            return (
                f"Stacked work order {event_dict.get('work_order_id', '?')}: "
                f"{event_dict.get('services', 0)} services "
                f"({event_dict.get('pending', 0)} pending)"
            )

        if event == "push_started":
            mode = " (dry-run)" if event_dict.get("dry_run") else ""
            return (
                f"Pushing {event_dict.get('pending', 0)} pending services "
                f"across {event_dict.get('work_orders', 0)} work orders{mode}"
            )

        if event in ("push_completed", "duplicates_completed", "purge_completed"):
            label = event.split("_", 1)[0].capitalize()
            return (
                f"{label} completed: {event_dict.get('succeeded', 0)} succeeded, "
                f"{event_dict.get('failed', 0)} failed"
            )

        if event == "push_cancelled":
            return "Push cancelled; remaining services stay pending"

        if level == "ERROR":
            error = event_dict.get("error", event)
            return f"ERROR: {error}"

        if level == "WARNING" and event in USER_FACING_EVENTS:
            return f"WARNING: {event}"

        return str(self._fallback(logger, method_name, event_dict))


DEFAULT_HIGH_VOLUME_EVENTS: dict[str, HighVolumeEventPolicy] = {
    "remote_records_extracted": HighVolumeEventPolicy(5, 10.0),
    "entry_skipped": HighVolumeEventPolicy(10, 10.0),
}

_configured = False
_handlers: list[logging.Handler] = []


def _base_pre_chain() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


class _ErrorFilter(logging.Filter):
    """Only pass ERROR and CRITICAL records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def configure_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    log_file: Path | None = None,
    verbose: bool = False,
    enable_console_noise_filter: bool = True,
) -> None:
    """Configure structlog logging with console and file output.

    Args:
        log_level: Minimum console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (default: ./logs)
        log_file: Specific log file path (overrides log_dir)
        verbose: If True, show all log messages on terminal
        enable_console_noise_filter: Toggle console-side rate limiting
    """
    global _configured

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in _handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    structlog.configure(
        processors=[
            *_base_pre_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = log_file
        log_file.parent.mkdir(exist_ok=True, parents=True)
    else:
        if log_dir is None:
            log_dir = Path("./logs")
        log_dir.mkdir(exist_ok=True, parents=True)
        log_path = log_dir / LOG_FILE_NAME

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(_get_level_no(log_level))

    console_handler.addFilter(UserFacingConsoleFilter(verbose=verbose))
    if enable_console_noise_filter:
        console_handler.addFilter(
            ConsoleNoiseFilter(
                ConsoleNoiseFilterProcessor(
                    high_volume_policies=DEFAULT_HIGH_VOLUME_EVENTS
                )
            )
        )
    renderer: Any
    if verbose:
        renderer = ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )
    else:
        renderer = UserFriendlyConsoleRenderer()

    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=_base_pre_chain(),
        )
    )
    root_logger.addHandler(console_handler)
    _handlers.append(console_handler)

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processor=JSONRenderer(),
        foreign_pre_chain=_base_pre_chain(),
    )

    # 10MB per file, 5 backups
    file_handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)
    _handlers.append(file_handler)

    error_handler = RotatingFileHandler(
        filename=str(log_path.parent / "errors.log"),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.addFilter(_ErrorFilter())
    error_handler.setFormatter(file_formatter)
    root_logger.addHandler(error_handler)
    _handlers.append(error_handler)

    _configured = True

    logger = get_logger("workorder_sync.utils.logging")
    logger.info(
        "logging_configured",
        console_level=log_level,
        file_level="DEBUG",
        log_file=str(log_path),
        verbose=verbose,
        console_noise_filter=enable_console_noise_filter,
    )


def get_logger(name: str) -> Any:
    """Get a logger instance.

    Loggers created before configure_logging() runs are plain structlog
    loggers; they pick up the stdlib handlers once logging is configured.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound to the given name
    """
    return structlog.get_logger(name)
