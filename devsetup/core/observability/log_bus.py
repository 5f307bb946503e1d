"""
Log bus — many-producer, single-consumer structured logging.

Worker threads each hold a ``Logger`` handle and push ``LogMessage``
records into one shared ``LogChannel``. A single ``LogCollector`` thread
drains the channel, applies filters and fans every accepted record out
to its outputs (console, file, ...). Output from concurrent workers
therefore never interleaves mid-line.

Thread safety model
───────────────────
- The channel is an unbounded ``queue.Queue``; ``send()`` never blocks.
- ``_lock`` protects the sender count. A sender is attached when a
  ``Logger`` (or the ``LoggerSystem`` itself) is created and detached
  on ``close()``.
- Once the sender count reaches zero and the queue is empty, ``recv()``
  raises ``ChannelDisconnected`` and the collector loop ends. This is
  the only shutdown signal.

Ordering: records from one producer are delivered in send order.
Records from different producers have no global order.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, TextIO

import click

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1


# ── Records ─────────────────────────────────────────────────────


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def parse(cls, value: str | int | LogLevel) -> LogLevel:
        """Parse a level name (``info``, ``WARN``, ``crit``...) or number."""
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        name = str(value).strip().upper()
        name = _ALIASES.get(name, name)
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown log level: {value!r}") from None


_LABELS = {
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: "INFO",
    LogLevel.WARNING: "WARN",
    LogLevel.ERROR: "ERROR",
    LogLevel.CRITICAL: "CRIT",
}

_ALIASES = {"WARN": "WARNING", "CRIT": "CRITICAL", "ERR": "ERROR", "FATAL": "CRITICAL"}


@dataclass(frozen=True)
class LogMessage:
    """One structured log record."""

    thread_name: str
    level: LogLevel
    source: str
    message: str
    timestamp: float = field(default_factory=time.time)
    thread_id: int = field(default_factory=threading.get_ident)
    context: dict[str, Any] | None = None


# ── Channel ─────────────────────────────────────────────────────


class ChannelDisconnected(Exception):
    """All senders are gone and the channel is drained."""


class LogChannel:
    """Unbounded MPSC queue with sender reference counting."""

    def __init__(self) -> None:
        self._queue: queue.Queue[LogMessage] = queue.Queue()
        self._lock = threading.Lock()
        self._senders = 0

    @property
    def sender_count(self) -> int:
        with self._lock:
            return self._senders

    def attach(self) -> None:
        with self._lock:
            self._senders += 1

    def detach(self) -> None:
        with self._lock:
            if self._senders > 0:
                self._senders -= 1

    def send(self, message: LogMessage) -> None:
        self._queue.put_nowait(message)

    def recv(self, timeout: float) -> LogMessage | None:
        """Next message, ``None`` after ``timeout`` seconds of silence.

        Raises ``ChannelDisconnected`` once no sender is attached and
        nothing is left to deliver.
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            pass
        with self._lock:
            disconnected = self._senders == 0
        if disconnected:
            # A sender may have pushed right before detaching.
            try:
                return self._queue.get_nowait()
            except queue.Empty:
                raise ChannelDisconnected() from None
        return None


# ── Producers ───────────────────────────────────────────────────


class Logger:
    """Producer handle bound to a component and a thread label."""

    def __init__(self, channel: LogChannel, source: str, thread_name: str) -> None:
        self.source = source
        self.thread_name = thread_name
        self._channel = channel
        self._closed = False
        self._lock = threading.Lock()
        channel.attach()

    def log(
        self,
        level: LogLevel,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        if self._closed:
            return
        self._channel.send(
            LogMessage(
                thread_name=self.thread_name,
                level=level,
                source=self.source,
                message=message,
                context=context,
            )
        )

    def debug(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.WARNING, message, context)

    warning = warn

    def error(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.ERROR, message, context)

    def critical(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.CRITICAL, message, context)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._channel.detach()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class StdlibLogger:
    """``Logger``-compatible facade over the stdlib ``logging`` module.

    Used when an instruction runs outside a ``LoggerSystem``.
    """

    _LEVELS = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }

    def __init__(self, name: str = "devsetup") -> None:
        self._logger = logging.getLogger(name)

    def log(self, level: LogLevel, message: str, context: dict[str, Any] | None = None) -> None:
        self._logger.log(self._LEVELS[level], message)

    def debug(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.WARNING, message, context)

    warning = warn

    def error(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.ERROR, message, context)

    def critical(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.log(LogLevel.CRITICAL, message, context)

    def close(self) -> None:
        pass


# ── Filters ─────────────────────────────────────────────────────


class LogFilter(ABC):
    @abstractmethod
    def allows(self, message: LogMessage) -> bool: ...


class LevelFilter(LogFilter):
    """Pass records at or above ``min_level``."""

    def __init__(self, min_level: LogLevel) -> None:
        self.min_level = LogLevel.parse(min_level)

    def allows(self, message: LogMessage) -> bool:
        return message.level >= self.min_level


# ── Outputs ─────────────────────────────────────────────────────


def format_timestamp(timestamp: float) -> str:
    """``HH:MM:SS.mmm`` in local time."""
    millis = int((timestamp % 1) * 1000)
    return time.strftime("%H:%M:%S", time.localtime(timestamp)) + f".{millis:03d}"


def format_message(message: LogMessage) -> str:
    return (
        f"[{format_timestamp(message.timestamp)}] [{message.level.label}] "
        f"[{message.thread_name}] {message.source}: {message.message}"
    )


class LogOutput(ABC):
    @abstractmethod
    def write(self, message: LogMessage) -> None: ...

    def close(self) -> None:
        """Flush and release resources once the collector stops."""


_LEVEL_COLORS = {
    LogLevel.DEBUG: "cyan",
    LogLevel.INFO: "green",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "red",
    LogLevel.CRITICAL: "magenta",
}


class ConsoleOutput(LogOutput):
    """Colored single-line records on stdout (or ``stream``)."""

    def __init__(self, use_colors: bool = True, stream: TextIO | None = None) -> None:
        self.use_colors = use_colors
        self.stream = stream

    def render(self, message: LogMessage) -> str:
        if not self.use_colors:
            return format_message(message)
        level = click.style(message.level.label, fg=_LEVEL_COLORS[message.level], bold=True)
        thread = click.style(message.thread_name, fg="blue")
        return (
            f"[{format_timestamp(message.timestamp)}] [{level}] "
            f"[{thread}] {message.source}: {message.message}"
        )

    def write(self, message: LogMessage) -> None:
        click.echo(self.render(message), file=self.stream, color=self.use_colors or None)


class FileOutput(LogOutput):
    """Plain-text records appended to ``path``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fh: TextIO | None = None

    def write(self, message: LogMessage) -> None:
        if self._fh is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8")
        line = format_message(message)
        if message.context:
            pairs = " ".join(f"{k}={v}" for k, v in message.context.items())
            line = f"{line} [{pairs}]"
        self._fh.write(line + "\n")

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


# ── Collector ───────────────────────────────────────────────────


class LogCollector:
    """Single consumer: drain, filter, fan out."""

    def __init__(self, channel: LogChannel, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._channel = channel
        self.poll_interval = poll_interval
        self.outputs: list[LogOutput] = []
        self.filters: list[LogFilter] = []

    def add_output(self, output: LogOutput) -> LogCollector:
        self.outputs.append(output)
        return self

    def add_filter(self, log_filter: LogFilter) -> LogCollector:
        self.filters.append(log_filter)
        return self

    def dispatch(self, message: LogMessage) -> None:
        if not all(f.allows(message) for f in self.filters):
            return
        for output in self.outputs:
            try:
                output.write(message)
            except Exception as e:
                # One broken sink must not stop the others.
                logger.warning("Log output %s failed: %s", type(output).__name__, e)

    def run(self) -> None:
        """Consume until every sender is detached and the channel is empty."""
        try:
            while True:
                try:
                    message = self._channel.recv(self.poll_interval)
                except ChannelDisconnected:
                    break
                if message is not None:
                    self.dispatch(message)
        finally:
            for output in self.outputs:
                output.close()


# ── System ──────────────────────────────────────────────────────


class LoggerSystem:
    """Owns the channel and collector; hands out producer handles.

    Usage::

        system = LoggerSystem()
        system.collector.add_output(ConsoleOutput())
        system.start_collector()
        log = system.create_logger("installer", "git")
        ...
        log.close()
        system.shutdown()
    """

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._channel = LogChannel()
        self._channel.attach()
        self._own_sender = True
        self._lock = threading.Lock()
        self.collector = LogCollector(self._channel, poll_interval)
        self._thread: threading.Thread | None = None

    def create_logger(self, component_name: str, thread_label: str) -> Logger:
        return Logger(self._channel, component_name, thread_label)

    def start_collector(self) -> threading.Thread:
        if self._thread is not None:
            return self._thread
        self._thread = threading.Thread(
            target=self.collector.run,
            name="log-collector",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def shutdown(self, timeout: float | None = None) -> None:
        """Detach the system's sender and wait for the collector to drain.

        The collector finishes once every ``Logger`` handle is closed too.
        """
        with self._lock:
            if self._own_sender:
                self._own_sender = False
                self._channel.detach()
        if self._thread is not None:
            self._thread.join(timeout)

    def __enter__(self) -> LoggerSystem:
        self.start_collector()
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()
