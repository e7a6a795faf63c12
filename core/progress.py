"""
core/progress.py
Progress reporting from the change applicator back to the caller.

Two kinds of events:
  ProgressTick — transient "NN%" output, logged at DEBUG
  InfoLine     — everything else, logged at INFO

Applicators that only produce raw text lines go through ``classify()``:
a line whose last non-blank character is ``%`` is a tick.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable


@dataclass(frozen=True)
class ProgressTick:
    text: str


@dataclass(frozen=True)
class InfoLine:
    text: str


ProgressEvent = Union[ProgressTick, InfoLine]


def classify(line: str) -> ProgressEvent:
    """Tag a raw progress line by the percent-suffix rule."""
    if line.rstrip().endswith("%"):
        return ProgressTick(line)
    return InfoLine(line)


@runtime_checkable
class ProgressSink(Protocol):
    """Receiver of applicator progress. May be called in rapid bursts."""

    def on_progress(self, text: str) -> None: ...

    def on_info(self, text: str) -> None: ...


class _SinkBase:
    """Shared ``emit``/``notify`` helpers on top of the two callbacks."""

    def emit(self, event: ProgressEvent):
        if isinstance(event, ProgressTick):
            self.on_progress(event.text)
        else:
            self.on_info(event.text)

    def notify(self, line: str):
        self.emit(classify(line))


class LoggingProgressSink(_SinkBase):
    """Writes progress to a logger; safe to call from several threads."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("pmgr.progress")
        self._lock = threading.Lock()

    def on_progress(self, text: str):
        with self._lock:
            self.logger.debug(text)

    def on_info(self, text: str):
        with self._lock:
            self.logger.info(text)

