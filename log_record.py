# log_record.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple


class Level(str, Enum):
    TRACE = "TRACE"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @classmethod
    def from_logging(cls, levelno: int) -> "Level":
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.TRACE

    def to_logging(self) -> int:
        return {
            Level.TRACE: logging.DEBUG,
            Level.INFO: logging.INFO,
            Level.WARNING: logging.WARNING,
            Level.ERROR: logging.ERROR,
        }[self]


@dataclass(frozen=True)
class StackFrame:
    file: str
    line: int
    function: str = ""
    args: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class LogRecord:
    text: Any                       # str, structured payload or exception
    level: Level
    category: str
    timestamp: float
    stack_frames: Tuple[StackFrame, ...] = ()
    exception: Optional[BaseException] = None   # exc_info attached to a string message
    prefix: str = ""
