# telegram_target.py
from __future__ import annotations

import datetime as dt
import logging
import logging.handlers
import os
import traceback
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from config import parse_log_level
from log_record import Level, LogRecord, StackFrame
from message_formatter import format_message
from router import Router
from telegram_client import TelegramBot

logger = logging.getLogger("telegram_target")

# Batches of up to this many records per destination go out as a single message.
GROUP_THRESHOLD = 3

# Records from the delivery path itself are never forwarded.
DELIVERY_LOGGERS = ("urllib3", "requests", "telegram_client", "telegram_target")

_LOGGING_DIR = os.path.dirname(logging.__file__)

# Frames from these files are the forwarding machinery, not the code that logged.
_INTERNAL_FILES = frozenset(
    os.path.join(os.path.dirname(os.path.abspath(__file__)), name)
    for name in ("telegram_target.py", "log_context.py")
)


class TelegramTarget:
    """
    Sends batches of log records to Telegram chats or channels.

    Records are grouped by the destination their category routes to. A small group
    (<= group_threshold records) is joined with newlines and sent as one message,
    a larger one is sent record by record. Nothing is retried: the first failing
    send propagates and whatever was already delivered stays delivered.
    """

    def __init__(
        self,
        bot: TelegramBot,
        router: Optional[Router] = None,
        group_threshold: int = GROUP_THRESHOLD,
        tz: dt.tzinfo = dt.timezone.utc,
    ) -> None:
        self.bot = bot
        self.router = router or bot.router
        self.group_threshold = group_threshold
        self.tz = tz

    def format_message(self, record: LogRecord) -> str:
        return format_message(record, self.tz)

    def export(self, records: Iterable[LogRecord]) -> None:
        groups: Dict[str, List[str]] = {}
        for record in records:
            groups.setdefault(self.router.resolve(record.category), []).append(self.format_message(record))

        for chat_id, messages in groups.items():
            logger.debug("Exporting %d record(s) to chat_id=%s", len(messages), chat_id)
            if len(messages) <= self.group_threshold:
                self.bot.send_message(chat_id, "\n".join(messages))
            else:
                for message in messages:
                    self.bot.send_message(chat_id, message)


def _is_delivery_record(record: logging.LogRecord) -> bool:
    return any(record.name == name or record.name.startswith(name + ".") for name in DELIVERY_LOGGERS)


class TelegramLogHandler(logging.handlers.BufferingHandler):
    """
    logging.Handler that buffers records and exports them through a TelegramTarget
    when the buffer is full, on flush() and on close().

    Usage:
        handler = TelegramLogHandler(TelegramTarget(bot), capacity=50, level=logging.ERROR)
        logging.getLogger().addHandler(handler)
    """

    def __init__(
        self,
        target: TelegramTarget,
        capacity: int = 100,
        level: int = logging.ERROR,
        trace_level: int = 0,
        prefix: Optional[Callable[[logging.LogRecord], str]] = None,
    ) -> None:
        super().__init__(capacity)
        self.setLevel(level)
        self.target = target
        self.trace_level = trace_level
        self.prefix = prefix
        self.addFilter(lambda record: not _is_delivery_record(record))

    def to_log_record(self, record: logging.LogRecord) -> LogRecord:
        if isinstance(record.msg, str) or record.args:
            text = record.getMessage()
        else:
            # dicts, lists, exceptions: keep the object so the formatter can render it
            text = record.msg

        return LogRecord(
            text=text,
            level=Level.from_logging(record.levelno),
            category=record.name,
            timestamp=record.created,
            stack_frames=self._stack_frames(),
            exception=record.exc_info[1] if record.exc_info else None,
            prefix=self.prefix(record) if self.prefix else "",
        )

    def _stack_frames(self) -> Tuple[StackFrame, ...]:
        if self.trace_level <= 0:
            return ()
        frames = []
        for summary in reversed(traceback.extract_stack()):
            if os.path.abspath(summary.filename) in _INTERNAL_FILES or summary.filename.startswith(_LOGGING_DIR):
                continue
            frames.append(StackFrame(file=summary.filename, line=summary.lineno or 0, function=summary.name))
            if len(frames) >= self.trace_level:
                break
        return tuple(frames)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.buffer.append(self.to_log_record(record))
            if self.shouldFlush(record):
                self.flush()
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        with self.lock:
            if not self.buffer:
                return
            records, self.buffer = self.buffer, []
            self.target.export(records)


def install(settings, logger_name: Optional[str] = None) -> TelegramLogHandler:
    """Build bot, target and handler from settings and attach the handler to a logger (root by default)."""
    bot = TelegramBot.from_settings(settings)
    target = TelegramTarget(bot, group_threshold=settings.group_threshold)
    handler = TelegramLogHandler(
        target,
        capacity=settings.buffer_capacity,
        level=parse_log_level(settings.log_level),
        trace_level=settings.trace_level,
    )
    logging.getLogger(logger_name).addHandler(handler)
    return handler
