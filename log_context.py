# log_context.py
from __future__ import annotations

import getpass
import json
import logging
import platform
import socket
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import ConfigurationError
from log_record import Level
from markup import escape
from message_formatter import describe_exception, dump_structured
from telegram_client import TelegramBot
from trace_sink import TraceFileSink

# Web request details a host may put into LogContext.request_info.
REQUEST_KEYS = ("host", "path", "agent", "referer", "ip", "session")


@dataclass
class LogContext:
    """
    Extra lines and request details waiting to be attached to the next message.
    One context per request / job; nothing is shared between unrelated callers.
    """
    buffer: List[str] = field(default_factory=list)
    extra_request_info: Dict[str, str] = field(default_factory=dict)
    request_info: Dict[str, Any] = field(default_factory=dict)   # filled by the host for web requests

    def shift_extra_data(self) -> str:
        extra = "".join("\n" + line for line in self.buffer)
        self.buffer.clear()
        return extra


def _convert_arg(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, BaseException):
        return describe_exception(value)
    if isinstance(value, (dict, list, tuple)):
        return dump_structured(value)
    return value


def message_body(format: Any, *args: Any) -> Optional[str]:
    """
    printf-style message: message_body("order %s failed: %s", order_id, exc)
    """
    if format is None:
        return None
    if not args:
        return format if isinstance(format, str) else str(_convert_arg(format))
    converted = tuple(_convert_arg(a) for a in args)
    try:
        return str(format) % converted
    except (TypeError, ValueError):
        # placeholders don't match the args: keep everything rather than fail the caller
        return " ".join([str(format), *(str(a) for a in converted)])


class TelegramLogger:
    """
    Category logger: debug/info/warning/error go through stdlib logging under the
    category name, to_telegram() sends straight to the category's chat.

    Usage:
        log = TelegramLogger("orders", bot=bot)
        log.with_external_data(payload).error("Order %s rejected", order_id)
    """

    def __init__(
        self,
        category: str = "app",
        bot: Optional[TelegramBot] = None,
        context: Optional[LogContext] = None,
        trace_sink: Optional[TraceFileSink] = None,
    ) -> None:
        self.category = category
        self.bot = bot
        self.context = context if context is not None else LogContext()
        self.trace_sink = trace_sink
        self.logger = logging.getLogger(category)

    @classmethod
    def from_settings(cls, category: str, settings, context: Optional[LogContext] = None) -> "TelegramLogger":
        sink = None
        if settings.trace_dir and settings.trace_base_url:
            sink = TraceFileSink(settings.trace_dir, settings.trace_base_url)
        return cls(category, bot=TelegramBot.from_settings(settings), context=context, trace_sink=sink)

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    def process_log(self, message: str, level: Level = Level.INFO) -> None:
        message += self.context.shift_extra_data()
        self.logger.log(level.to_logging(), message)

    def debug(self, format: Any, *args: Any) -> None:
        message = message_body(format, *args)
        if message:
            self.process_log(message, Level.TRACE)

    def info(self, format: Any, *args: Any) -> None:
        message = message_body(format, *args)
        if message:
            self.process_log(message, Level.INFO)

    def warning(self, format: Any, *args: Any) -> None:
        message = message_body(format, *args)
        if message:
            self.process_log(message, Level.WARNING)

    def error(self, format: Any, *args: Any) -> None:
        message = message_body(format, *args)
        if message:
            self.process_log(message, Level.ERROR)

    def to_telegram(self, format: Any, *args: Any) -> List[Dict[str, Any]]:
        message = message_body(format, *args)
        if not message:
            return []
        if self.bot is None:
            raise ConfigurationError("Telegram bot must be configured to send messages directly.")
        message += self.context.shift_extra_data()
        return self.bot.send_message(self.bot.get_target(self.category), message)

    def get_message(self, format: Any, *args: Any) -> str:
        return (message_body(format, *args) or "") + self.context.shift_extra_data()

    # ------------------------------------------------------------------
    # Extra data for the next message
    # ------------------------------------------------------------------

    def add_log_buffer(self, format: Any, *args: Any) -> "TelegramLogger":
        message = message_body(format, *args)
        if message:
            self.context.buffer.append(message)
        return self

    def create_trace_file(self, content: str, filename: str = "trace", ext: str = "txt") -> Optional[str]:
        if self.trace_sink is None:
            return None
        return self.trace_sink.create(content, filename, ext)

    def _external(self, content: str) -> str:
        # falls back to inlining when no trace sink is configured or writing failed
        url = self.create_trace_file(content)
        return url if url else f"<code>{escape(content)}</code>"

    def with_external_data(self, data: Any, title: str = "Details") -> "TelegramLogger":
        if not isinstance(data, str):
            data = dump_structured(data)
        return self.add_log_buffer("<b>%s:</b> %s", title, self._external(data))

    def with_request_data(self, external: bool = True) -> "TelegramLogger":
        details = self.get_request_context()

        body = self.context.request_info.get("body")
        if body:
            if isinstance(body, bytes):
                body = body.decode("utf-8", "replace")
            if isinstance(body, str):
                try:
                    body = json.loads(body)
                except ValueError:
                    pass
            details += "\nRequest Params: " + (body if isinstance(body, str) else dump_structured(body)) + "\n"

        return self.add_log_buffer(
            "<b>Request Data:</b> %s",
            self._external(details) if external else f"<code>{escape(details)}</code>",
        )

    def set_extra_request_info(self, key: str, value: str) -> None:
        self.context.extra_request_info[key] = value

    def get_request_context(self, with_all_headers: bool = False) -> str:
        res: Dict[str, Any] = {}
        request = self.context.request_info
        if request:
            for key in REQUEST_KEYS:
                if request.get(key):
                    res[key] = request[key]
            res["server"] = socket.gethostname()
            if with_all_headers and request.get("headers"):
                res["headers"] = dict(request["headers"])
        else:
            if sys.argv and sys.argv[0]:
                res["file"] = sys.argv[0]
            if len(sys.argv) > 1:
                res["args"] = " ".join(sys.argv[1:])
            try:
                res["user"] = getpass.getuser()
            except (KeyError, OSError):
                pass
            res["server"] = socket.gethostname()

        res["python"] = platform.python_version()
        res.update(self.context.extra_request_info)

        out = ""
        for k, v in res.items():
            out += f"{k}: {v if isinstance(v, (str, int, float, bool)) else dump_structured(v)}\n"
        return out
