# message_formatter.py
from __future__ import annotations

import datetime as dt
import inspect
import json
import pprint
import traceback
from dataclasses import dataclass
from typing import Any, List, Tuple, Union

from log_record import Level, LogRecord
from markup import escape, escape_text, strip_tags

MAX_TRACE_FRAMES = 5
MAX_ARG_LENGTH = 255


# ---------------------------------------------------------------------------
# Loggable values: resolved once, each variant renders itself
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Text:
    value: str

    def render(self) -> str:
        return escape_text(strip_tags(self.value))


@dataclass(frozen=True)
class Structured:
    value: Any

    def render(self) -> str:
        return escape(dump_structured(self.value))


@dataclass(frozen=True)
class Failure:
    exc: BaseException

    def render(self) -> str:
        return describe_exception(self.exc)


Loggable = Union[Text, Structured, Failure]


def loggable(value: Any) -> Loggable:
    if isinstance(value, (Text, Structured, Failure)):
        return value
    if isinstance(value, str):
        return Text(value)
    if isinstance(value, BaseException):
        return Failure(value)
    return Structured(value)


def dump_structured(value: Any) -> str:
    """
    Pretty JSON keeping non-ASCII characters; anything json can't encode goes through str().
    Tuple/complex keys and self-referencing containers can't be JSON at all: pprint them.
    """
    try:
        return json.dumps(value, indent=4, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return pprint.pformat(value, indent=4, sort_dicts=False)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

def _exception_code(exc: BaseException) -> Any:
    code = getattr(exc, "code", None)
    if code is None:
        code = getattr(exc, "errno", None)
    return 0 if code is None else code


def _exception_origin(exc: BaseException) -> Tuple[str, Any]:
    if exc.__traceback__ is None:
        return "", ""
    last = traceback.extract_tb(exc.__traceback__)[-1]
    return last.filename, last.lineno


def _render_arg(arg: Any) -> str:
    if isinstance(arg, str):
        if len(arg) > MAX_ARG_LENGTH:
            arg = arg[:MAX_ARG_LENGTH] + "..."
        return f"'{arg}'"
    if isinstance(arg, (list, tuple, dict, set, frozenset)):
        return "Array"
    if arg is None:
        return "NULL"
    if isinstance(arg, bool):
        return "true" if arg else "false"
    if isinstance(arg, (int, float)):
        return str(arg)
    return type(arg).__name__


def _frame_args(frame) -> List[Any]:
    info = inspect.getargvalues(frame)
    values = [info.locals.get(name) for name in info.args]
    if info.varargs:
        values.extend(info.locals.get(info.varargs) or ())
    return values


def exception_trace_as_string(exc: BaseException, skip_frames: int = 0, frames: int = MAX_TRACE_FRAMES) -> str:
    """
    Innermost frame first, like a PHP-style trace:
      #0 /app/orders.py(42): place_order('A-1', 3)
    """
    walked = list(traceback.walk_tb(exc.__traceback__))
    walked.reverse()

    out = ""
    for count, (frame, lineno) in enumerate(walked[skip_frames:skip_frames + frames]):
        args = ", ".join(_render_arg(a) for a in _frame_args(frame))
        out += f"#{count} {frame.f_code.co_filename}({lineno}): {frame.f_code.co_name}({args})\n"
    return out


def describe_exception(exc: BaseException) -> str:
    file, line = _exception_origin(exc)
    return (
        f"{escape(type(exc).__name__)} [{escape(_exception_code(exc))}] {escape(exc)}\n\n"
        f"<b>File:</b> {escape(file)}:{line}\n"
        f"<b>Trace:</b> <code>{escape(exception_trace_as_string(exc))}</code>"
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def format_time(timestamp: float, tz: dt.tzinfo = dt.timezone.utc) -> str:
    return dt.datetime.fromtimestamp(timestamp, tz).strftime("%Y-%m-%d %H:%M:%S")


def format_message(record: LogRecord, tz: dt.tzinfo = dt.timezone.utc) -> str:
    level = Level(record.level).value
    body = loggable(record.text).render()
    if record.exception is not None and record.exception is not record.text:
        body = f"{body}\n{Failure(record.exception).render()}"

    traces = [f"<code>in {escape(f.file)}:{f.line}</code>" for f in record.stack_frames]

    header = f"<code>{format_time(record.timestamp, tz)} {escape(record.prefix)}[{level}][{escape(record.category)}]</code>"
    return f"{header}\n{body}" + ("\n    " + "\n    ".join(traces) if traces else "")
