"""Tests for log record formatting."""

import datetime as dt
import random

import pytest

from log_record import Level, LogRecord, StackFrame
from message_formatter import (
    Failure,
    Structured,
    Text,
    describe_exception,
    exception_trace_as_string,
    format_message,
    loggable,
)
from tests.test_markup import SOUP, disallowed_tags


def _record(text, level=Level.INFO, category="orders", **kwargs):
    return LogRecord(text=text, level=level, category=category, timestamp=0.0, **kwargs)


def _explode(name, items, flag, missing, count, ratio, obj):
    raise ValueError("bad <input>")


def _recurse(depth):
    if depth == 0:
        raise RuntimeError("deep")
    _recurse(depth - 1)


def _caught(fn, *args):
    try:
        fn(*args)
    except Exception as e:
        return e
    raise AssertionError("expected an exception")


class TestLoggable:
    def test_variants(self):
        assert isinstance(loggable("x"), Text)
        assert isinstance(loggable({"a": 1}), Structured)
        assert isinstance(loggable([1, 2]), Structured)
        assert isinstance(loggable(KeyError("k")), Failure)

    def test_variant_passes_through(self):
        v = Structured(3)
        assert loggable(v) is v


class TestFormatMessage:
    def test_header_and_body(self):
        out = format_message(_record("hello"))
        assert out == "<code>1970-01-01 00:00:00 [INFO][orders]</code>\nhello"

    @pytest.mark.parametrize("level", list(Level))
    def test_level_names(self, level):
        assert f"[{level.value}][orders]" in format_message(_record("x", level=level))

    def test_timezone(self):
        tz = dt.timezone(dt.timedelta(hours=3))
        assert format_message(_record("x"), tz).startswith("<code>1970-01-01 03:00:00 ")

    def test_prefix(self):
        out = format_message(_record("x", prefix="[10.0.0.1]"))
        assert out.startswith("<code>1970-01-01 00:00:00 [10.0.0.1][INFO][orders]</code>")

    def test_structured_payload_pretty_unicode(self):
        out = format_message(_record({"name": "Ünïcode", "qty": 2}))
        assert '{\n    "name": "Ünïcode",\n    "qty": 2\n}' in out

    def test_tuple_keys_fall_back_to_pprint(self):
        out = format_message(_record({(1, 2): "x", "sku": "A-1"}))
        assert out.endswith("\n{(1, 2): 'x', 'sku': 'A-1'}")

    def test_self_referencing_payload(self):
        items = [1]
        items.append(items)
        out = format_message(_record(items))
        assert "\n[1, &lt;Recursion on list with id=" in out

    def test_stray_markup_characters_escaped(self):
        out = format_message(_record("balance < 0 && <b>retry</b> &amp; x > 1"))
        assert out.endswith("\nbalance &lt; 0 &amp;&amp; <b>retry</b> &amp; x &gt; 1")

    def test_stack_frames_indented(self):
        frames = (StackFrame("/app/a.py", 10, "f"), StackFrame("/app/b.py", 20, "g"))
        out = format_message(_record("x", stack_frames=frames))
        assert out.endswith("x\n    <code>in /app/a.py:10</code>\n    <code>in /app/b.py:20</code>")

    def test_exception_text(self):
        exc = _caught(_explode, "n", [], True, None, 3, 1.5, object())
        out = format_message(_record(exc, level=Level.ERROR))
        body = out.split("\n", 1)[1]
        assert body.startswith("ValueError [0] bad &lt;input&gt;\n\n<b>File:</b> ")
        assert __file__ in body

    def test_attached_exception_appended(self):
        exc = _caught(_recurse, 0)
        out = format_message(_record("checkout failed", exception=exc))
        assert "checkout failed\nRuntimeError [0] deep" in out

    def test_tag_soup_never_produces_disallowed_tags(self):
        rng = random.Random(99)
        for _ in range(300):
            soup = "".join(rng.choice(SOUP) for _ in range(rng.randint(1, 30)))
            category = "".join(rng.choice(SOUP) for _ in range(3))
            out = format_message(_record(soup, category=category, prefix=soup))
            assert disallowed_tags(out) == []
            out = format_message(_record({"k": soup}))
            assert disallowed_tags(out) == []


class TestDescribeException:
    def test_file_and_line_point_at_raise(self):
        exc = _caught(_explode, "n", [], True, None, 3, 1.5, object())
        line = _explode.__code__.co_firstlineno + 1
        assert f"<b>File:</b> {__file__}:{line}" in describe_exception(exc)

    def test_errno_used_as_code(self):
        exc = _caught(open, "/nonexistent/definitely/missing.txt")
        assert describe_exception(exc).startswith("FileNotFoundError [2] ")

    def test_exception_without_traceback(self):
        out = describe_exception(KeyError("k"))
        assert out.startswith("KeyError [0] 'k'\n\n<b>File:</b> :")


class TestTraceString:
    def test_args_rendering(self):
        exc = _caught(_explode, "x" * 300, [1, 2], True, None, 3, 1.5, object())
        first = exception_trace_as_string(exc).splitlines()[0]
        assert first.startswith(f"#0 {__file__}(")
        assert first.endswith(
            "_explode('" + "x" * 255 + "...', Array, true, NULL, 3, 1.5, object)"
        )

    def test_innermost_first_and_limited_to_five(self):
        exc = _caught(_recurse, 10)
        lines = exception_trace_as_string(exc).splitlines()
        assert len(lines) == 5
        assert [l.split(" ", 1)[0] for l in lines] == ["#0", "#1", "#2", "#3", "#4"]
        assert lines[0].endswith("_recurse(0)")
        assert lines[1].endswith("_recurse(1)")

    def test_skip_frames(self):
        exc = _caught(_recurse, 10)
        lines = exception_trace_as_string(exc, skip_frames=2, frames=2).splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("#0 ")
        assert lines[0].endswith("_recurse(2)")
