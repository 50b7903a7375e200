# markup.py
from __future__ import annotations

import html
import re
from typing import Iterable

# Tags Telegram renders in HTML parse mode that log messages are allowed to keep.
ALLOWED_TAGS = frozenset({"b", "strong", "i", "em", "a", "code", "pre"})

_TAG_RE = re.compile(r"<[^<>]*>")
_ALLOWED_RE_TEMPLATE = r"^</?({names})(\s[^<>]*)?/?>$"
_TEXT_TOKEN_RE = re.compile(r"(<[^<>]*>|&(?:#[0-9]+|#[xX][0-9a-fA-F]+|[a-zA-Z][a-zA-Z0-9]*);)")


def _allowed_pattern(allowed: Iterable[str]) -> re.Pattern:
    names = "|".join(sorted(re.escape(t) for t in allowed))
    return re.compile(_ALLOWED_RE_TEMPLATE.format(names=names), re.IGNORECASE)


_DEFAULT_ALLOWED = _allowed_pattern(ALLOWED_TAGS)


def strip_tags(text: str, allowed: Iterable[str] = ALLOWED_TAGS) -> str:
    """
    Remove every markup tag except the allowed ones.
    Repeats until stable so nested soup like "<scr<x>ipt>" cannot reassemble a tag.
    """
    keep = _DEFAULT_ALLOWED if allowed is ALLOWED_TAGS else _allowed_pattern(allowed)

    def _replace(m: re.Match) -> str:
        tag = m.group(0)
        return tag if keep.match(tag) else ""

    while True:
        stripped = _TAG_RE.sub(_replace, text)
        if stripped == text:
            return stripped
        text = stripped


def escape(value: object) -> str:
    return html.escape(str(value), quote=False)


def escape_text(text: str, allowed: Iterable[str] = ALLOWED_TAGS) -> str:
    """
    Escape stray "<", ">" and "&" in free text, leaving allowed tags and existing
    entities alone: "balance < 0 && <b>retry</b>" -> "balance &lt; 0 &amp;&amp; <b>retry</b>".
    Safe to apply more than once.
    """
    keep = _DEFAULT_ALLOWED if allowed is ALLOWED_TAGS else _allowed_pattern(allowed)

    out = []
    for i, part in enumerate(_TEXT_TOKEN_RE.split(text)):
        # odd indexes are the captured tag/entity tokens
        if i % 2 and (part.startswith("&") or keep.match(part)):
            out.append(part)
        else:
            out.append(escape(part))
    return "".join(out)
