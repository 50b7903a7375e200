# chunker.py
from __future__ import annotations

from typing import List

MAX_MESSAGE_LENGTH = 4096
MAX_TOTAL_LENGTH = MAX_MESSAGE_LENGTH * 5


def split_message(text: str, max_chunk: int = MAX_MESSAGE_LENGTH, max_total: int = MAX_TOTAL_LENGTH) -> List[str]:
    """
    Split text into Telegram-sized chunks, counted in code points.
    Anything past max_total is dropped. Empty text still yields one (empty) chunk.
    """
    if len(text) <= max_chunk:
        return [text]

    text = text[:max_total]
    return [text[i:i + max_chunk] for i in range(0, len(text), max_chunk)]
