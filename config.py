# config.py
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from typing import Dict, Optional

from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()


@dataclass
class Settings:
    # Bot credentials / destinations
    telegram_bot_token: str
    telegram_default_chat_id: str
    telegram_targets: Dict[str, str] = field(default_factory=dict)   # category -> chat id / @channel

    # Delivery
    telegram_timeout: int = 15
    group_threshold: int = 3          # export batches up to this size go out as one message

    # logging.Handler
    log_level: str = "ERROR"
    buffer_capacity: int = 100
    trace_level: int = 0

    # External trace files (optional)
    trace_dir: Optional[str] = None
    trace_base_url: Optional[str] = None


def _get_required(name: str) -> str:
    v = os.getenv(name)
    if not v:
        raise ConfigurationError(f"Missing required env var: {name}")
    return v


def parse_log_level(name: str) -> int:
    """
    "warning" -> logging.WARNING. Names logging doesn't know raise ConfigurationError.
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Invalid TELEGRAM_LOG_LEVEL: {name!r}")
    return level


def parse_targets(raw: str) -> Dict[str, str]:
    """
    "orders=-100123,alerts=@ops_alerts" -> {"orders": "-100123", "alerts": "@ops_alerts"}
    """
    targets: Dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        category, sep, chat_id = item.partition("=")
        if not sep or not chat_id.strip():
            raise ConfigurationError(f"Invalid TELEGRAM_TARGETS entry: {item!r} (expected category=chat_id)")
        targets[category.strip()] = chat_id.strip()
    return targets


def load_settings() -> Settings:
    log_level = os.getenv("TELEGRAM_LOG_LEVEL", "ERROR").strip().upper()
    parse_log_level(log_level)

    return Settings(
        telegram_bot_token=_get_required("TELEGRAM_BOT_TOKEN"),
        telegram_default_chat_id=_get_required("TELEGRAM_DEFAULT_CHAT_ID"),
        telegram_targets=parse_targets(os.getenv("TELEGRAM_TARGETS", "")),
        telegram_timeout=int(os.getenv("TELEGRAM_TIMEOUT", "15")),
        group_threshold=int(os.getenv("TELEGRAM_GROUP_THRESHOLD", "3")),
        log_level=log_level,
        buffer_capacity=int(os.getenv("TELEGRAM_BUFFER_CAPACITY", "100")),
        trace_level=int(os.getenv("TELEGRAM_TRACE_LEVEL", "0")),
        trace_dir=os.getenv("TRACE_DIR") or None,
        trace_base_url=os.getenv("TRACE_BASE_URL") or None,
    )
