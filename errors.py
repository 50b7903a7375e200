# errors.py
from __future__ import annotations

from typing import Optional


class TelegramLogError(Exception):
    """Base class for errors raised by the Telegram log target itself."""


class ConfigurationError(TelegramLogError):
    pass


class ArgumentError(TelegramLogError, ValueError):
    pass


class ApiError(TelegramLogError):
    """
    Telegram answered with an error_code.
    The message is the remote description when present, otherwise the raw body.
    """

    def __init__(self, message: str, error_code: Optional[int] = None, description: Optional[str] = None, raw_body: str = "") -> None:
        super().__init__(message)
        self.error_code = error_code
        self.description = description
        self.raw_body = raw_body
