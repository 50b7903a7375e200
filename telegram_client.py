# telegram_client.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Union

import requests

from chunker import split_message
from errors import ApiError, ArgumentError, ConfigurationError
from markup import escape_text, strip_tags
from router import Router

logger = logging.getLogger("telegram_client")

API_BASE_URL = "https://api.telegram.org/bot"

DEFAULT_MESSAGE_PAYLOAD: Dict[str, Any] = {
    "disable_web_page_preview": None,
    "disable_notification": None,
    "reply_to_message_id": None,
}


class ParseMode(str, Enum):
    HTML = "HTML"
    MARKDOWN = "Markdown"


def _parse_mode(mode: Union[ParseMode, str]) -> str:
    if isinstance(mode, ParseMode):
        return mode.value
    try:
        return ParseMode[mode.upper()].value
    except KeyError:
        return mode


def _to_form(payload: Mapping[str, Any]) -> Dict[str, str]:
    """Form fields for the Bot API: unset values are dropped, booleans spelled the way Telegram expects."""
    form: Dict[str, str] = {}
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, bool):
            form[key] = "true" if value else "false"
        elif isinstance(value, (dict, list)):
            form[key] = json.dumps(value, ensure_ascii=False)
        else:
            form[key] = str(value)
    return form


@dataclass
class OutboundMessage:
    chat_id: str
    text: str
    parse_mode: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_form(self) -> Dict[str, str]:
        return _to_form({"chat_id": self.chat_id, "parse_mode": self.parse_mode, **self.payload, "text": self.text})


@dataclass
class ApiResponse:
    raw_body: str
    decoded: Dict[str, Any]
    http_ok: bool

    @classmethod
    def from_http(cls, r: requests.Response) -> "ApiResponse":
        try:
            decoded = r.json()
        except ValueError:
            decoded = {}
        if not isinstance(decoded, dict):
            decoded = {}
        return cls(raw_body=r.text, decoded=decoded, http_ok=r.ok)

    def validate(self) -> None:
        error_code = self.decoded.get("error_code")
        if error_code:
            description = self.decoded.get("description")
            raise ApiError(
                description or self.raw_body,
                error_code=error_code,
                description=description,
                raw_body=self.raw_body,
            )


class TelegramBot:
    """
    Telegram Bot API client for log delivery.

    Usage:
        bot = TelegramBot(bot_token, "123456", {"orders": "@orders_channel"})
        bot.send_message(bot.get_target("orders"), "<b>hello</b>")
    """

    def __init__(
        self,
        bot_token: str,
        default_chat_id: str,
        target_per_category: Optional[Mapping[str, str]] = None,
        timeout: int = 15,
    ) -> None:
        if not bot_token:
            raise ConfigurationError("Telegram bot token is missing.")
        if not default_chat_id:
            raise ConfigurationError("Telegram default chat id is missing.")

        self.bot_token = bot_token
        self.default_chat_id = default_chat_id
        self.router = Router(default_chat_id, target_per_category)
        self.timeout = timeout

        self.base_url = f"{API_BASE_URL}{self.bot_token}"

    @classmethod
    def from_settings(cls, settings) -> "TelegramBot":
        return cls(
            settings.telegram_bot_token,
            settings.telegram_default_chat_id,
            settings.telegram_targets,
            timeout=settings.telegram_timeout,
        )

    def get_target(self, category: str) -> str:
        return self.router.resolve(category)

    def send_message(
        self,
        chat_id: str,
        text: str,
        parse_mode: Union[ParseMode, str] = ParseMode.HTML,
        payload: Optional[Mapping[str, Any]] = None,
        auto_split: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        Send text to a chat or channel, one request per chunk when auto_split is on.
        Returns the decoded API response of every request, in order.
        See https://core.telegram.org/bots/api#sendmessage
        """
        mode = _parse_mode(parse_mode)
        text = strip_tags(text)
        if mode == ParseMode.HTML.value:
            text = escape_text(text)
        if not text.strip():
            logger.debug("Skipping empty message for chat_id=%s", chat_id)
            return []

        extra = {**DEFAULT_MESSAGE_PAYLOAD, **(payload or {})}
        chunks = split_message(text) if auto_split else [text]

        results = []
        for chunk in chunks:
            message = OutboundMessage(chat_id=chat_id, text=chunk, parse_mode=mode, payload=extra)
            response = self._post("sendMessage", data=message.to_form())
            results.append(response.decoded)
        return results

    def send_document(
        self,
        chat_id: Optional[str] = None,
        content: Optional[Union[str, bytes]] = None,
        file: Optional[Union[str, os.PathLike, BinaryIO]] = None,
        filename: Optional[str] = None,
        caption: Optional[str] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Upload a document built from content, or an existing file (path or binary file object).
        See https://core.telegram.org/bots/api#senddocument
        """
        if content is None and file is None:
            raise ArgumentError("Either content or file must be provided to send a document.")
        if content is not None and file is not None:
            raise ArgumentError("Provide content or file to send a document, not both.")

        data: Dict[str, Any] = {"chat_id": chat_id or self.default_chat_id, **(payload or {})}
        if caption:
            data["caption"] = escape_text(strip_tags(caption))
            data["parse_mode"] = ParseMode.HTML.value

        if content is not None:
            if isinstance(content, str):
                content = content.encode("utf-8")
            return self._upload(data, filename or "document.txt", content)

        if isinstance(file, (str, os.PathLike)):
            with open(file, "rb") as f:
                return self._upload(data, filename or os.path.basename(file), f)

        name = filename or os.path.basename(getattr(file, "name", "") or "") or "document"
        return self._upload(data, name, file)

    def _upload(self, data: Dict[str, Any], filename: str, document) -> Dict[str, Any]:
        response = self._post("sendDocument", data=_to_form(data), files={"document": (filename, document)})
        return response.decoded

    def _post(self, method: str, data: Dict[str, str], files=None) -> ApiResponse:
        # Never log self.base_url: it carries the token.
        logger.debug("POST %s chat_id=%s", method, data.get("chat_id"))

        r = requests.post(f"{self.base_url}/{method}", data=data, files=files, timeout=self.timeout)
        response = ApiResponse.from_http(r)
        response.validate()
        if not response.http_ok:
            r.raise_for_status()
        return response
