# main.py
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from config import load_settings
from telegram_client import ParseMode, TelegramBot

logger = logging.getLogger("telegram_log")
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _read_text(value: str) -> str:
    return sys.stdin.read() if value == "-" else value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Send messages and documents to the configured Telegram chats.")
    sub = ap.add_subparsers(dest="command", required=True)

    msg = sub.add_parser("message", help="Send a text message ('-' reads stdin)")
    msg.add_argument("text")
    msg.add_argument("--category", default="app", help="Log category used to pick the chat")
    msg.add_argument("--no-split", action="store_true", help="Send as a single request even if too long")
    msg.add_argument("--markdown", action="store_true", help="Use Markdown instead of HTML parse mode")

    doc = sub.add_parser("document", help="Upload a file ('-' reads stdin)")
    doc.add_argument("path")
    doc.add_argument("--caption", default=None)
    doc.add_argument("--category", default="app", help="Log category used to pick the chat")
    doc.add_argument("--filename", default=None, help="File name shown in Telegram")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_settings()
    bot = TelegramBot.from_settings(settings)
    chat_id = bot.get_target(args.category)

    if args.command == "message":
        responses = bot.send_message(
            chat_id,
            _read_text(args.text),
            parse_mode=ParseMode.MARKDOWN if args.markdown else ParseMode.HTML,
            auto_split=not args.no_split,
        )
        logger.info("Sent %d message(s) to %s", len(responses), chat_id)
    else:
        if args.path == "-":
            bot.send_document(chat_id, content=sys.stdin.buffer.read(), filename=args.filename, caption=args.caption)
        else:
            bot.send_document(chat_id, file=args.path, filename=args.filename, caption=args.caption)
        logger.info("Sent document to %s", chat_id)

    return 0


if __name__ == "__main__":
    sys.exit(main())
