from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest


# Modules live at the repository root (flat layout); make them importable without installing.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from telegram_client import TelegramBot  # noqa: E402


def _response(body=None, status: int = 200, text=None):
    r = MagicMock()
    if isinstance(body, Exception):
        r.json.side_effect = body
        r.text = text or ""
    else:
        body = {"ok": True, "result": {"message_id": 1}} if body is None else body
        r.json.return_value = body
        r.text = text if text is not None else json.dumps(body)
    r.status_code = status
    r.ok = status < 400
    return r


@pytest.fixture
def make_response():
    return _response


@pytest.fixture
def post():
    """requests.post as seen by telegram_client, answering ok=true by default."""
    with patch("telegram_client.requests.post") as m:
        m.return_value = _response()
        yield m


@pytest.fixture
def bot():
    return TelegramBot("123:abc", "000", {"orders": "111"})
