"""Tests for the command line entry point."""

import io

import pytest

import main

ENV_VARS = ["TELEGRAM_TARGETS", "TELEGRAM_TIMEOUT", "TELEGRAM_GROUP_THRESHOLD"]


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_DEFAULT_CHAT_ID", "000")
    monkeypatch.setenv("TELEGRAM_TARGETS", "orders=111")
    return monkeypatch


class TestMain:
    def test_message(self, env, post):
        assert main.main(["message", "<b>deploy</b> done", "--category", "orders"]) == 0
        data = post.call_args.kwargs["data"]
        assert data["chat_id"] == "111"
        assert data["text"] == "<b>deploy</b> done"
        assert data["parse_mode"] == "HTML"

    def test_message_from_stdin_markdown(self, env, post):
        env.setattr("sys.stdin", io.StringIO("*hi*"))
        main.main(["message", "-", "--markdown"])
        data = post.call_args.kwargs["data"]
        assert data["chat_id"] == "000"
        assert data["text"] == "*hi*"
        assert data["parse_mode"] == "Markdown"

    def test_no_split(self, env, post):
        main.main(["message", "x" * 5000, "--no-split"])
        assert post.call_count == 1

    def test_document(self, env, post, tmp_path):
        path = tmp_path / "dump.txt"
        path.write_text("data")
        main.main(["document", str(path), "--caption", "nightly dump", "--category", "orders"])

        assert post.call_args.args[0].endswith("/sendDocument")
        data = post.call_args.kwargs["data"]
        assert data == {"chat_id": "111", "caption": "nightly dump", "parse_mode": "HTML"}
        assert post.call_args.kwargs["files"]["document"][0] == "dump.txt"

    def test_requires_command(self, env):
        with pytest.raises(SystemExit):
            main.main([])
