"""CLI command tests using Click CliRunner.

Strategy: patch config loading and pipeline construction at cli.main's import
point so no command touches a real completion service or backend.
"""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from cli.config_models import SymbiosisConfig
from cli.main import cli
from companion.pipeline import TurnPipeline
from companion.reply import TurnReply
from memory.models import ChatMessage, MediaFile
from shared_types import DirectorAction, Mood, Role


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_pipeline(backend):
    pipeline = MagicMock(spec=TurnPipeline)
    pipeline.backend = backend
    pipeline.queue = MagicMock(pending=0)
    pipeline.handle.return_value = TurnReply("Hello, friend.", Mood.JOYFUL)
    pipeline.entity_visuals.return_value = {}
    return pipeline


@pytest.fixture
def patched(fake_pipeline):
    with patch("cli.main.load_config_model", return_value=SymbiosisConfig()), \
         patch("cli.main.setup_logging"), \
         patch("cli.main.build_pipeline", return_value=fake_pipeline):
        yield fake_pipeline


class TestAsk:
    def test_prints_reply(self, runner, patched):
        result = runner.invoke(cli, ["ask", "hi there"])
        assert result.exit_code == 0
        assert "Hello, friend." in result.output
        assert "JOYFUL" in result.output
        patched.close.assert_awaited_once()

    def test_logs_turn_summary(self, runner, patched):
        with patch("cli.main.log_turn_summary") as summary:
            runner.invoke(cli, ["ask", "hi there"])
        summary.assert_called_once_with("ask")

    def test_mode_flags_set_session(self, runner, patched):
        runner.invoke(cli, ["ask", "show me Alex", "--director"])
        session = patched.handle.await_args.args[0]
        assert session.director and not session.interrogation

    def test_flags_mutually_exclusive(self, runner, patched):
        result = runner.invoke(cli, ["ask", "hi", "--director", "--interrogation"])
        assert result.exit_code != 0
        assert "mutually exclusive" in result.output
        patched.handle.assert_not_awaited()

    def test_media_listing(self, runner, patched):
        patched.handle.return_value = TurnReply(
            "Archive accessed.",
            Mood.CRYPTIC,
            director_action=DirectorAction.PLAY_MEDIA,
            files=[MediaFile("beach.mp4", "video/mp4", "https://cdn.test/beach.mp4")],
        )
        result = runner.invoke(cli, ["ask", "beach footage", "--director"])
        assert "beach.mp4" in result.output

    def test_decks_fetch_visuals(self, runner, patched):
        patched.handle.return_value = TurnReply(
            "Which one?",
            Mood.QUESTION,
            director_action=DirectorAction.SHOW_DECKS,
            deck_keywords=["Alex"],
        )
        patched.entity_visuals.return_value = {"Alex": ["https://cdn.test/a.jpg"]}
        result = runner.invoke(cli, ["ask", "Alex and Sam", "--director"])
        assert "Alex" in result.output
        assert "1 images" in result.output


class TestChat:
    def test_loop_until_exit(self, runner, patched):
        with patch("cli.main.log_turn_summary") as summary:
            result = runner.invoke(cli, ["chat"], input="hello there\n\nexit\n")
        assert result.exit_code == 0
        assert patched.handle.await_count == 1
        summary.assert_called_once_with("chat-1")
        assert "0 queued" in result.output
        patched.close.assert_awaited_once()


class TestHistory:
    def test_empty(self, runner, patched):
        result = runner.invoke(cli, ["history"])
        assert result.exit_code == 0
        assert "No history." in result.output

    def test_lists_messages(self, runner, patched, backend):
        backend.get_recent_chat.return_value = [
            ChatMessage(Role.USER, "hi", datetime.now()),
            ChatMessage(Role.ASSISTANT, "hello back", datetime.now()),
        ]
        result = runner.invoke(cli, ["history"])
        assert "hello back" in result.output
        assert "assistant" in result.output.lower()


def test_config_error_exits(runner):
    with patch("cli.main.load_config_model", side_effect=ValueError("bad provider")):
        result = runner.invoke(cli, ["history"])
    assert result.exit_code == 1
    assert "bad provider" in result.output


def test_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("chat", "ask", "history"):
        assert command in result.output
