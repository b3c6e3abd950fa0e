"""Tests for the modeflow CLI."""

import pytest
from typer.testing import CliRunner

from modeflow.api import cli
from modeflow.api.cli import app
from modeflow.core.errors import UnknownToolError
from modeflow.demo.travel import build_travel_registry
from modeflow.integrations.invoker import ScriptedModelInvoker
from modeflow.modes.messages import ModelReply
from modeflow.modes.runtime import ModeRuntime

runner = CliRunner()


class TestModesCommand:
    """Tests for `modeflow modes`."""

    def test_lists_modes(self):
        result = runner.invoke(app, ["modes"])

        assert result.exit_code == 0
        assert "orientation" in result.output
        assert "book_flight" in result.output
        assert "policy_qa" in result.output


class TestChatCommand:
    """Tests for `modeflow chat`."""

    def test_requires_api_key(self, clean_settings, tmp_path):
        clean_settings.chdir(tmp_path)

        result = runner.invoke(app, ["chat"])

        assert result.exit_code == 1
        assert "LLM_API_KEY" in result.output


@pytest.mark.asyncio
class TestChatLoop:
    """Tests for the interactive loop."""

    async def test_turns_until_exit(self, monkeypatch):
        answers = iter(["I need a flight", "", "quit"])
        monkeypatch.setattr(cli.Prompt, "ask", lambda *args, **kwargs: next(answers))
        invoker = ScriptedModelInvoker([
            ModelReply.from_tool("book_flight", {"request": "a flight"}),
            ModelReply.from_text("Where to?"),
        ])
        runtime = ModeRuntime(build_travel_registry(), invoker)
        session = runtime.create_session("orientation")

        await cli._chat_loop(runtime, session)

        assert session.current_mode == "book_flight"
        assert len(session.presentation_state) == 1

    async def test_failed_turn_keeps_going(self, monkeypatch):
        answers = iter(["buy it", "hello", "exit"])
        monkeypatch.setattr(cli.Prompt, "ask", lambda *args, **kwargs: next(answers))
        printed = []
        monkeypatch.setattr(cli, "_print_failure", printed.append)
        invoker = ScriptedModelInvoker([
            ModelReply.from_tool("buy_ticket", {}),
            ModelReply.from_text("Hi!"),
        ])
        runtime = ModeRuntime(build_travel_registry(), invoker)
        session = runtime.create_session("orientation")

        await cli._chat_loop(runtime, session)

        assert len(printed) == 1
        assert isinstance(printed[0], UnknownToolError)
        assert len(session.presentation_state) == 1
