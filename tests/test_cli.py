"""CLI commands that run without an orchestrator, and transcript rendering."""

import io
import json

import httpx
from click.testing import CliRunner
from rich.console import Console

from jisi_code.cli import fs as fs_cli
from jisi_code.cli.chat import TranscriptPrinter, format_usage
from jisi_code.cli.main import main
from jisi_code.config import load_config
from jisi_code.models.events import (
    ContentDelta,
    ServerError,
    SessionCreated,
    Thinking,
    TokenUsageUpdate,
    ToolCall,
)
from jisi_code.models.session import TokenUsage
from jisi_code.state import SessionStore
from jisi_code.transport.http import HttpClient


def test_version_option():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


class TestConfigCommands:
    def test_set_then_show(self):
        runner = CliRunner()
        result = runner.invoke(main, ["config", "set", "ws_url", "ws://box:9000/ws"])
        assert result.exit_code == 0, result.output
        assert load_config().ws_url == "ws://box:9000/ws"

        shown = runner.invoke(main, ["config", "show"])
        assert json.loads(shown.output)["ws_url"] == "ws://box:9000/ws"

    def test_rejects_unknown_key(self):
        result = CliRunner().invoke(main, ["config", "set", "colour", "blue"])
        assert result.exit_code == 2
        assert "unknown key" in result.output

    def test_rejects_bad_value(self):
        result = CliRunner().invoke(main, ["config", "set", "max_reconnect_attempts", "many"])
        assert result.exit_code == 2


class TestFsCommands:
    @staticmethod
    def _mock_http(monkeypatch, handler):
        def factory(base_url):
            return HttpClient(base_url, transport=httpx.MockTransport(handler))
        monkeypatch.setattr(fs_cli, "HttpClient", factory)

    def test_cwd(self, monkeypatch):
        self._mock_http(monkeypatch, lambda request: httpx.Response(200, json={"path": "/srv/work"}))
        result = CliRunner().invoke(main, ["fs", "cwd"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "/srv/work"

    def test_exists_missing_exits_1(self, monkeypatch):
        self._mock_http(monkeypatch, lambda request: httpx.Response(200, json={"exists": False}))
        result = CliRunner().invoke(main, ["fs", "exists", "/nope"])
        assert result.exit_code == 1

    def test_http_error_is_reported(self, monkeypatch):
        self._mock_http(monkeypatch, lambda request: httpx.Response(403, json={"error": "Access denied"}))
        result = CliRunner().invoke(main, ["fs", "ls", "/root"])
        assert result.exit_code == 1
        assert "Access denied" in result.output


def _printer() -> tuple[io.StringIO, TranscriptPrinter]:
    out = io.StringIO()
    return out, TranscriptPrinter(Console(file=out, width=200, color_system=None), "s1")


class TestTranscriptPrinter:
    def test_prints_stream_incrementally(self):
        store = SessionStore()
        store.apply_server_event(SessionCreated(session_id="s1", agent_name="claude"))
        out, printer = _printer()
        printer.mark_seen(store.snapshot)

        printer.update(store.apply_server_event(ContentDelta(session_id="s1", content="Hel")))
        printer.update(store.apply_server_event(ContentDelta(session_id="s1", content="lo")))
        printer.update(store.apply_server_event(ToolCall(session_id="s1", tool_name="bash", args={"cmd": "ls"})))
        printer.finish()

        text = out.getvalue()
        assert "Agent: Hello" in text
        assert text.count("Hel") == 1
        assert "> bash" in text

    def test_skips_history_and_user_messages(self):
        store = SessionStore()
        store.apply_server_event(SessionCreated(session_id="s1", agent_name="claude"))
        store.apply_server_event(ContentDelta(session_id="s1", content="old answer"))
        out, printer = _printer()
        printer.mark_seen(store.snapshot)

        store.add_user_message("s1", "question")
        printer.update(store.apply_server_event(Thinking(session_id="s1", content="pondering")))
        printer.update(store.apply_server_event(ServerError(message="[agent] crashed")))

        text = out.getvalue()
        assert "old answer" not in text
        assert "question" not in text
        assert "pondering" in text
        assert "[agent] crashed" in text
        assert [m.role for m in printer.new_messages(store.snapshot)] == []

    def test_usage_footer(self):
        store = SessionStore()
        store.apply_server_event(SessionCreated(session_id="s1", agent_name="claude"))
        out, printer = _printer()
        usage = TokenUsage(input_tokens=30_000, output_tokens=20_000)
        printer.update(store.apply_server_event(TokenUsageUpdate(session_id="s1", usage=usage)))
        printer.finish()
        assert format_usage(usage) in out.getvalue()


def test_format_usage():
    usage = TokenUsage(input_tokens=30_000, output_tokens=20_000)
    assert format_usage(usage) == "tokens 50,000/200,000 (25% used, 150,000 left)"
