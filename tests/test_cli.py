"""Tests for the command-line interface."""

import asyncio

import pytest
import yaml

from piwik_tracker.cli import main
from piwik_tracker.queues.sqlite import SqliteQueue
from piwik_tracker.state import YamlStateStore


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "tracker.yaml"
    path.write_text(yaml.safe_dump({
        "site_id": "1",
        "state_path": str(tmp_path / "state.yaml"),
        "dispatcher": {"type": "console", "format": "compact"},
    }))
    return str(path)


class TestCli:
    def test_view_is_dispatched(self, config_path, tmp_path, capsys):
        assert main(["--config", config_path, "view", "menu", "settings"]) == 0

        out = capsys.readouterr().out
        assert "view menu/settings" in out
        assert YamlStateStore(tmp_path / "state.yaml").load().total_visits == 1

    def test_event_is_dispatched(self, config_path, capsys):
        assert main(["--config", config_path, "event", "player", "play", "--value", "3"]) == 0
        assert "event player/play" in capsys.readouterr().out

    def test_opt_out_blocks_tracking(self, config_path, tmp_path, capsys):
        assert main(["--config", config_path, "opt-out", "on"]) == 0
        assert YamlStateStore(tmp_path / "state.yaml").load().opt_out

        assert main(["--config", config_path, "view", "home"]) == 0
        assert "view home" not in capsys.readouterr().out

    def test_state(self, config_path, capsys):
        main(["--config", config_path, "view", "home"])
        assert main(["--config", config_path, "state"]) == 0
        assert "total:" in capsys.readouterr().out

    def test_state_requires_path(self, monkeypatch):
        monkeypatch.delenv("PIWIK_STATE_PATH", raising=False)
        assert main(["state"]) == 2

    def test_missing_site_id(self, monkeypatch):
        monkeypatch.delenv("PIWIK_SITE_ID", raising=False)
        assert main(["--base-url", "https://piwik.example.com/piwik.php", "view", "home"]) == 2

    def test_no_command(self):
        assert main([]) == 2


class TestCliQueuedBeforeOptOut:
    def test_queued_events_still_dispatched(self, tmp_path, make_event, capsys):
        queue_path = tmp_path / "queue.db"
        path = tmp_path / "tracker.yaml"
        path.write_text(yaml.safe_dump({
            "site_id": "1",
            "state_path": str(tmp_path / "state.yaml"),
            "queue": {"type": "sqlite", "path": str(queue_path)},
            "dispatcher": {"type": "console", "format": "compact"},
        }))
        asyncio.run(SqliteQueue(queue_path).enqueue(make_event("earlier")))

        assert main(["--config", str(path), "opt-out", "on"]) == 0
        assert main(["--config", str(path), "view", "later"]) == 0

        out = capsys.readouterr().out
        assert "view earlier" in out
        assert "view later" not in out
        assert asyncio.run(SqliteQueue(queue_path).count()) == 0


class TestCliLogLevel:
    def test_unknown_log_level(self, config_path):
        assert main(["--config", config_path, "--log-level", "FOO", "view", "home"]) == 2

    def test_known_log_level(self, config_path):
        assert main(["--config", config_path, "--log-level", "debug", "view", "home"]) == 0
