"""Tests for configuration loading."""

import json

from piwik_tracker.config import TrackerConfig


class TestTrackerConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PIWIK_SITE_ID", raising=False)
        monkeypatch.delenv("PIWIK_BASE_URL", raising=False)
        config = TrackerConfig()

        assert config.site_id is None
        assert config.dispatch.interval_seconds == 30.0
        assert config.dispatch.batch_size == 20
        assert config.queue.type == "memory"
        assert config.dispatcher.type == "http"
        assert config.dispatcher.base_url is None
        assert config.log_level == "WARNING"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("PIWIK_SITE_ID", "9")
        monkeypatch.setenv("PIWIK_BASE_URL", "https://stats.example.com/piwik.php")
        config = TrackerConfig()

        assert config.site_id == "9"
        assert config.dispatcher.base_url == "https://stats.example.com/piwik.php"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text(
            "site_id: 4\n"
            "dispatch:\n"
            "  interval_seconds: 0\n"
            "queue:\n"
            "  type: sqlite\n"
            "  path: /tmp/events.db\n"
        )
        config = TrackerConfig.from_file(str(path))

        assert config.site_id == "4"
        assert config.dispatch.interval_seconds == 0
        assert config.queue.path == "/tmp/events.db"

    def test_from_json(self, tmp_path):
        path = tmp_path / "tracker.json"
        path.write_text(json.dumps({"site_id": "2", "dispatcher": {"type": "console"}}))
        config = TrackerConfig.from_file(str(path))

        assert config.site_id == "2"
        assert config.dispatcher.type == "console"

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert TrackerConfig.from_yaml(str(path)).dispatch.batch_size == 20
