"""Tests for hud.preferences."""

import json
import logging

from hud.preferences import LogFilter, Preferences, PreferencesStore


class TestPreferencesStore:
    def test_missing_file_gives_defaults(self, temp_dir):
        prefs = PreferencesStore(temp_dir / "prefs.json").load()
        assert prefs == Preferences()

    def test_save_then_load(self, temp_dir):
        store = PreferencesStore(temp_dir / "prefs.json")
        assert store.save(Preferences(log_panel_height=8, auto_show_log=True, log_level=LogFilter.TRACE))
        loaded = store.load()
        assert loaded.log_panel_height == 8
        assert loaded.auto_show_log is True
        assert loaded.log_level is LogFilter.TRACE
        assert loaded.saved_at is not None

    def test_file_format(self, temp_dir):
        path = temp_dir / "prefs.json"
        PreferencesStore(path).save(Preferences(log_panel_height=4))
        data = json.loads(path.read_text())
        assert set(data) == {"logPanelHeight", "autoShowLog", "logLevel", "savedAt"}
        assert data["logPanelHeight"] == 4
        assert data["logLevel"] == "info"

    def test_corrupt_file_gives_defaults_and_logs(self, temp_dir, caplog):
        path = temp_dir / "prefs.json"
        path.write_text("{not json")
        with caplog.at_level(logging.ERROR, logger="hud.preferences"):
            prefs = PreferencesStore(path).load()
        assert prefs == Preferences()
        assert "corrupt" in caplog.text

    def test_non_object_gives_defaults(self, temp_dir):
        path = temp_dir / "prefs.json"
        path.write_text("[1, 2]")
        assert PreferencesStore(path).load() == Preferences()

    def test_invalid_fields_ignored(self, temp_dir):
        path = temp_dir / "prefs.json"
        path.write_text(json.dumps({"logPanelHeight": 99, "autoShowLog": "yes", "logLevel": "verbose"}))
        prefs = PreferencesStore(path).load()
        assert prefs.log_panel_height == 15
        assert prefs.auto_show_log is False
        assert prefs.log_level is LogFilter.INFO

    def test_save_failure_logged_not_raised(self, temp_dir, caplog):
        blocker = temp_dir / "blocker"
        blocker.write_text("a file, not a directory")
        store = PreferencesStore(blocker / "prefs.json")
        with caplog.at_level(logging.ERROR, logger="hud.preferences"):
            assert store.save(Preferences()) is False
        assert "Could not save preferences" in caplog.text


class TestLogFilter:
    def test_next_cycles(self):
        assert LogFilter.INFO.next() is LogFilter.DEBUG
        assert LogFilter.TRACE.next() is LogFilter.INFO
