"""Tests for config paths and settings persistence."""

from automirror.utils import (
    DEFAULT_SETTINGS,
    config_dir,
    load_app_settings,
    read_json,
    save_app_settings,
)


class TestSettings:

    def test_config_dir_follows_xdg(self, config_home):
        d = config_dir()
        assert d == config_home / "automirror"
        assert d.is_dir()

    def test_defaults_without_file(self, config_home):
        assert load_app_settings() == DEFAULT_SETTINGS
        assert DEFAULT_SETTINGS["poll_interval"] == 2.0

    def test_file_overrides_defaults(self, config_home):
        save_app_settings({"poll_interval": 5, "dry_run": True})
        settings = load_app_settings()
        assert settings["poll_interval"] == 5
        assert settings["dry_run"] is True
        assert settings["xrandr"] == "xrandr"

    def test_unknown_keys_dropped(self, config_home):
        save_app_settings({"clamshell_mode": True})
        assert "clamshell_mode" not in load_app_settings()

    def test_corrupt_file_gives_defaults(self, config_home):
        (config_dir() / "settings.json").write_text("{not json", encoding="utf-8")
        assert load_app_settings() == DEFAULT_SETTINGS

    def test_non_object_file_gives_defaults(self, config_home):
        (config_dir() / "settings.json").write_text("[1, 2]", encoding="utf-8")
        assert load_app_settings() == DEFAULT_SETTINGS

    def test_wrong_types_fall_back_to_defaults(self, config_home, caplog):
        save_app_settings({
            "poll_interval": "fast",
            "udev_wakeup": "yes",
            "xrandr": 42,
            "dry_run": True,
        })
        settings = load_app_settings()
        assert settings["poll_interval"] == 2.0
        assert settings["udev_wakeup"] is False
        assert settings["xrandr"] == "xrandr"
        assert settings["dry_run"] is True
        assert "Ignoring invalid setting poll_interval='fast'" in caplog.text

    def test_non_positive_or_bool_interval_rejected(self, config_home):
        save_app_settings({"poll_interval": 0})
        assert load_app_settings()["poll_interval"] == 2.0
        save_app_settings({"poll_interval": True})
        assert load_app_settings()["poll_interval"] == 2.0
        save_app_settings({"poll_interval": 5})
        assert load_app_settings()["poll_interval"] == 5

    def test_round_trip_is_formatted_json(self, config_home):
        save_app_settings(dict(DEFAULT_SETTINGS))
        path = config_dir() / "settings.json"
        assert read_json(path) == DEFAULT_SETTINGS
        assert path.read_text(encoding="utf-8").endswith("\n")
