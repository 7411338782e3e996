"""Tests for configuration loading."""

import yaml

from prwatch_core.config import (
    MIN_POLL_INTERVAL_MINUTES,
    PAT_ENV_VAR,
    ProjectConfig,
    load_config,
    load_settings,
    save_projects,
    settings_from_config,
)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["poll_interval_minutes"] == 2
    assert config["notifications_enabled"] is True
    assert config["request_timeout"] == 30
    assert config["store"] == "sqlite"
    assert config["projects"] == []


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".prwatch.yml"
    cfg.write_text("poll_interval_minutes: 5\nnotifications_enabled: false\n")
    config = load_config(config_path=str(cfg))
    assert config["poll_interval_minutes"] == 5
    assert config["notifications_enabled"] is False


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".prwatch.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["projects"] == []


def test_defaults_are_not_shared_between_loads(tmp_path):
    first = load_config(config_path=str(tmp_path / "none.yml"))
    first["projects"].append({"organization": "o", "project": "p"})
    second = load_config(config_path=str(tmp_path / "none.yml"))
    assert second["projects"] == []


class TestSettingsFromConfig:
    def test_projects_parsed(self, monkeypatch):
        monkeypatch.delenv(PAT_ENV_VAR, raising=False)
        settings = settings_from_config(
            {
                "projects": [
                    {"organization": "org", "project": "proj", "pat": "p1", "user_id": "u1"},
                    {"organization": "org", "project": "other"},
                ]
            }
        )

        assert [p.slug for p in settings.projects] == ["org/proj", "org/other"]
        assert settings.projects[0].is_connected is True
        assert settings.projects[1].is_connected is False
        assert settings.projects[1].pat is None

    def test_incomplete_entries_skipped(self):
        settings = settings_from_config({"projects": [{"organization": "org"}, {"project": "p"}]})
        assert settings.projects == []

    def test_env_pat_fallback(self, monkeypatch):
        monkeypatch.setenv(PAT_ENV_VAR, "env-pat")
        settings = settings_from_config({"projects": [{"organization": "org", "project": "proj"}]})
        assert settings.projects[0].pat == "env-pat"

    def test_explicit_pat_wins_over_env(self, monkeypatch):
        monkeypatch.setenv(PAT_ENV_VAR, "env-pat")
        settings = settings_from_config({"projects": [{"organization": "org", "project": "proj", "pat": "mine"}]})
        assert settings.projects[0].pat == "mine"

    def test_poll_interval_clamped(self):
        settings = settings_from_config({"poll_interval_minutes": 0})
        assert settings.poll_interval_minutes == 2  # falsy falls back to the default
        settings = settings_from_config({"poll_interval_minutes": -3})
        assert settings.poll_interval_minutes == MIN_POLL_INTERVAL_MINUTES

    def test_notifications_and_timeout(self):
        settings = settings_from_config({"notifications_enabled": False, "request_timeout": 10})
        assert settings.notifications_enabled is False
        assert settings.request_timeout == 10.0

    def test_find_project(self):
        settings = settings_from_config({"projects": [{"organization": "org", "project": "proj"}]})
        assert settings.find_project("org", "proj") is settings.projects[0]
        assert settings.find_project("org", "nope") is None


class TestSaveProjects:
    def test_preserves_other_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv(PAT_ENV_VAR, raising=False)
        cfg = tmp_path / ".prwatch.yml"
        cfg.write_text("poll_interval_minutes: 5\n")

        save_projects(str(cfg), [ProjectConfig("org", "proj", pat="p1", user_id="u1", user_display_name="Me")])

        data = yaml.safe_load(cfg.read_text())
        assert data["poll_interval_minutes"] == 5
        assert data["projects"] == [
            {"organization": "org", "project": "proj", "pat": "p1", "user_id": "u1", "user_display_name": "Me"}
        ]

    def test_env_pat_not_written(self, tmp_path, monkeypatch):
        monkeypatch.setenv(PAT_ENV_VAR, "env-pat")
        cfg = tmp_path / ".prwatch.yml"

        save_projects(str(cfg), [ProjectConfig("org", "proj", pat="env-pat", user_id="u1")])

        data = yaml.safe_load(cfg.read_text())
        assert "pat" not in data["projects"][0]

    def test_round_trip_through_load_settings(self, tmp_path, monkeypatch):
        monkeypatch.delenv(PAT_ENV_VAR, raising=False)
        cfg = tmp_path / ".prwatch.yml"
        save_projects(str(cfg), [ProjectConfig("org", "proj", pat="p1", user_id="u1")])

        settings = load_settings(str(cfg))

        assert settings.projects == [ProjectConfig("org", "proj", pat="p1", user_id="u1")]
