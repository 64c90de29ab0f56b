# tests/core/test_config_manager.py
import json

import pytest

from wsg_check.core.errors import ConfigError
from wsg_check.core.managers.config_manager import (
    USER_CONFIG_FILENAME,
    ConfigManager,
    config_manager,
    resolve_settings,
    split_list,
)


@pytest.fixture
def user_config(tmp_path, monkeypatch):
    """
    Runs the test from a temporary working directory and returns a writer for
    its user config file. The global config is reloaded from the packaged
    defaults afterwards.
    """
    monkeypatch.chdir(tmp_path)

    def _write(data):
        (tmp_path / USER_CONFIG_FILENAME).write_text(json.dumps(data), encoding="utf-8")
        config_manager.reset()

    yield _write

    monkeypatch.undo()
    config_manager.reset()


def test_config_manager_is_a_singleton():
    assert ConfigManager() is config_manager


def test_packaged_defaults_are_loaded(user_config):
    config_manager.reset()
    assert config_manager.get_nested("session.max_redirects") == 10
    assert config_manager.get_nested("rules.categories") == ["ux", "web-dev", "hosting", "business"]
    assert config_manager.get_nested("does.not.exist", "fallback") == "fallback"


def test_user_config_is_deep_merged(user_config):
    user_config({"session": {"time_out": 12}, "report": {"format": "json"}})

    assert config_manager.get_nested("session.time_out") == 12
    # Sibling keys of the override survive the merge
    assert config_manager.get_nested("session.max_redirects") == 10
    assert config_manager.get_nested("report.format") == "json"


def test_invalid_user_config_is_ignored(user_config, tmp_path):
    (tmp_path / USER_CONFIG_FILENAME).write_text("{not json", encoding="utf-8")
    config_manager.reset()
    assert config_manager.get_nested("session.time_out") == 30


def test_set_nested_casts_to_existing_type(user_config):
    config_manager.reset()
    assert config_manager.set_nested("session.max_redirects", "4")
    assert config_manager.get_nested("session.max_redirects") == 4

    config_manager.set_nested("robots_txt.enabled", "false")
    assert config_manager.get_nested("robots_txt.enabled") is False

    config_manager.set_nested("new.section.key", "value")
    assert config_manager.get_nested("new.section.key") == "value"


def test_split_list():
    assert split_list(" ux, hosting ,,web-dev ") == ["ux", "hosting", "web-dev"]


def test_resolve_settings_defaults(user_config):
    config_manager.reset()
    settings = resolve_settings(environ={})

    assert settings.timeout == 30
    assert settings.ignore_robots is False
    assert settings.format == "terminal"
    assert settings.rule_timeout == 10
    assert settings.categories == ["ux", "web-dev", "hosting", "business"]


def test_resolve_settings_precedence(user_config):
    user_config({"session": {"time_out": 20}, "report": {"format": "json", "fail_threshold": 40}})
    environ = {"WSG_TIMEOUT": "15", "WSG_CATEGORIES": "ux,hosting", "WSG_IGNORE_ROBOTS": "yes"}

    settings = resolve_settings({"timeout": 5, "format": None}, environ=environ)

    assert settings.timeout == 5
    assert settings.categories == ["ux", "hosting"]
    assert settings.ignore_robots is True
    assert settings.format == "json"
    assert settings.fail_threshold == 40


def test_robots_disabled_in_config_means_ignore(user_config):
    user_config({"robots_txt": {"enabled": False}})
    assert resolve_settings(environ={}).ignore_robots is True


@pytest.mark.parametrize("environ,field", [
    ({"WSG_TIMEOUT": "soon"}, "WSG_TIMEOUT"),
    ({"WSG_FOLLOW_REDIRECTS": "maybe"}, "WSG_FOLLOW_REDIRECTS"),
    ({"WSG_CATEGORIES": "ux,marketing"}, "categories"),
    ({"WSG_FAIL_THRESHOLD": "150"}, "fail_threshold"),
    ({"WSG_FORMAT": "pdf"}, "format"),
])
def test_resolve_settings_rejects_bad_values(user_config, environ, field):
    config_manager.reset()
    with pytest.raises(ConfigError) as exc_info:
        resolve_settings(environ=environ)
    assert exc_info.value.field == field


def test_negative_rule_timeout_is_rejected(user_config):
    user_config({"rules": {"time_out": -1}})

    with pytest.raises(ConfigError) as exc_info:
        resolve_settings(environ={})
    assert exc_info.value.field == "rule_timeout"

    user_config({"rules": {"time_out": 0}})
    assert resolve_settings(environ={}).rule_timeout == 0
