"""Tests for configuration loading."""

import pytest

from robinrelay_core.config import load_config, slack_enabled

_CREDENTIAL_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_APP_ID",
    "GITHUB_PRIVATE_KEY_PATH",
    "GITHUB_WEBHOOK_SECRET",
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
    "SLACK_APP_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _CREDENTIAL_VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["bot_name"] == "robin-relay-bot"
    assert config["cooldown_seconds"] == 5
    assert config["check_run_name"] == "🛠️ PR Review Bot"
    assert config["slash_command"] == "/robin-relay"
    assert config["default_repo"] is None
    assert config["match_bot_substring"] is True


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".robinrelay.yml"
    cfg.write_text("cooldown_seconds: 10\ndefault_repo: acme/widgets\n")
    config = load_config(config_path=str(cfg))
    assert config["cooldown_seconds"] == 10
    assert config["default_repo"] == "acme/widgets"


def test_empty_config_file_keeps_defaults(tmp_path):
    cfg = tmp_path / ".robinrelay.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["port"] == 3000


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".robinrelay.yml"
    cfg.write_text("log_level: DEBUG\n")
    config = load_config(config_path=str(cfg), cli_overrides={"log_level": "WARNING"})
    assert config["log_level"] == "WARNING"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".robinrelay.yml"
    cfg.write_text("log_level: DEBUG\n")
    config = load_config(config_path=str(cfg), cli_overrides={"log_level": None})
    assert config["log_level"] == "DEBUG"


def test_credentials_in_file_are_replaced_by_env(tmp_path, monkeypatch):
    cfg = tmp_path / ".robinrelay.yml"
    cfg.write_text("github_token: from-file\n")
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    config = load_config(config_path=str(cfg))
    assert config["github_token"] == "from-env"


def test_env_vars_loaded(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", "hook-secret")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-1")
    config = load_config(config_path="nonexistent.yml")
    assert config["github_token"] == "gh-token"
    assert config["webhook_secret"] == "hook-secret"
    assert config["slack_bot_token"] == "xoxb-1"
    assert config["slack_app_token"] is None


def test_bot_identities_list_is_not_shared_reference(tmp_path):
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["bot_identities"].append("other-bot")
    assert "other-bot" not in config_b["bot_identities"]


def test_slack_enabled_requires_all_three_credentials():
    config = {"slack_bot_token": "xoxb", "slack_signing_secret": "s", "slack_app_token": None}
    assert slack_enabled(config) is False
    config["slack_app_token"] = "xapp"
    assert slack_enabled(config) is True
