import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "bot_name": "robin-relay-bot",
    # Logins the bot posts as; comments from these never trigger commands.
    "bot_identities": ["robin-relay-bot", "robinrelay-bot", "robin-relay-bot[bot]"],
    # Also treat any login containing "bot" as a bot account.
    "match_bot_substring": True,
    "cooldown_seconds": 5,
    "check_run_name": "🛠️ PR Review Bot",
    "default_repo": None,  # "owner/name" used by chat commands that omit a repository
    "slash_command": "/robin-relay",
    "host": "0.0.0.0",
    "port": 3000,
    "log_level": "INFO",
}


def load_config(config_path: str = ".robinrelay.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .robinrelay.yml in the current directory
      3. CLI argument overrides
    Credentials are always read from the environment, never from the file.
    """
    config = {**DEFAULT_CONFIG, "bot_identities": list(DEFAULT_CONFIG["bot_identities"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["github_app_id"] = os.environ.get("GITHUB_APP_ID")
    config["github_private_key_path"] = os.environ.get("GITHUB_PRIVATE_KEY_PATH")
    config["webhook_secret"] = os.environ.get("GITHUB_WEBHOOK_SECRET")
    config["slack_bot_token"] = os.environ.get("SLACK_BOT_TOKEN")
    config["slack_signing_secret"] = os.environ.get("SLACK_SIGNING_SECRET")
    config["slack_app_token"] = os.environ.get("SLACK_APP_TOKEN")

    return config


def slack_enabled(config: dict) -> bool:
    """Slack starts only when all three Slack credentials are present."""
    return all(config.get(key) for key in ("slack_bot_token", "slack_signing_secret", "slack_app_token"))
