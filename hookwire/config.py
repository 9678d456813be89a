"""Configuration management for hookwire.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
defaults for the Discord application, webhook server, interaction
routing, and logging. Environment variables take precedence over YAML
for identifiers and secrets.

Key classes:
    Config: Typed view over settings.yaml and the environment.

Key functions:
    get_config: Lazily created process-wide Config.
"""

import os
import re
from pathlib import Path
from typing import Optional

import structlog
import yaml
from dotenv import load_dotenv

logger = structlog.get_logger("hookwire.bot")

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"

_HEX_KEY_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


class Config:
    """Central configuration manager for hookwire.

    Loads settings.yaml and .env from the config directory. Read-only
    after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``$HOOKWIRE_CONFIG_DIR`` or ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            env_dir = os.environ.get("HOOKWIRE_CONFIG_DIR")
            config_dir = Path(env_dir) if env_dir else Path(__file__).parent.parent / "config"
        self.config_dir = config_dir

        env_file = config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Parse a YAML file from the config directory; missing means empty."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def validate(self):
        """Validate critical settings at startup.

        Logs warnings/errors but does not raise -- a missing key
        only disables the feature that needs it.
        """
        if not self.application_id:
            logger.warning("no_application_id", msg="Command migration will fail")

        key = self.public_key
        if not key:
            logger.warning(
                "no_public_key",
                msg="Webhook signature verification is disabled",
            )
        elif not _HEX_KEY_PATTERN.match(key):
            logger.error("invalid_public_key_format", length=len(key))

        if self.migration_enabled and not self.bot_token:
            logger.error(
                "config_missing_value",
                key="DISCORD_BOT_TOKEN",
                reason="interactions.migrate_on_start requires a bot token",
            )

    # Discord application
    @property
    def application_id(self) -> str:
        """Discord application ID. Env var DISCORD_APPLICATION_ID takes precedence."""
        return os.environ.get("DISCORD_APPLICATION_ID") or str(
            self.settings.get("application_id", "")
        )

    @property
    def public_key(self) -> str:
        """Hex-encoded Ed25519 application public key.

        Empty disables webhook signature verification.
        """
        return os.environ.get("DISCORD_PUBLIC_KEY") or self.settings.get("public_key", "")

    @property
    def bot_token(self) -> str:
        """Bot token. Only read from the environment, never from YAML."""
        return os.environ.get("DISCORD_BOT_TOKEN", "")

    @property
    def guild_id(self) -> str:
        """Guild to scope command migration to. Empty means global."""
        return os.environ.get("DISCORD_GUILD_ID") or str(self.settings.get("guild_id", ""))

    @property
    def api_base_url(self) -> str:
        """Discord HTTP API base URL."""
        return self.settings.get("api_base_url", DEFAULT_API_BASE_URL).rstrip("/")

    @property
    def request_timeout(self) -> float:
        """Total timeout in seconds for a single Discord API call."""
        val = self.settings.get("request_timeout", 10.0)
        try:
            return float(val)
        except (ValueError, TypeError):
            logger.warning("config_invalid_request_timeout", value=val)
            return 10.0

    # Interaction routing
    @property
    def deferred_response(self) -> bool:
        """Send a deferred acknowledgment before running command handlers."""
        interactions = self.settings.get("interactions") or {}
        return interactions.get("deferred_response", True)

    @property
    def ephemeral_deferral(self) -> bool:
        """Whether the deferred acknowledgment is only visible to the invoker."""
        interactions = self.settings.get("interactions") or {}
        return interactions.get("ephemeral", True)

    @property
    def migration_enabled(self) -> bool:
        """Overwrite the remote command set at startup."""
        interactions = self.settings.get("interactions") or {}
        return interactions.get("migrate_on_start", False)

    # Webhook server
    @property
    def webhook_host(self) -> str:
        webhook = self.settings.get("webhook") or {}
        return webhook.get("host", "0.0.0.0")

    @property
    def webhook_port(self) -> int:
        """Listening port. Env var PORT takes precedence (default 8080)."""
        webhook = self.settings.get("webhook") or {}
        val = os.environ.get("PORT") or webhook.get("port", 8080)
        try:
            return int(val)
        except (ValueError, TypeError):
            logger.warning("config_invalid_port", value=val)
            return 8080

    @property
    def webhook_path(self) -> str:
        webhook = self.settings.get("webhook") or {}
        return webhook.get("path", "/interactions")

    # Logging
    @property
    def log_dir(self) -> Path:
        """Directory for rotated log files (default `<repo>/logs`)."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Level for the console and hookwire.log (default INFO)."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"router": "DEBUG"}."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Rotation threshold per log file, in MB (default 10)."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Rotated files kept per log (default 5)."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Return the process-wide Config, loading it on first use."""
    global _config
    if _config is None:
        _config = Config()
    return _config
