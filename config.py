"""Config management for mcp-session-gateway.

Settings come from an optional JSON file (``~/.mcp-session-gateway/config.json``
or the path in ``MCP_GATEWAY_CONFIG``) overlaid with environment variables.
Environment variables always win. ``.env`` files are loaded by the entry
points (``main.py``, ``cli.py``) through ``load_env_files()`` before
``load_config()`` runs.
"""
import json
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".mcp-session-gateway"
CONFIG_FILE = CONFIG_DIR / "config.json"

# config key -> environment variable
ENV_VARS = {
    "host": "MCP_HOST",
    "port": "MCP_PORT",
    "server_url": "SERVER_URL",
    "mcp_path": "MCP_PATH",
    "realm": "AUTH_REALM",
    "enable_oauth": "ENABLE_OAUTH",
    "access_token_ttl": "ACCESS_TOKEN_TTL",
    "auth_code_ttl": "AUTH_CODE_TTL",
    "refresh_token_ttl": "REFRESH_TOKEN_TTL",
    "session_idle_timeout": "SESSION_IDLE_TIMEOUT",
    "session_close_timeout": "SESSION_CLOSE_TIMEOUT",
    "maintenance_interval": "MAINTENANCE_INTERVAL",
    "strict_redirect_uris": "STRICT_REDIRECT_URIS",
    "demo_user_id": "DEMO_USER_ID",
    "demo_user_email": "DEMO_USER_EMAIL",
    "json_response": "MCP_JSON_RESPONSE",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
}

DEFAULTS = {
    "host": "127.0.0.1",
    "port": 3000,
    "mcp_path": "/mcp",
    "realm": "mcp",
    "enable_oauth": True,
    "access_token_ttl": 3600,
    "auth_code_ttl": 600,
    "refresh_token_ttl": 30 * 24 * 60 * 60,
    "session_idle_timeout": 1800,
    "session_close_timeout": 5.0,
    "maintenance_interval": 60.0,
    "strict_redirect_uris": False,
    "demo_user_id": "demo-user",
    "demo_user_email": "demo@example.com",
    "json_response": False,
    "log_level": "INFO",
    "log_format": "plain",
}


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_positive(key: str, value, cast=int):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ValueError(f"Config value {key!r} must be a number, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"Config value {key!r} must be positive, got {value!r}")
    return number


class Config:
    """Configuration container."""

    def __init__(self, data: dict = None):
        self.data = {**DEFAULTS, **(data or {})}
        # Fail at startup rather than on first use
        for key in ("port", "access_token_ttl", "auth_code_ttl", "refresh_token_ttl"):
            _as_positive(key, self.data[key])
        for key in ("session_idle_timeout", "session_close_timeout", "maintenance_interval"):
            _as_positive(key, self.data[key], float)
        if self.log_format not in ("plain", "json"):
            raise ValueError(f"LOG_FORMAT must be 'plain' or 'json', got {self.log_format!r}")

    @property
    def host(self) -> str:
        return self.data["host"]

    @property
    def port(self) -> int:
        return int(self.data["port"])

    @property
    def server_url(self) -> str:
        url = self.data.get("server_url") or f"http://localhost:{self.port}"
        return url.rstrip("/")

    @property
    def mcp_path(self) -> str:
        path = self.data["mcp_path"] or "/mcp"
        return path if path.startswith("/") else f"/{path}"

    @property
    def realm(self) -> str:
        return self.data["realm"]

    @property
    def enable_oauth(self) -> bool:
        return _as_bool(self.data["enable_oauth"])

    @property
    def access_token_ttl(self) -> int:
        return int(self.data["access_token_ttl"])

    @property
    def auth_code_ttl(self) -> int:
        return int(self.data["auth_code_ttl"])

    @property
    def refresh_token_ttl(self) -> int:
        return int(self.data["refresh_token_ttl"])

    @property
    def session_idle_timeout(self) -> float:
        return float(self.data["session_idle_timeout"])

    @property
    def session_close_timeout(self) -> float:
        return float(self.data["session_close_timeout"])

    @property
    def maintenance_interval(self) -> float:
        return float(self.data["maintenance_interval"])

    @property
    def strict_redirect_uris(self) -> bool:
        return _as_bool(self.data["strict_redirect_uris"])

    @property
    def demo_user_id(self) -> str:
        return self.data["demo_user_id"]

    @property
    def demo_user_email(self) -> str:
        return self.data["demo_user_email"]

    @property
    def json_response(self) -> bool:
        return _as_bool(self.data["json_response"])

    @property
    def log_level(self) -> str:
        return str(self.data["log_level"]).upper()

    @property
    def log_format(self) -> str:
        return str(self.data["log_format"]).lower()

    @property
    def protected_resource_metadata_url(self) -> str:
        return f"{self.server_url}/.well-known/oauth-protected-resource"

    def as_dict(self) -> dict:
        """Effective settings, with derived values filled in."""
        return {
            **{key: self.data.get(key) for key in ENV_VARS},
            "server_url": self.server_url,
            "mcp_path": self.mcp_path,
        }


def config_file_path() -> Path:
    override = os.getenv("MCP_GATEWAY_CONFIG")
    return Path(override).expanduser() if override else CONFIG_FILE


def load_config(path: Optional[Path] = None, environ: Optional[dict] = None) -> Config:
    """Load config from file, then apply environment overrides."""
    path = path or config_file_path()
    environ = os.environ if environ is None else environ

    data = {}
    if path.exists():
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"[STARTUP] Ignoring unreadable config file {path}: {e}")
            data = {}
        if not isinstance(data, dict):
            logger.warning(f"[STARTUP] Ignoring config file {path}: not a JSON object")
            data = {}

    for key, env_var in ENV_VARS.items():
        value = environ.get(env_var)
        if value not in (None, ""):
            data[key] = value

    return Config(data)


def load_env_files(package_dir: Optional[Path] = None) -> None:
    """Load environment: .env (local override) or .env.public (bundled defaults)."""
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)
        return
    public_env = (package_dir or Path(__file__).parent) / ".env.public"
    if public_env.exists():
        load_dotenv(public_env)
