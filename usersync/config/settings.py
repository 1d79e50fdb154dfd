"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

from usersync.core.exceptions import ConfigurationError


DEFAULT_DATABASE_URL = "sqlite:///.runtime/usersync.db"
DEFAULT_IDENTITY_API_URL = "https://api.clerk.com/v1"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var, "").strip()
        if secret_value:
            return secret_value

    return None


def _int_from_env(var_name: str, default: int) -> int:
    """Read a non-negative integer setting from the environment."""
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{var_name} must be an integer, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{var_name} must not be negative")
    return value


@dataclass
class AppConfig:
    """Application configuration container."""
    # Webhook verification
    webhook_secret: str
    webhook_tolerance: int = 300
    max_payload_bytes: int = 65536

    # User store
    database_url: str = DEFAULT_DATABASE_URL

    # Identity provider metadata write-back
    identity_api_url: str = DEFAULT_IDENTITY_API_URL
    identity_secret_key: str = ""
    metadata_key: str = "userId"

    # Audit
    audit_log_signing_key: str = ""

    @property
    def publish_enabled(self) -> bool:
        """Metadata write-back requires a provider secret key."""
        return bool(self.identity_secret_key)


def load_settings() -> AppConfig:
    """Load application settings from /run/secrets and the environment.

    Raises:
        ConfigurationError: If the webhook secret is missing or a numeric
            setting is invalid
    """
    webhook_secret = _load_secret_from_file("webhook_secret", "WEBHOOK_SECRET")
    if not webhook_secret:
        raise ConfigurationError(
            "WEBHOOK_SECRET not found in /run/secrets or environment. "
            "Copy the signing secret of the webhook endpoint from the identity provider dashboard."
        )

    database_url = _load_secret_from_file("database_url", "DATABASE_URL") or DEFAULT_DATABASE_URL

    identity_secret_key = _load_secret_from_file("clerk_secret_key", "CLERK_SECRET_KEY") or ""
    if not identity_secret_key:
        print("[settings] WARNING: CLERK_SECRET_KEY not set; metadata write-back disabled")

    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if audit_log_signing_key:
        # The audit module resolves its key lazily from the environment
        os.environ["AUDIT_LOG_SIGNING_KEY"] = audit_log_signing_key

    cfg = AppConfig(
        webhook_secret=webhook_secret,
        webhook_tolerance=_int_from_env("WEBHOOK_TIMESTAMP_TOLERANCE", 300),
        max_payload_bytes=_int_from_env("WEBHOOK_MAX_PAYLOAD_BYTES", 65536),
        database_url=database_url,
        identity_api_url=os.environ.get("CLERK_API_URL", DEFAULT_IDENTITY_API_URL).rstrip("/"),
        identity_secret_key=identity_secret_key,
        metadata_key=os.environ.get("CLERK_METADATA_KEY", "userId").strip() or "userId",
        audit_log_signing_key=audit_log_signing_key,
    )

    tolerance_label = f"{cfg.webhook_tolerance}s" if cfg.webhook_tolerance else "disabled"
    print(f"[settings] replay_window={tolerance_label}; publish={'on' if cfg.publish_enabled else 'off'}")

    return cfg
