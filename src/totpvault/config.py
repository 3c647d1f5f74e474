"""Summary: Application configuration for TOTP Vault.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for storage, GitHub, and the API.

    Importance: Ensures all services derive settings from a single source of truth.
    Alternatives: Store settings in a shared config file and parse at startup.
    """

    store_backend: str
    db_path: str
    api_key: str
    github_client_id: str
    github_client_secret: str
    github_redirect_uri: str
    github_authorize_url: str
    github_token_url: str
    github_api_base_url: str
    token_secret: str
    export_issuer: str
    static_dir: str

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            store_backend=os.getenv("TOTPVAULT_STORE_BACKEND", defaults["store_backend"]),
            db_path=os.getenv("TOTPVAULT_DB_PATH", defaults["db_path"]),
            api_key=os.getenv("TOTPVAULT_API_KEY", defaults["api_key"]),
            github_client_id=os.getenv("GITHUB_CLIENT_ID", defaults["github_client_id"]),
            github_client_secret=os.getenv(
                "GITHUB_CLIENT_SECRET", defaults["github_client_secret"]
            ),
            github_redirect_uri=os.getenv(
                "TOTPVAULT_GITHUB_REDIRECT_URI", defaults["github_redirect_uri"]
            ),
            github_authorize_url=os.getenv(
                "TOTPVAULT_GITHUB_AUTHORIZE_URL", defaults["github_authorize_url"]
            ),
            github_token_url=os.getenv("TOTPVAULT_GITHUB_TOKEN_URL", defaults["github_token_url"]),
            github_api_base_url=os.getenv(
                "TOTPVAULT_GITHUB_API_BASE_URL", defaults["github_api_base_url"]
            ),
            token_secret=os.getenv("TOTPVAULT_TOKEN_SECRET", defaults["token_secret"]),
            export_issuer=os.getenv("TOTPVAULT_EXPORT_ISSUER", defaults["export_issuer"]),
            static_dir=os.getenv("TOTPVAULT_STATIC_DIR", defaults["static_dir"]),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps the GitHub client secret out of the defaults file.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip("\"'"))
