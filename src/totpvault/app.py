"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for the CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from totpvault.config import AppConfig
from totpvault.services import BackupService, TokenService, VaultService
from totpvault.storage.base import CredentialStore
from totpvault.storage.memory_store import MemoryCredentialStore
from totpvault.storage.sqlite_store import SqliteCredentialStore
from totpvault.token_codec import TokenCodec
from totpvault.totp import TotpGenerator


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of core services for TOTP Vault.

    Importance: Simplifies passing dependencies to UI or API layers.
    Alternatives: Use a dependency injection container.
    """

    vault: VaultService
    tokens: TokenService
    backups: BackupService
    store: CredentialStore
    config: AppConfig


def build_store(config: AppConfig) -> CredentialStore:
    """Summary: Build the credential store selected by configuration.

    Importance: Lets the server stay in memory while the CLI persists to disk.
    Alternatives: Support a single backend only.
    """

    if config.store_backend == "memory":
        store: CredentialStore = MemoryCredentialStore()
    elif config.store_backend == "sqlite":
        store = SqliteCredentialStore(config.db_path)
    else:
        raise ValueError(f"Unknown store backend: {config.store_backend}")
    store.initialize()
    return store


def build_services(config: AppConfig, store: CredentialStore | None = None) -> AppServices:
    """Summary: Build core services from configuration.

    Importance: Provides a single construction path for the application.
    Alternatives: Instantiate services directly within each entrypoint.
    """

    store = store or build_store(config)
    tokens = TokenService(store=store, codec=TokenCodec(config.token_secret))
    vault = VaultService(store=store, generator=TotpGenerator(issuer=config.export_issuer))
    backups = BackupService(store=store, tokens=tokens, api_base_url=config.github_api_base_url)
    return AppServices(vault=vault, tokens=tokens, backups=backups, store=store, config=config)
