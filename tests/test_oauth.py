"""Summary: Tests for GitHub OAuth helpers.

Importance: Ensures OAuth URL generation and code exchange use config values correctly.
Alternatives: Validate OAuth flows manually.
"""

from __future__ import annotations

import urllib.error
import urllib.parse

import pytest

from totpvault.config import AppConfig
from totpvault.oauth import (
    OAuthTokenResult,
    _token_payload,
    build_github_auth_url,
    create_state_token,
    exchange_github_code,
)


def _config(client_id: str = "gh-client", client_secret: str = "gh-secret") -> AppConfig:
    return AppConfig(
        store_backend="memory",
        db_path="test.db",
        api_key="",
        github_client_id=client_id,
        github_client_secret=client_secret,
        github_redirect_uri="http://localhost:8080/api/github/callback",
        github_authorize_url="https://github.com/login/oauth/authorize",
        github_token_url="https://github.com/login/oauth/access_token",
        github_api_base_url="https://api.github.com",
        token_secret="secret",
        export_issuer="TOTP Vault",
        static_dir="static",
    )


def test_github_auth_url_includes_client_and_scope() -> None:
    url = build_github_auth_url(_config(), "state123")
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)
    assert url.startswith("https://github.com/login/oauth/authorize?")
    assert query["client_id"] == ["gh-client"]
    assert query["scope"] == ["gist"]
    assert query["state"] == ["state123"]


def test_state_tokens_are_unique() -> None:
    assert create_state_token() != create_state_token()


def test_token_payload_includes_redirect_uri() -> None:
    payload = _token_payload(_config(), "code123")
    assert payload["redirect_uri"] == "http://localhost:8080/api/github/callback"
    assert payload["code"] == "code123"


def test_token_payload_requires_credentials() -> None:
    with pytest.raises(ValueError):
        _token_payload(_config(client_secret=""), "code123")


def test_token_payload_requires_code() -> None:
    with pytest.raises(ValueError):
        _token_payload(_config(), "")


def test_token_result_rejects_error_payload() -> None:
    """Summary: GitHub error payloads become exceptions.

    Importance: GitHub answers a bad code with HTTP 200 and an error field.
    Alternatives: Check only the HTTP status.
    """

    with pytest.raises(RuntimeError, match="bad_verification_code"):
        OAuthTokenResult.from_response({"error": "bad_verification_code"})


def test_exchange_github_code_posts_form(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def _fake_post(url: str, payload: dict[str, str]) -> dict[str, str]:
        captured["url"] = url
        captured["payload"] = payload
        return {"access_token": "gho_token", "token_type": "bearer", "scope": "gist"}

    monkeypatch.setattr("totpvault.oauth._post_form", _fake_post)
    result = exchange_github_code(_config(), "code123")
    assert result.access_token == "gho_token"
    assert result.scope == "gist"
    assert captured["url"] == "https://github.com/login/oauth/access_token"


def test_exchange_network_error_is_runtime_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _unreachable(*_args: object, **_kwargs: object) -> object:
        raise urllib.error.URLError("timed out")

    monkeypatch.setattr("urllib.request.urlopen", _unreachable)
    with pytest.raises(RuntimeError, match="Token exchange failed"):
        exchange_github_code(_config(), "code123")
