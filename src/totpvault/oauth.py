"""Summary: GitHub OAuth helpers for the gist backup integration.

Importance: Builds the authorization URL and exchanges codes without extra dependencies.
Alternatives: Use an OAuth client library such as authlib.
"""

from __future__ import annotations

import json
import secrets
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

from totpvault.config import AppConfig


GITHUB_SCOPES = "gist"


@dataclass(frozen=True)
class OAuthTokenResult:
    """Summary: Normalized OAuth token response data.

    Importance: Keeps the raw payload while exposing the fields we use.
    Alternatives: Store the raw provider response without normalization.
    """

    access_token: str
    token_type: str | None
    scope: str | None
    raw: dict[str, Any]

    @staticmethod
    def from_response(payload: dict[str, Any]) -> "OAuthTokenResult":
        """Summary: Build an OAuthTokenResult from GitHub's token payload.

        Importance: GitHub reports exchange errors with a 200 status and an
        ``error`` field, so the payload itself has to be checked.
        Alternatives: Trust the HTTP status code alone.
        """

        if "access_token" not in payload:
            detail = payload.get("error_description") or payload.get("error") or "no access token"
            raise RuntimeError(f"Token exchange failed: {detail}")
        return OAuthTokenResult(
            access_token=payload["access_token"],
            token_type=payload.get("token_type"),
            scope=payload.get("scope"),
            raw=payload,
        )


def create_state_token() -> str:
    """Summary: Generate a CSRF state token.

    Importance: Protects OAuth flows from CSRF attacks.
    Alternatives: Use server-side session storage with pre-generated tokens.
    """

    return secrets.token_urlsafe(24)


def build_github_auth_url(config: AppConfig, state: str) -> str:
    """Summary: Build a GitHub OAuth authorization URL.

    Importance: Requests only the gist scope needed for backups.
    Alternatives: Use a GitHub App with fine-grained permissions.
    """

    params = {
        "client_id": config.github_client_id,
        "redirect_uri": config.github_redirect_uri,
        "scope": GITHUB_SCOPES,
        "state": state,
    }
    return config.github_authorize_url + "?" + urllib.parse.urlencode(params)


def exchange_github_code(config: AppConfig, code: str) -> OAuthTokenResult:
    """Summary: Exchange an OAuth authorization code for an access token.

    Importance: Completes the OAuth flow started by the auth redirect.
    Alternatives: Ask users to paste a personal access token.
    """

    response = _post_form(config.github_token_url, _token_payload(config, code))
    return OAuthTokenResult.from_response(response)


def _token_payload(config: AppConfig, code: str) -> dict[str, str]:
    _ensure_oauth_config(config.github_client_id, config.github_client_secret)
    if not code:
        raise ValueError("Missing OAuth authorization code")
    return {
        "client_id": config.github_client_id,
        "client_secret": config.github_client_secret,
        "code": code,
        "redirect_uri": config.github_redirect_uri,
    }


def _ensure_oauth_config(client_id: str, client_secret: str) -> None:
    """Summary: Validate that OAuth credentials exist.

    Importance: Prevents confusing token exchange errors when credentials are missing.
    Alternatives: Allow requests to fail at the provider endpoint.
    """

    if not client_id or not client_secret:
        raise ValueError("Missing OAuth client credentials for github")


def _post_form(url: str, payload: dict[str, str]) -> dict[str, Any]:
    """Summary: Send a form-encoded POST request and parse JSON.

    Importance: Avoids new dependencies while supporting OAuth exchanges.
    Alternatives: Use requests or httpx.
    """

    data = urllib.parse.urlencode(payload).encode("utf-8")
    request = urllib.request.Request(
        url,
        data=data,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        },
        method="POST",
    )
    try:
        with urllib.request.urlopen(request, timeout=10) as response:
            raw = response.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        error_body = exc.read().decode("utf-8")
        raise RuntimeError(f"Token exchange failed: {error_body or exc.reason}") from exc
    except OSError as exc:
        raise RuntimeError(f"Token exchange failed: {exc}") from exc
    return json.loads(raw)
