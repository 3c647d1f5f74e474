"""Summary: Minimal GitHub Gist REST client for backups.

Importance: Treats gists as a remote blob store for the vault's JSON backup.
Alternatives: Use PyGithub or another GitHub SDK.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any


class GistApiError(RuntimeError):
    """Summary: A GitHub API request returned an error status.

    Importance: Keeps the status code so callers can map 404 and 403 distinctly.
    Alternatives: Raise bare RuntimeError with the body text.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"GitHub API request failed ({status}): {message}")
        self.status = status


class GistClient:
    """Summary: Reads and writes gists with an OAuth access token.

    Importance: Provides the remote read/write used by upload and restore.
    Alternatives: Store backups in a git repository instead of gists.
    """

    def __init__(self, access_token: str, base_url: str) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")

    def list_gists(self) -> list[dict[str, Any]]:
        return _github_request("GET", f"{self._base_url}/gists", self._access_token)

    def get_gist(self, gist_id: str) -> dict[str, Any]:
        return _github_request("GET", f"{self._base_url}/gists/{gist_id}", self._access_token)

    def create_gist(self, description: str, files: dict[str, str], public: bool = False) -> dict[str, Any]:
        """Summary: Create a gist holding the given files.

        Importance: Starts a new backup version.
        Alternatives: Require users to create the gist by hand.
        """

        payload = {
            "description": description,
            "public": public,
            "files": {name: {"content": content} for name, content in files.items()},
        }
        return _github_request("POST", f"{self._base_url}/gists", self._access_token, payload)

    def update_gist(self, gist_id: str, files: dict[str, str]) -> dict[str, Any]:
        payload = {"files": {name: {"content": content} for name, content in files.items()}}
        return _github_request(
            "PATCH", f"{self._base_url}/gists/{gist_id}", self._access_token, payload
        )

    def delete_gist(self, gist_id: str) -> None:
        _github_request("DELETE", f"{self._base_url}/gists/{gist_id}", self._access_token)

    def get_user(self) -> dict[str, Any]:
        return _github_request("GET", f"{self._base_url}/user", self._access_token)


def _github_request(
    method: str, url: str, access_token: str, payload: dict[str, Any] | None = None
) -> Any:
    """Summary: Send a JSON request to the GitHub REST API.

    Importance: Encapsulates GitHub API calls without new dependencies.
    Alternatives: Use a third-party HTTP client or SDK.
    """

    data = json.dumps(payload).encode("utf-8") if payload is not None else None
    headers = {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/vnd.github+json",
    }
    if data is not None:
        headers["Content-Type"] = "application/json"
    request = urllib.request.Request(url, data=data, headers=headers, method=method)
    try:
        with urllib.request.urlopen(request, timeout=10) as response:
            raw = response.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        error_body = exc.read().decode("utf-8")
        raise GistApiError(exc.code, error_body or str(exc.reason)) from exc
    except OSError as exc:
        # URLError and socket timeouts: GitHub was never reached.
        raise GistApiError(502, f"GitHub API unreachable: {exc}") from exc
    if not raw:
        return None
    return json.loads(raw)
