"""Summary: FastAPI application for TOTP Vault.

Importance: Exposes the vault, QR import, and gist backup over HTTP for the web UI.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from totpvault.app import AppServices, build_services
from totpvault.config import AppConfig
from totpvault.errors import QrDecodeError
from totpvault.gist import GistApiError
from totpvault.oauth import build_github_auth_url, create_state_token, exchange_github_code
from totpvault.services import BackupPermissionError, EntryNotFoundError, NotAuthenticatedError


logger = logging.getLogger(__name__)

T = TypeVar("T")

OAUTH_STATE_TTL = timedelta(minutes=10)
MAX_OAUTH_STATES = 100


class TotpCreateRequest(BaseModel):
    """Summary: Request payload for adding a credential by hand.

    Importance: Mirrors the JSON shape the web client already sends.
    Alternatives: Accept a full otpauth URI only.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_info: str = Field(alias="userInfo")
    secret: str


class ImportRequest(BaseModel):
    """Summary: Request payload for QR or clipboard imports.

    Importance: Carries either otpauth URI form unchanged.
    Alternatives: Upload the QR image and decode it server-side.
    """

    model_config = ConfigDict(populate_by_name=True)

    qr_data: str = Field(alias="qrData")


class VerifyRequest(BaseModel):
    token: str = Field(min_length=1, max_length=10)


class UploadRequest(BaseModel):
    """Summary: Request payload for gist uploads.

    Importance: ``mode="create"`` asks for a new backup version.
    Alternatives: Separate endpoints for create and update.
    """

    mode: str = ""


class ExportMigrationRequest(BaseModel):
    ids: list[str] | None = None


def create_app(config: AppConfig, services: AppServices | None = None) -> FastAPI:
    """Summary: Create a FastAPI app wired to TOTP Vault services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="TOTP Vault API", version="0.1.0")
    services = services or build_services(config)
    app.state.services = services
    app.state.oauth_states = {}
    static_dir = Path(config.static_dir)
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    def _register_state(state: str) -> None:
        """Summary: Record a new OAuth state, dropping expired ones first.

        Importance: Keeps the pending-state map bounded however often the
        auth route is hit.
        Alternatives: Store states in an expiring cache library.
        """

        now = datetime.now(timezone.utc)
        states = app.state.oauth_states
        for pending, created_at in list(states.items()):
            if now - created_at > OAUTH_STATE_TTL:
                del states[pending]
        while len(states) >= MAX_OAUTH_STATES:
            # Dicts keep insertion order, so the first key is the oldest.
            del states[next(iter(states))]
        states[state] = now

    def _consume_state(state: str) -> None:
        """Summary: Validate and discard an OAuth state token.

        Importance: Each state can complete at most one callback.
        Alternatives: Use signed cookies for state.
        """

        created_at = app.state.oauth_states.pop(state, None)
        if created_at is None:
            raise HTTPException(status_code=400, detail="Invalid OAuth state")
        if datetime.now(timezone.utc) - created_at > OAUTH_STATE_TTL:
            raise HTTPException(status_code=400, detail="OAuth state expired")

    def _backup_call(operation: Callable[[], T]) -> T:
        """Summary: Run a backup operation and map its errors to HTTP codes.

        Importance: Keeps status mapping identical across backup routes.
        Alternatives: Register global exception handlers.
        """

        try:
            return operation()
        except NotAuthenticatedError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except BackupPermissionError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except GistApiError as exc:
            status = 404 if exc.status == 404 else 502
            raise HTTPException(status_code=status, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for local and private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    @app.get("/", response_class=HTMLResponse)
    def landing() -> str:
        html_path = static_dir / "index.html"
        if not html_path.exists():
            raise HTTPException(status_code=404, detail="Dashboard not found")
        return html_path.read_text(encoding="utf-8")

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon() -> FileResponse:
        icon_path = static_dir / "favicon.ico"
        if not icon_path.exists():
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(icon_path)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/totp", dependencies=[Depends(require_api_key)])
    def add_totp(payload: TotpCreateRequest) -> dict[str, Any]:
        try:
            entry = services.vault.add_entry(payload.user_info, payload.secret)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return entry.to_dict()

    @app.get("/api/totp", dependencies=[Depends(require_api_key)])
    def list_totps() -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in services.vault.list_entries()]

    @app.post("/api/totp/clear-all", dependencies=[Depends(require_api_key)])
    def clear_all() -> dict[str, str]:
        services.vault.clear_all()
        return {"message": "All TOTPs cleared successfully"}

    @app.post("/api/totp/import", dependencies=[Depends(require_api_key)])
    def import_totp(payload: ImportRequest) -> dict[str, Any]:
        """Summary: Import accounts from otpauth or otpauth-migration text.

        Importance: Decode failures are reported in the body with the failing
        stage so the UI can show them without treating them as server errors.
        Alternatives: Return 400 for every decode failure.
        """

        try:
            result = services.vault.import_qr_data(payload.qr_data)
        except QrDecodeError as exc:
            logger.warning("Error parsing QR data at %s stage: %s", exc.stage, exc)
            return {"success": False, "error": str(exc), "stage": exc.stage}
        return {
            "success": True,
            "count": len(result.entries),
            "failed": len(result.failures),
            "errors": [str(failure) for failure in result.failures],
        }

    @app.get("/api/totp/export-migration", dependencies=[Depends(require_api_key)])
    def export_migration() -> dict[str, str]:
        try:
            uri = services.vault.export_migration_uri()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"uri": uri}

    @app.post("/api/totp/export-migration", dependencies=[Depends(require_api_key)])
    def export_migration_selected(payload: ExportMigrationRequest) -> dict[str, str]:
        try:
            uri = services.vault.export_migration_uri(payload.ids)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail="TOTP not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"uri": uri}

    @app.delete("/api/totp/{entry_id}", dependencies=[Depends(require_api_key)])
    def delete_totp(entry_id: str) -> dict[str, str]:
        try:
            services.vault.delete_entry(entry_id)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail="TOTP not found") from exc
        return {"message": "TOTP deleted successfully"}

    @app.get("/api/totp/{entry_id}/generate", dependencies=[Depends(require_api_key)])
    def generate_token(entry_id: str) -> dict[str, str]:
        try:
            token = services.vault.generate_token(entry_id)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail="TOTP not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"token": token}

    @app.post("/api/totp/{entry_id}/verify", dependencies=[Depends(require_api_key)])
    def verify_token(entry_id: str, payload: VerifyRequest) -> dict[str, bool]:
        try:
            valid = services.vault.verify_token(entry_id, payload.token)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail="TOTP not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"valid": valid}

    @app.get("/api/totp/{entry_id}/export", dependencies=[Depends(require_api_key)])
    def export_totp(entry_id: str) -> dict[str, str]:
        try:
            uri = services.vault.export_uri(entry_id)
        except EntryNotFoundError as exc:
            raise HTTPException(status_code=404, detail="TOTP not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"uri": uri}

    @app.get("/api/github/auth", dependencies=[Depends(require_api_key)])
    def github_auth() -> RedirectResponse:
        """Summary: Redirect the browser to GitHub's consent page.

        Importance: Starts the OAuth flow for gist backups.
        Alternatives: Return the URL as JSON for the client to open.
        """

        state = create_state_token()
        _register_state(state)
        return RedirectResponse(build_github_auth_url(config, state), status_code=307)

    @app.get("/api/github/auth-status", dependencies=[Depends(require_api_key)])
    def github_auth_status() -> dict[str, bool]:
        return {"authenticated": services.backups.is_authenticated()}

    @app.get("/api/github/callback")
    def github_callback(code: str, state: str) -> RedirectResponse:
        """Summary: Complete the OAuth flow and store the access token.

        Importance: The token is kept in the store, not in a module global.
        Alternatives: Hand the token to the browser and require it per request.
        """

        _consume_state(state)
        try:
            token = exchange_github_code(config, code)
        except (RuntimeError, ValueError) as exc:
            logger.warning("GitHub token exchange failed: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to exchange token") from exc
        services.tokens.store_github_token(token.access_token)
        return RedirectResponse("/", status_code=307)

    @app.post("/api/github/upload", dependencies=[Depends(require_api_key)])
    def github_upload(payload: UploadRequest) -> dict[str, str]:
        gist_id = _backup_call(lambda: services.backups.upload(payload.mode))
        return {"message": "Successfully uploaded to gist", "id": gist_id}

    @app.get("/api/github/restore", dependencies=[Depends(require_api_key)])
    def github_restore(gist_id: str = Query(default="", alias="id")) -> dict[str, Any]:
        merged = _backup_call(lambda: services.backups.restore(gist_id))
        return {"message": "Successfully restored from gist", "merged": merged}

    @app.get("/api/github/versions", dependencies=[Depends(require_api_key)])
    def github_versions() -> list[dict[str, str]]:
        return _backup_call(services.backups.list_versions)

    @app.delete("/api/github/delete-backup", dependencies=[Depends(require_api_key)])
    def github_delete_backup(gist_id: str = Query(default="", alias="id")) -> dict[str, str]:
        _backup_call(lambda: services.backups.delete_backup(gist_id))
        return {"message": "Successfully deleted gist"}

    return app


def get_app() -> FastAPI:
    """Summary: Build the app from the environment for ASGI servers.

    Importance: Used as ``uvicorn totpvault.api:get_app --factory``.
    Alternatives: Build a module-level app at import time.
    """

    return create_app(AppConfig.from_env())
