"""Summary: Tests for the command-line interface.

Importance: The CLI is the persistent, offline way to use the vault.
Alternatives: Test only the HTTP surface.
"""

from __future__ import annotations

import base64
import io
import json
import urllib.parse
from pathlib import Path

import pytest

from totpvault.cli import build_parser, run_cli
from totpvault.migration import MIGRATION_PREFIX
from totpvault.wire import encode_bytes_field


@pytest.fixture(autouse=True)
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Summary: Run each CLI test in a fresh directory with its own database.

    Importance: The CLI reads config/defaults.json from the working directory.
    Alternatives: Point the CLI at the repository defaults.
    """

    defaults_path = Path(__file__).resolve().parents[1] / "config" / "defaults.json"
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "defaults.json").write_text(
        defaults_path.read_text(encoding="utf-8"), encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    for name in ("TOTPVAULT_STORE_BACKEND", "TOTPVAULT_DB_PATH", "TOTPVAULT_TOKEN_SECRET"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_add_and_list_persist(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Summary: Entries added in one invocation are listed by the next.

    Importance: The CLI must persist even though the server default is memory.
    Alternatives: Require an explicit --db flag.
    """

    assert run_cli(["add", "alice", "JBSWY3DPEHPK3PXP"]) == 0
    assert (workspace / "totpvault.db").exists()
    capsys.readouterr()
    assert run_cli(["list"]) == 0
    assert "alice" in capsys.readouterr().out


def test_code_and_verify(capsys: pytest.CaptureFixture[str]) -> None:
    run_cli(["add", "alice", "JBSWY3DPEHPK3PXP"])
    entry_id = capsys.readouterr().out.split()[1]
    assert run_cli(["code", entry_id]) == 0
    code = capsys.readouterr().out.strip()
    assert len(code) == 6
    assert run_cli(["verify", entry_id, code]) == 0
    assert capsys.readouterr().out.strip() == "valid"


def test_import_from_stdin(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    account = encode_bytes_field(1, b"secret") + encode_bytes_field(2, b"alice") + encode_bytes_field(3, b"Example")
    data = base64.b64encode(encode_bytes_field(1, account)).decode("ascii")
    monkeypatch.setattr("sys.stdin", io.StringIO(MIGRATION_PREFIX + urllib.parse.quote(data, safe="") + "\n"))
    assert run_cli(["import", "-"]) == 0
    assert "Imported 1 entries." in capsys.readouterr().out
    run_cli(["list"])
    assert "alice (Example)" in capsys.readouterr().out


def test_import_failure_returns_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli(["import", MIGRATION_PREFIX + "%zz"]) == 1
    assert "envelope" in capsys.readouterr().err


def test_import_without_usable_records(capsys: pytest.CaptureFixture[str]) -> None:
    data = base64.b64encode(bytes([0x0A, 0x02, 0x12, 0x00])).decode("ascii")
    assert run_cli(["import", MIGRATION_PREFIX + urllib.parse.quote(data, safe="")]) == 1
    assert "missing secret" in capsys.readouterr().err


def test_export_migration_and_clear(capsys: pytest.CaptureFixture[str]) -> None:
    run_cli(["add", "alice", "JBSWY3DPEHPK3PXP"])
    capsys.readouterr()
    assert run_cli(["export-migration"]) == 0
    assert capsys.readouterr().out.startswith(MIGRATION_PREFIX)
    assert run_cli(["clear"]) == 0
    capsys.readouterr()
    run_cli(["list"])
    assert capsys.readouterr().out == ""


def test_github_auth_url(capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli(["github-auth-url"]) == 0
    assert "scope=gist" in capsys.readouterr().out


def test_backup_list_uses_gist_client(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    class _Client:
        def __init__(self, access_token: str, base_url: str) -> None:
            pass

        def list_gists(self) -> list[dict[str, object]]:
            return [
                {
                    "id": "g1",
                    "description": "TOTP Backup",
                    "updated_at": "2024-05-02T00:00:00Z",
                    "files": {"totp_secret_backup.json": {"content": json.dumps([])}},
                }
            ]

    monkeypatch.setattr("totpvault.services.GistClient", _Client)
    monkeypatch.setattr(
        "totpvault.services.TokenService.load_github_token", lambda _self: "gho_token"
    )
    assert run_cli(["backup-list"]) == 0
    assert "g1: TOTP Backup" in capsys.readouterr().out
