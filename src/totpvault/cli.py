"""Summary: Command-line interface for TOTP Vault.

Importance: Provides a local entry point for imports, codes, and backups.
Alternatives: Use only the web dashboard.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from totpvault.app import build_services
from totpvault.config import AppConfig
from totpvault.errors import NoRecordsFound, QrDecodeError
from totpvault.oauth import build_github_auth_url, create_state_token


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="TOTP Vault CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Add a TOTP secret")
    add.add_argument("user_info", type=str)
    add.add_argument("secret", type=str)

    subparsers.add_parser("list", help="List stored entries")

    delete = subparsers.add_parser("delete", help="Delete an entry")
    delete.add_argument("entry_id", type=str)

    code = subparsers.add_parser("code", help="Print the current code for an entry")
    code.add_argument("entry_id", type=str)

    verify = subparsers.add_parser("verify", help="Check a code against an entry")
    verify.add_argument("entry_id", type=str)
    verify.add_argument("token", type=str)

    export = subparsers.add_parser("export", help="Print an otpauth URI for an entry")
    export.add_argument("entry_id", type=str)

    export_migration = subparsers.add_parser(
        "export-migration", help="Print an otpauth-migration URI for entries"
    )
    export_migration.add_argument("entry_ids", nargs="*", type=str)

    import_qr = subparsers.add_parser("import", help="Import otpauth or otpauth-migration text")
    import_qr.add_argument("qr_data", type=str, help="QR text, or - to read from stdin")

    subparsers.add_parser("clear", help="Delete every stored entry")

    subparsers.add_parser("github-auth-url", help="Print the GitHub OAuth URL")

    upload = subparsers.add_parser("backup-upload", help="Upload entries to a gist")
    upload.add_argument("--create", action="store_true", help="Always create a new gist")

    subparsers.add_parser("backup-list", help="List backup gists")

    restore = subparsers.add_parser("backup-restore", help="Merge entries from a gist")
    restore.add_argument("gist_id", type=str)

    delete_backup = subparsers.add_parser("backup-delete", help="Delete a backup gist")
    delete_backup.add_argument("gist_id", type=str)

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives the vault without running the web server.
    Alternatives: Invoke services via the HTTP API.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()
    if config.store_backend == "memory":
        # A memory store would forget everything when the process exits.
        config = replace(config, store_backend="sqlite")
    services = build_services(config)

    if args.command == "add":
        entry = services.vault.add_entry(args.user_info, args.secret)
        print(f"Added {entry.id} ({entry.user_info}).")
        return 0

    if args.command == "list":
        for entry in services.vault.list_entries():
            print(f"{entry.id}: {entry.user_info} ({entry.created.isoformat()})")
        return 0

    if args.command == "delete":
        services.vault.delete_entry(args.entry_id)
        print("Deleted.")
        return 0

    if args.command == "code":
        print(services.vault.generate_token(args.entry_id))
        return 0

    if args.command == "verify":
        valid = services.vault.verify_token(args.entry_id, args.token)
        print("valid" if valid else "invalid")
        return 0 if valid else 1

    if args.command == "export":
        print(services.vault.export_uri(args.entry_id))
        return 0

    if args.command == "export-migration":
        print(services.vault.export_migration_uri(args.entry_ids or None))
        return 0

    if args.command == "import":
        qr_data = sys.stdin.read() if args.qr_data == "-" else args.qr_data
        try:
            result = services.vault.import_qr_data(qr_data)
        except NoRecordsFound as exc:
            print(f"Import failed: {exc}", file=sys.stderr)
            for failure in exc.failures:
                print(f"  {failure}", file=sys.stderr)
            return 1
        except QrDecodeError as exc:
            print(f"Import failed at {exc.stage} stage: {exc}", file=sys.stderr)
            return 1
        print(f"Imported {len(result.entries)} entries.")
        for failure in result.failures:
            print(f"Skipped {failure}", file=sys.stderr)
        return 0

    if args.command == "clear":
        services.vault.clear_all()
        print("Cleared all entries.")
        return 0

    if args.command == "github-auth-url":
        print(build_github_auth_url(config, create_state_token()))
        return 0

    if args.command == "backup-upload":
        gist_id = services.backups.upload("create" if args.create else "")
        print(f"Uploaded to gist {gist_id}.")
        return 0

    if args.command == "backup-list":
        for version in services.backups.list_versions():
            print(f"{version['id']}: {version['description']} (updated {version['updated_at']})")
        return 0

    if args.command == "backup-restore":
        merged = services.backups.restore(args.gist_id)
        print(f"Restored {merged} entries.")
        return 0

    if args.command == "backup-delete":
        services.backups.delete_backup(args.gist_id)
        print("Deleted backup gist.")
        return 0

    return 2


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
