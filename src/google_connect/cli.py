"""CLI for google-connect - credential management and spreadsheet export.

Usage:
    google-connect init                          # Create directories, show setup instructions
    google-connect status                        # Show all credential status
    google-connect google import <path>          # Import OAuth client credentials
    google-connect google import-key <path>      # Import service account key
    google-connect google auth-url               # Print the consent URL
    google-connect sheets export <rows.json>     # Export rows with the service account
    google-connect serve                         # Run the OAuth redirect endpoints
"""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from pathlib import Path


def cmd_init() -> int:
    """Initialize google-connect credential directory structure."""
    from google_connect.config import (
        ENV_FILE,
        GOOGLE_CREDENTIALS,
        GOOGLE_DIR,
        GOOGLE_SERVICE_ACCOUNT,
        REPO_ROOT,
        ensure_google_dir,
        get_credential_status,
    )

    print("=" * 60)
    print("GOOGLE-CONNECT SETUP")
    print("=" * 60)
    print()
    print(f"Repository: {REPO_ROOT}")
    print()

    ensure_google_dir()
    print(f"Created: {GOOGLE_DIR}/")
    print()

    print("Credential locations:")
    print()
    print(f"  {ENV_FILE}")
    print("    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI")
    print("    GOOGLE_SCOPES, GOOGLE_CONNECT_SECRET_KEY")
    print()
    print(f"  {GOOGLE_CREDENTIALS}")
    print("    OAuth client credentials from Google Cloud Console")
    print()
    print(f"  {GOOGLE_SERVICE_ACCOUNT}")
    print("    Service account key from Google Cloud Console")
    print()
    print("-" * 60)
    print()

    status = get_credential_status()

    if status["env_file"]:
        print(".env exists")
    else:
        print("Create .env with your client settings:")
        print()
        print(f"  cat > {ENV_FILE} << 'EOF'")
        print("  GOOGLE_CLIENT_ID=xxx.apps.googleusercontent.com")
        print("  GOOGLE_CLIENT_SECRET=...")
        print("  GOOGLE_SCOPES=sheets,drive_file")
        print("  GOOGLE_CONNECT_SECRET_KEY=change-me")
        print("  EOF")
        print()

    if status["google"]["credentials"]:
        print("Google credentials.json exists")
    else:
        print("For Google OAuth, download credentials from:")
        print("  https://console.cloud.google.com/apis/credentials")
        print(f"  Save as: {GOOGLE_CREDENTIALS}")
        print()

    return 0


def cmd_status() -> int:
    """Show status of all configured credentials."""
    from google_connect.config import REPO_ROOT, get_credential_status

    status = get_credential_status()

    print("=" * 60)
    print("GOOGLE-CONNECT CREDENTIAL STATUS")
    print("=" * 60)
    print()
    print(f"Repository: {REPO_ROOT}")
    print()

    print("Google:")
    for name, configured in status["google"].items():
        mark = "[x]" if configured else "[ ]"
        print(f"  {mark} {name}")
    print()

    print("Web:")
    print(f"  {'[x]' if status['web']['secret_key'] else '[ ]'} secret_key")
    print()

    return 0


def _build_api():
    """Create the client factory from the stored credentials."""
    from google_connect.config import GOOGLE_CREDENTIALS, GOOGLE_SERVICE_ACCOUNT
    from google_connect.google import GoogleApi

    if GOOGLE_SERVICE_ACCOUNT.exists():
        return GoogleApi(auth_config=GOOGLE_SERVICE_ACCOUNT)
    if GOOGLE_CREDENTIALS.exists():
        return GoogleApi(auth_config=GOOGLE_CREDENTIALS)
    return GoogleApi()


def google_auth_url(scopes: list[str], redirect_uri: str | None) -> int:
    """Print the Google consent URL for the configured OAuth client."""
    from google_connect.config import GOOGLE_CREDENTIALS
    from google_connect.google import GoogleApi, GoogleAuthError

    try:
        auth_config = GOOGLE_CREDENTIALS if GOOGLE_CREDENTIALS.exists() else None
        api = GoogleApi(auth_config=auth_config, scopes=scopes or None)
        overrides = {"redirect_uri": redirect_uri} if redirect_uri else {}
        client = api.get_client(**overrides)
    except GoogleAuthError as e:
        print(f"Error: {e}")
        print("Run 'google-connect init' for setup instructions")
        return 1

    print(client.get_authorization_url())
    return 0


def _import_json(source_path: str) -> tuple[Path, dict] | None:
    source = Path(source_path).expanduser()

    if not source.exists():
        print(f"Error: File not found: {source}")
        return None

    try:
        with open(source) as f:
            return source, json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}")
        return None


def google_import(source_path: str) -> int:
    """Import OAuth credentials from a file."""
    from google_connect.config import GOOGLE_CREDENTIALS, ensure_google_dir

    loaded = _import_json(source_path)
    if loaded is None:
        return 1
    source, data = loaded

    if "installed" not in data and "web" not in data:
        print("Error: Invalid OAuth credentials format")
        print("Expected 'installed' or 'web' key in JSON")
        return 1

    key = "web" if "web" in data else "installed"
    client_id = data[key].get("client_id", "unknown")

    ensure_google_dir()
    shutil.copy2(source, GOOGLE_CREDENTIALS)

    print("Imported OAuth credentials")
    print(f"  From: {source}")
    print(f"  To:   {GOOGLE_CREDENTIALS}")
    print(f"  Client ID: {client_id[:40]}...")
    return 0


def google_import_key(source_path: str) -> int:
    """Import service account key from a file."""
    from google_connect.config import GOOGLE_SERVICE_ACCOUNT, ensure_google_dir

    loaded = _import_json(source_path)
    if loaded is None:
        return 1
    source, data = loaded

    if data.get("type") != "service_account":
        print("Error: Invalid service account key format")
        print(f"Expected type 'service_account', got '{data.get('type')}'")
        return 1

    ensure_google_dir()
    shutil.copy2(source, GOOGLE_SERVICE_ACCOUNT)

    print("Imported service account key")
    print(f"  From: {source}")
    print(f"  To:   {GOOGLE_SERVICE_ACCOUNT}")
    print(f"  Email: {data.get('client_email', 'unknown')}")
    print()
    print("Remember to share your Google resources with the service account email!")
    return 0


def parse_fields(fields_str: str | None) -> dict[str, str] | None:
    """Parse "field:Title,field2:Title 2" into an ordered mapping."""
    if not fields_str:
        return None

    fields = {}
    for item in fields_str.split(","):
        name, _, title = item.partition(":")
        name = name.strip()
        if name:
            fields[name] = title.strip() or name
    return fields


def sheets_export(
    source_path: str, name: str, fields: dict[str, str] | None, rows_per_request: int
) -> int:
    """Export a JSON array of rows into a new spreadsheet."""
    from google_connect.google import GoogleAuthError
    from google_connect.sheets import SpreadsheetExporter, UnknownDataShapeError

    source = Path(source_path).expanduser()
    if not source.exists():
        print(f"Error: File not found: {source}")
        return 1

    with open(source) as f:
        data = json.load(f)

    try:
        exporter = SpreadsheetExporter(
            name=name,
            fields=fields,
            rows_per_request=rows_per_request,
            client=_build_api().get_client(),
        )
        url = exporter.export(data)
    except (GoogleAuthError, UnknownDataShapeError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print(url)
    return 0


def serve(host: str, port: int) -> int:
    """Run the OAuth redirect endpoints with uvicorn."""
    import uvicorn

    from google_connect.google import GoogleAuthError
    from google_connect.web import create_app

    try:
        app = create_app(_build_api())
    except GoogleAuthError as e:
        print(f"Error: {e}")
        return 1

    uvicorn.run(app, host=host, port=port)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from google_connect.config import parse_scopes

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(
        prog="google-connect",
        description="Google OAuth, token storage and Sheets export",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize credential directories")
    subparsers.add_parser("status", help="Show all credential status")

    # Google subcommand
    google_parser = subparsers.add_parser("google", help="Google credential management")
    google_subparsers = google_parser.add_subparsers(dest="google_command", help="Command")

    import_parser = google_subparsers.add_parser("import", help="Import OAuth credentials")
    import_parser.add_argument("path", help="Path to credentials.json file")

    import_key_parser = google_subparsers.add_parser(
        "import-key", help="Import service account key"
    )
    import_key_parser.add_argument("path", help="Path to service account JSON key file")

    auth_url_parser = google_subparsers.add_parser("auth-url", help="Print consent URL")
    auth_url_parser.add_argument(
        "--scopes",
        type=str,
        default="sheets,drive_file",
        help="Comma-separated scopes (default: sheets,drive_file)",
    )
    auth_url_parser.add_argument("--redirect-uri", type=str, default=None, help="Callback URL")

    # Sheets subcommand
    sheets_parser = subparsers.add_parser("sheets", help="Google Sheets export")
    sheets_subparsers = sheets_parser.add_subparsers(dest="sheets_command", help="Command")

    export_parser = sheets_subparsers.add_parser("export", help="Export JSON rows")
    export_parser.add_argument("path", help="Path to a JSON array of rows")
    export_parser.add_argument("--name", required=True, help="Spreadsheet title")
    export_parser.add_argument(
        "--fields", type=str, default=None, help="Columns as field:Title,field2:Title 2"
    )
    export_parser.add_argument("--rows-per-request", type=int, default=1000)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the OAuth redirect endpoints")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        return cmd_init()

    if args.command == "status":
        return cmd_status()

    if args.command == "google":
        if args.google_command == "import":
            return google_import(args.path)
        elif args.google_command == "import-key":
            return google_import_key(args.path)
        elif args.google_command == "auth-url":
            return google_auth_url(parse_scopes(args.scopes), args.redirect_uri)
        else:
            google_parser.print_help()
            return 0

    if args.command == "sheets":
        if args.sheets_command == "export":
            return sheets_export(
                args.path, args.name, parse_fields(args.fields), args.rows_per_request
            )
        sheets_parser.print_help()
        return 0

    if args.command == "serve":
        return serve(args.host, args.port)

    return 0


if __name__ == "__main__":
    sys.exit(main())
