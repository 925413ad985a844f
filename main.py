#!/usr/bin/env python3
"""
SSO service -- operator CLI.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8044
  python main.py add-app --name billing --secret "$(openssl rand -hex 32)"
  python main.py add-app --name billing --secret "..." --id 7
  python main.py set-admin --user-id 42
  python main.py set-admin --user-id 42 --revoke

Environment variables (see core/config.py for the full list):
  STORAGE_URL          SQLAlchemy URL of the user/app database.
  TOKEN_TTL_SECONDS    Lifetime of issued tokens.
  BCRYPT_ROUNDS        bcrypt cost factor for new password hashes.
  ENV                  local | dev | prod (controls log verbosity).

Tenant apps and admin flags are provisioned here, out-of-band. The HTTP API
never creates apps or changes a user's admin flag.
"""

import argparse
import sys
from typing import Optional

from auth.errors import StorageError, UserNotFoundError
from auth.store import Storage
from core.config import get_settings
from core.log import setup_logging


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,  # keep the handler installed by core.log.setup_logging
    )
    return 0


def _add_app(args: argparse.Namespace) -> int:
    if not args.name or not args.secret:
        print("  [!] --name and --secret must be non-empty.", file=sys.stderr)
        return 2
    storage = Storage(get_settings().storage_url)
    try:
        app_id = storage.save_app(args.name, args.secret, app_id=args.id)
    except StorageError as exc:
        print(f"  [!] Could not add app '{args.name}': {exc}", file=sys.stderr)
        return 1
    finally:
        storage.close()
    print(f"  App '{args.name}' provisioned with id {app_id}.")
    return 0


def _set_admin(args: argparse.Namespace) -> int:
    storage = Storage(get_settings().storage_url)
    try:
        storage.set_admin(args.user_id, not args.revoke)
    except UserNotFoundError:
        print(f"  [!] No user with id {args.user_id}.", file=sys.stderr)
        return 1
    except StorageError as exc:
        print(f"  [!] Could not update user {args.user_id}: {exc}", file=sys.stderr)
        return 1
    finally:
        storage.close()
    verb = "revoked from" if args.revoke else "granted to"
    print(f"  Admin {verb} user {args.user_id}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sso",
        description="Credential-based SSO service: run the API and provision tenants.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting)")
    serve.set_defaults(func=_serve)

    add_app = sub.add_parser("add-app", help="Provision a tenant app and its signing secret")
    add_app.add_argument("--name", required=True, help="Unique app name")
    add_app.add_argument("--secret", required=True, help="HS256 signing secret for this app's tokens")
    add_app.add_argument("--id", type=int, default=None, help="Pin the app id instead of letting the DB assign one")
    add_app.set_defaults(func=_add_app)

    set_admin = sub.add_parser("set-admin", help="Grant or revoke a user's admin flag")
    set_admin.add_argument("--user-id", type=int, required=True, help="Target user id")
    set_admin.add_argument("--revoke", action="store_true", help="Clear the flag instead of setting it")
    set_admin.set_defaults(func=_set_admin)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    settings = get_settings()
    setup_logging(settings.env, settings.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
