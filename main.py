#!/usr/bin/env python3
"""
Gatehouse -- account registration, login sessions and role-based access.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py bootstrap-admin --email admin@example.com --first-name Ada --last-name Admin

Environment variables (see core/config.py):
  ACCESS_TOKEN_SECRET   Required in production. Signs 15-minute access tokens.
  REFRESH_TOKEN_SECRET  Required in production. Signs 7-day refresh tokens.
  DATABASE_URL          SQLAlchemy URL of the user store (default sqlite:///gatehouse.db).
  DEBUG                 true = generate throwaway secrets for local development.
"""

import argparse
import secrets
import sys

from auth.models import Identity, Role, Status
from auth.passwords import PasswordHasher
from auth.store import UserStore, normalize_email
from core.config import get_settings


def bootstrap_admin(store: UserStore, hasher: PasswordHasher, email: str, first_name: str, last_name: str) -> str:
    """Create an admin account holding only a temporary password and return that password.

    This is the only way to create the first admin: /users/provision itself
    requires an authenticated admin, owner or manager.

    Raises ValueError if the email is already registered.
    """
    email_key = normalize_email(email)
    if store.find_by_email(email_key) is not None:
        raise ValueError(f"An account for {email_key} already exists.")
    temporary_password = secrets.token_urlsafe(12)
    store.create(
        Identity(
            email=email_key,
            first_name=first_name,
            last_name=last_name,
            role=Role.admin,
            status=Status.active,
            temporary_password_hash=hasher.hash(temporary_password),
        )
    )
    return temporary_password


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="gatehouse",
        description="Account registration, login sessions and role-based access.",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")

    admin = subparsers.add_parser("bootstrap-admin", help="Create an admin account with a temporary password")
    admin.add_argument("--email", required=True)
    admin.add_argument("--first-name", required=True)
    admin.add_argument("--last-name", required=True)

    args = parser.parse_args()

    if args.command == "serve":
        import uvicorn

        uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)

    elif args.command == "bootstrap-admin":
        settings = get_settings()
        store = UserStore(settings.database_url)
        try:
            temporary_password = bootstrap_admin(
                store,
                PasswordHasher(rounds=settings.bcrypt_rounds),
                args.email,
                args.first_name,
                args.last_name,
            )
        except ValueError as e:
            print(f"  [!] {e}")
            sys.exit(1)
        finally:
            store.close()
        print(f"  Admin account created for {normalize_email(args.email)}.")
        print(f"  Temporary password (shown once): {temporary_password}")
        print("  Log in and set a permanent password with PATCH /profile/update.")

    else:
        parser.print_help()


if __name__ == "__main__":
    main()
