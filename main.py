#!/usr/bin/env python3
"""
Tag Admin -- tag management and administrator authentication service.

Usage:
  python main.py serve
  python main.py serve --reload
  python main.py create-user --username admin
  python main.py create-user --username admin --password 's3cret-pass'
  python main.py disable-user --username admin

Configuration comes from the environment and .env files (see core/config.py).
APP_HOST / APP_PORT select the listen address for `serve`.
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from core.config import get_settings

_MIN_PASSWORD_LENGTH = 8


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    print(f"server is running: http://{settings.app_host}:{settings.app_port}")
    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=args.reload,
    )
    return 0


def _create_user(args: argparse.Namespace) -> int:
    from auth.store import UserStore

    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("  [!] Passwords do not match.")
            return 1
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
        return 1

    store = UserStore(get_settings().database_url)
    try:
        user_id = store.create_user(args.username, password)
    except IntegrityError:
        print(f"  [!] User '{args.username}' already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created user '{args.username}' (id: {user_id}).")
    return 0


def _set_active(args: argparse.Namespace) -> int:
    from auth.store import UserStore

    store = UserStore(get_settings().database_url)
    try:
        user = store.find_one_by_user_name(args.username)
        if user is None:
            print(f"  [!] User '{args.username}' not found.")
            return 1
        store.set_active(user.id, args.active)
    finally:
        store.close()

    print(f"  User '{args.username}' {'enabled' if args.active else 'disabled'}.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tag-admin",
        description="Tag management and administrator authentication service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve
  APP_PORT=8080 python main.py serve --reload
  python main.py create-user --username admin
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API on APP_HOST:APP_PORT")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Create an administrator account")
    create.add_argument("--username", required=True, help="Login name of the new user")
    create.add_argument("--password", default=None, help="Password (prompted when omitted)")
    create.set_defaults(func=_create_user)

    disable = sub.add_parser("disable-user", help="Block an account from logging in")
    disable.add_argument("--username", required=True)
    disable.set_defaults(func=_set_active, active=False)

    enable = sub.add_parser("enable-user", help="Re-enable a disabled account")
    enable.add_argument("--username", required=True)
    enable.set_defaults(func=_set_active, active=True)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
