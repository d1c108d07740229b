#!/usr/bin/env python3
"""
Inkwell -- operator commands for the blogging backend.

Usage:
  python main.py create-user alice
  python main.py create-user root --admin
  python main.py delete-user 3
  python main.py inspect-token eyJhbGciOi...

Environment variables:
  SECRET_KEY     Signing key (32+ chars). Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL of the database (default: sqlite file next to the code).
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.errors import InkwellError
from auth.models import Authorities
from auth.passwords import BcryptPasswordHasher
from auth.service import AuthenticationService
from auth.store import UserStore
from auth.tokens import TokenCodec
from blog.store import PostStore
from core.config import get_settings


def _read_password(prompt_for: str) -> Optional[str]:
    """Prompt twice for a password. Returns None if the entries differ."""
    first = getpass.getpass(f"Password for {prompt_for}: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    if len(first) < 8:
        print("  [!] Password must be at least 8 characters.")
        return None
    return first


def _build_service(user_store: UserStore) -> AuthenticationService:
    settings = get_settings()
    return AuthenticationService(
        user_store,
        BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        TokenCodec.from_settings(settings),
    )


def cmd_create_user(args: argparse.Namespace) -> int:
    password = _read_password(args.username)
    if password is None:
        return 1
    authority = Authorities.ROLE_ADMIN if args.admin else Authorities.ROLE_USER
    user_store = UserStore(get_settings().database_url)
    try:
        result = _build_service(user_store).signup(args.username, password, authority=authority)
    except InkwellError as e:
        print(f"  [!] {e.message}")
        return 1
    finally:
        user_store.close()
    print(f"  Created user {result.user.username} (id={result.user.id}, {result.user.authority}).")
    print(f"  Token: {result.token}")
    return 0


def cmd_delete_user(args: argparse.Namespace) -> int:
    settings = get_settings()
    user_store = UserStore(settings.database_url)
    post_store = PostStore(settings.database_url)
    try:
        service = _build_service(user_store)
        user = service.get_user(args.user_id)
        removed = post_store.delete_all_by_user(user.id)
        service.delete_user(user.id)
    except InkwellError as e:
        print(f"  [!] {e.message}")
        return 1
    finally:
        post_store.close()
        user_store.close()
    print(f"  Deleted user {user.username} and {removed} post(s).")
    return 0


def cmd_inspect_token(args: argparse.Namespace) -> int:
    codec = TokenCodec.from_settings(get_settings())
    try:
        principal = codec.verify(args.token)
    except InkwellError as e:
        print(f"  [!] {e.code}: {e.message}")
        return 1
    print(f"  subject:     {principal.username}")
    print(f"  authorities: {', '.join(sorted(principal.authorities))}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="inkwell",
        description="Operator commands for the Inkwell blogging backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user alice
  python main.py create-user root --admin
  python main.py delete-user 3
  python main.py inspect-token eyJhbGciOi...
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = sub.add_parser("create-user", help="Create an account (password is prompted)")
    create.add_argument("username", help="Unique username")
    create.add_argument("--admin", action="store_true", help="Grant ROLE_ADMIN instead of ROLE_USER")
    create.set_defaults(func=cmd_create_user)

    delete = sub.add_parser("delete-user", help="Delete an account and its posts")
    delete.add_argument("user_id", type=int, metavar="ID", help="Numeric user id")
    delete.set_defaults(func=cmd_delete_user)

    inspect = sub.add_parser("inspect-token", help="Verify a bearer token and print its claims")
    inspect.add_argument("token", help="Token string without the 'Bearer ' prefix")
    inspect.set_defaults(func=cmd_inspect_token)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
