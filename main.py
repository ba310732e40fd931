#!/usr/bin/env python3
"""
E-Store -- command-line client for the E-Store admin API.

Usage:
  python main.py signup --name "Jane" --email jane@x.com
  python main.py login --email jane@x.com
  python main.py whoami
  python main.py addresses
  python main.py addresses --add --full-name "Jane" --phone 0917... --line1 "1 Main St" \
      --city Makati --state "Metro Manila" --postal-code 1200
  python main.py logout
  python main.py create-admin --name "Ops" --email ops@x.com   (server side, writes the DB)

Environment variables:
  ESTORE_API_URL       API base URL (default http://localhost:8000/api/v1)
  ESTORE_SESSION_FILE  Where the token and profile are kept (default ~/.estore/session.json)
"""

import argparse
import getpass
import json
import sys
from typing import Optional

from client.api import ApiClient
from client.errors import ClientError
from client.forms import LoginForm, SignupForm
from client.session import SessionContext, SessionStore
from core.config import get_client_settings


def _show_login_hint() -> None:
    print("  Session ended. Run `python main.py login` to sign in again.")


def _print_form_errors(form) -> None:
    if form.state.general_error:
        print(f"  [!] {form.state.general_error}")
    for name, messages in form.state.field_errors.items():
        for message in messages:
            print(f"  [!] {name}: {message}")


def _password(prompt: str, given: Optional[str]) -> str:
    return given if given is not None else getpass.getpass(prompt)


def _build_client() -> ApiClient:
    settings = get_client_settings()
    context = SessionContext(SessionStore(settings.session_file), navigate_to_login=_show_login_hint)
    return ApiClient(context)


def cmd_signup(client: ApiClient, args: argparse.Namespace) -> int:
    form = SignupForm(client)
    form.name = args.name
    form.email = args.email
    form.phone = args.phone or ""
    form.password = _password("Password: ", args.password)
    form.password_confirmation = _password("Confirm password: ", args.password)
    form.terms = args.accept_terms
    user = form.submit()
    if user is None:
        _print_form_errors(form)
        return 1
    print(f"  Account created for {user['email']}. Run `python main.py login` to sign in.")
    return 0


def cmd_login(client: ApiClient, args: argparse.Namespace) -> int:
    form = LoginForm(client)
    form.email = args.email
    form.password = _password("Password: ", args.password)
    session = form.submit()
    if session is None:
        _print_form_errors(form)
        return 1
    print(f"  Logged in as {session.user.get('name')} <{session.user.get('email')}>.")
    return 0


def cmd_logout(client: ApiClient, args: argparse.Namespace) -> int:
    client.logout()
    return 0


def cmd_whoami(client: ApiClient, args: argparse.Namespace) -> int:
    if not client.context.is_authenticated:
        _show_login_hint()
        return 1
    user = client.current_user()
    print(json.dumps(user, indent=2))
    return 0


def cmd_addresses(client: ApiClient, args: argparse.Namespace) -> int:
    if args.add:
        created = client.create_address(
            full_name=args.full_name,
            phone=args.phone,
            address_line1=args.line1,
            address_line2=args.line2,
            city=args.city,
            state=args.state,
            postal_code=args.postal_code,
            country=args.country,
            is_default=args.default,
            type=args.type,
        )
        print(json.dumps(created, indent=2))
        return 0
    if args.delete is not None:
        client.delete_address(args.delete)
        print(f"  Address {args.delete} deleted.")
        return 0
    print(json.dumps(client.list_addresses(), indent=2))
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    """Create an admin directly in the database. Runs where the server runs."""
    from sqlalchemy.exc import IntegrityError

    from auth.models import User
    from auth.store import UserStore
    from auth.tokens import PASSWORD_MAX_BYTES, hash_password, password_too_long

    password = _password("Admin password: ", args.password)
    if len(password) < 8:
        print("  [!] Password must be at least 8 characters.")
        return 1
    if password_too_long(password):
        print(f"  [!] Password may not be longer than {PASSWORD_MAX_BYTES} bytes.")
        return 1
    store = UserStore()
    try:
        uid = store.create_user(
            User(name=args.name, email=args.email, hashed_password=hash_password(password), role="admin")
        )
    except IntegrityError:
        print(f"  [!] A user with email {args.email} already exists.")
        return 1
    finally:
        store.close()
    print(f"  Admin {args.email} created (id={uid}).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="estore",
        description="Command-line client for the E-Store admin API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("signup", help="Create an account")
    p.add_argument("--name", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--phone")
    p.add_argument("--password", help="Omit to be prompted")
    p.add_argument("--accept-terms", action="store_true", help="Agree to the terms and conditions")

    p = sub.add_parser("login", help="Sign in and store the session token")
    p.add_argument("--email", required=True)
    p.add_argument("--password", help="Omit to be prompted")

    sub.add_parser("logout", help="Revoke the token and forget the session")
    sub.add_parser("whoami", help="Show the signed-in user")

    p = sub.add_parser("addresses", help="List, add, or delete your addresses")
    p.add_argument("--add", action="store_true")
    p.add_argument("--delete", type=int, metavar="ID")
    p.add_argument("--full-name")
    p.add_argument("--phone")
    p.add_argument("--line1")
    p.add_argument("--line2")
    p.add_argument("--city")
    p.add_argument("--state")
    p.add_argument("--postal-code")
    p.add_argument("--country", default="Philippines")
    p.add_argument("--default", action="store_true")
    p.add_argument("--type", choices=["shipping", "billing", "both"], default="both")

    p = sub.add_parser("create-admin", help="Create an admin account directly in the database")
    p.add_argument("--name", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", help="Omit to be prompted")
    return parser


_COMMANDS = {
    "signup": cmd_signup,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "addresses": cmd_addresses,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "create-admin":
        return cmd_create_admin(args)
    client = _build_client()
    try:
        return _COMMANDS[args.command](client, args)
    except ClientError as e:
        error = e.error
        print(f"  [!] {getattr(error, 'message', '') or type(e).__name__}")
        for name, messages in getattr(error, "errors", {}).items():
            for message in messages:
                print(f"  [!] {name}: {message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
