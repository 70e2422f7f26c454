"""
10xJournal Client Entry Point.

Bootstraps the dependency graph via constructor injection, initialises the
local SQLite schema, restores the persisted session, and runs one command.
Every subsystem is wired here; there are no module-level globals.

Usage::

    python main.py login you@example.com
    python main.py register you@example.com
    python main.py status
    python main.py entries
    python main.py export --output journal.json
    python main.py change-password
    python main.py delete-account
    python main.py logout
"""

from __future__ import annotations

import argparse
import asyncio
import atexit
import getpass
import sys
from pathlib import Path
from typing import Optional

from journal.config import get_config
from journal.database import DatabaseManager
from journal.errors import JournalClientError
from journal.logger import StructuredLogger, configure_logging, get_logger
from journal.models.auth_models import ChangePasswordRequest
from journal.models.journal_models import DELETE_CONFIRMATION_PHRASE, DeleteAccountRequest
from journal.schema import initialize_schema
from journal.services import ServiceContainer, create_services
from journal.services.error_mapper import (
    CONNECTION_PROBLEM,
    describe_login_failure,
    describe_registration_failure,
)
from journal.services.session_store import SessionStore
from journal.storage import LocalStorage


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def _cmd_login(services: ServiceContainer, args: argparse.Namespace) -> int:
    password = getpass.getpass("Hasło: ")
    try:
        user_id = await services["login"].login(args.email, password)
    except Exception as exc:
        print(describe_login_failure(exc), file=sys.stderr)
        return 1

    await services["welcome_entry"].create_welcome_entry_if_needed()
    print(f"Zalogowano jako {args.email} ({user_id}).")
    return 0


async def _cmd_register(services: ServiceContainer, args: argparse.Namespace) -> int:
    password = getpass.getpass("Hasło: ")
    if password != getpass.getpass("Powtórz hasło: "):
        print("Hasła muszą być identyczne.", file=sys.stderr)
        return 1

    try:
        result = await services["register"].register(args.email, password)
    except Exception as exc:
        print(describe_registration_failure(exc), file=sys.stderr)
        return 1

    if result.requires_email_confirmation:
        print("Konto utworzone. Potwierdź adres e-mail, a następnie zaloguj się.")
        return 0

    await services["welcome_entry"].create_welcome_entry_if_needed()
    print(f"Konto utworzone. Zalogowano jako {args.email}.")
    return 0


async def _cmd_logout(services: ServiceContainer, args: argparse.Namespace) -> int:
    await services["logout"].logout()
    print("Wylogowano.")
    return 0


async def _cmd_status(services: ServiceContainer, args: argparse.Namespace) -> int:
    session = services["session_store"].load_sync()
    if session is None:
        user_id = services["current_user"].get_current_user_id()
        if user_id is None:
            print("Niezalogowany.")
            return 1
        print(f"Tryb deweloperski: użytkownik {user_id}.")
        return 0

    print(f"Zalogowano jako {session.email or session.user_id}.")
    streak = await services["journal_entries"].get_streak()
    if streak is not None:
        print(f"Seria: {streak.current_streak} (najdłuższa: {streak.longest_streak}).")
    return 0


async def _cmd_entries(services: ServiceContainer, args: argparse.Namespace) -> int:
    entries = await services["journal_entries"].list_entries()
    if not entries:
        print("Brak wpisów.")
        return 0
    for entry in entries[: args.limit]:
        first_line = entry.content.strip().splitlines()[0] if entry.content.strip() else ""
        print(f"{entry.created_at:%Y-%m-%d %H:%M}  {first_line[:70]}")
    return 0


async def _cmd_export(services: ServiceContainer, args: argparse.Namespace) -> int:
    export = await services["account"].export_data()
    payload = export.model_dump_json(indent=2)
    if args.output is None:
        print(payload)
    else:
        args.output.write_text(payload, encoding="utf-8")
        print(f"Wyeksportowano {export.total_entries} wpisów do {args.output}.")
    return 0


async def _cmd_change_password(services: ServiceContainer, args: argparse.Namespace) -> int:
    request = ChangePasswordRequest(
        current_password=getpass.getpass("Obecne hasło: "),
        new_password=getpass.getpass("Nowe hasło: "),
        confirm_password=getpass.getpass("Powtórz nowe hasło: "),
    )
    result = await services["change_password"].change_password(request)
    if not result.is_valid:
        print(result.error_message, file=sys.stderr)
        return 1
    print("Hasło zostało zmienione.")
    return 0


async def _cmd_delete_account(services: ServiceContainer, args: argparse.Namespace) -> int:
    phrase = input(f'Wpisz "{DELETE_CONFIRMATION_PHRASE}", aby usunąć konto: ')
    result = await services["account"].delete_account(
        DeleteAccountRequest(confirmation_phrase=phrase)
    )
    if not result.is_valid:
        print(result.error_message, file=sys.stderr)
        return 1
    print("Konto zostało usunięte.")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="journal", description="10xJournal client")
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="sign in")
    login.add_argument("email")
    login.set_defaults(handler=_cmd_login)

    register = commands.add_parser("register", help="create an account")
    register.add_argument("email")
    register.set_defaults(handler=_cmd_register)

    commands.add_parser("logout", help="sign out").set_defaults(handler=_cmd_logout)
    commands.add_parser("status", help="show the signed-in user").set_defaults(handler=_cmd_status)

    entries = commands.add_parser("entries", help="list journal entries")
    entries.add_argument("--limit", type=int, default=20)
    entries.set_defaults(handler=_cmd_entries)

    export = commands.add_parser("export", help="export all entries as JSON")
    export.add_argument("--output", type=Path, default=None)
    export.set_defaults(handler=_cmd_export)

    commands.add_parser("change-password", help="change the password").set_defaults(
        handler=_cmd_change_password,
    )
    commands.add_parser("delete-account", help="permanently delete the account").set_defaults(
        handler=_cmd_delete_account,
    )
    return parser


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

async def run(argv: Optional[list[str]] = None) -> int:
    """Wire dependencies, restore the session and run one command."""
    args = _build_parser().parse_args(argv)

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()
    configure_logging(config)
    logger: StructuredLogger = get_logger("journal.main").bind(command=args.command)

    # ------------------------------------------------------------------
    # 2. Database Manager (Supabase optional, SQLite always)
    # ------------------------------------------------------------------
    db = await DatabaseManager.create(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=Path(config.LOCAL_STORAGE_PATH),
        logger=StructuredLogger(name="journal.database"),
    )
    # Second safety net for unclean exits; close() is idempotent.
    atexit.register(db.close)

    # ------------------------------------------------------------------
    # 3. SQLite schema (idempotent)
    # ------------------------------------------------------------------
    initialize_schema(db.sqlite, StructuredLogger(name="journal.schema"))

    # ------------------------------------------------------------------
    # 4. Session store + service container
    # ------------------------------------------------------------------
    session_store = SessionStore(
        storage=LocalStorage(db),
        logger=StructuredLogger(name="journal.session"),
        storage_key=config.SESSION_STORAGE_KEY,
    )
    services = create_services(db=db, config=config, session_store=session_store)

    try:
        # --------------------------------------------------------------
        # 5. Restore the persisted session before anything reads it
        # --------------------------------------------------------------
        restored = await services["remote_auth"].restore_session()
        if restored is not None:
            logger = logger.bind(user_id=str(restored.user_id))

        # --------------------------------------------------------------
        # 6. Run the command
        # --------------------------------------------------------------
        try:
            return await args.handler(services, args)
        except JournalClientError as exc:
            logger.error("Command %s failed: %s", args.command, exc)
            print(exc.message, file=sys.stderr)
            return 1
        except ConnectionError as exc:
            logger.warning("Command %s aborted, remote unreachable: %s", args.command, exc)
            print(CONNECTION_PROBLEM, file=sys.stderr)
            return 1
    finally:
        await session_store.flush()
        db.close()


def main() -> None:
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
