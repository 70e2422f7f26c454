"""
Session and Account Services Package.

Services depend on the Repository layer for data access and on the
single ``SessionStore`` instance for "who is signed in".

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the application layer (commands / views) can
consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

from journal.config import AppConfig
from journal.database import DatabaseManager
from journal.logger import get_logger
from journal.repositories.account_repository import AccountRepository
from journal.repositories.journal_entry_repository import JournalEntryRepository
from journal.services.account_service import AccountService
from journal.services.current_user import CurrentUserAccessor
from journal.services.login_service import LoginOrchestrator
from journal.services.logout_service import LogoutService
from journal.services.password_service import ChangePasswordService
from journal.services.register_service import RegisterOrchestrator
from journal.services.remote_auth import RemoteAuthClient
from journal.services.retry_policy import RetryPolicy
from journal.services.session_store import SessionStore
from journal.services.user_initializer import UserInitializer
from journal.services.welcome_entry_service import WelcomeEntryService


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    # --- Session & auth ---
    session_store: SessionStore
    remote_auth: RemoteAuthClient
    current_user: CurrentUserAccessor
    login: LoginOrchestrator
    register: RegisterOrchestrator
    logout: LogoutService
    change_password: ChangePasswordService

    # --- Data ---
    journal_entries: JournalEntryRepository
    account: AccountService
    welcome_entry: WelcomeEntryService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    session_store: SessionStore,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once at startup and passes the
    returned dict to commands as needed.

    Args:
        db: Initialised DatabaseManager with Supabase + SQLite ready.
        config: Application configuration (retry, timeout, dev override).
        session_store: The process-wide session store, already created.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("journal.services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    entry_repo = JournalEntryRepository(db=db, session_store=session_store, logger=logger)
    account_repo = AccountRepository(db=db, session_store=session_store, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    remote_auth = RemoteAuthClient(db=db, session_store=session_store, logger=logger)
    retry_policy = RetryPolicy(
        logger=logger,
        max_attempts=config.AUTH_RETRY_MAX_ATTEMPTS,
        base_delay=config.AUTH_RETRY_BASE_DELAY_S,
    )
    initializer = UserInitializer(
        db=db,
        logger=logger,
        timeout=config.USER_INIT_TIMEOUT_S,
    )
    current_user = CurrentUserAccessor(
        session_store=session_store,
        config=config,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 3. Orchestration services (depend on other services)
    # ------------------------------------------------------------------
    login = LoginOrchestrator(
        remote_auth=remote_auth,
        initializer=initializer,
        retry_policy=retry_policy,
        logger=logger,
    )
    register = RegisterOrchestrator(
        remote_auth=remote_auth,
        initializer=initializer,
        retry_policy=retry_policy,
        logger=logger,
    )
    logout = LogoutService(remote_auth=remote_auth, session_store=session_store, logger=logger)
    change_password = ChangePasswordService(
        remote_auth=remote_auth,
        session_store=session_store,
        logger=logger,
    )
    account = AccountService(
        repo=account_repo,
        session_store=session_store,
        db=db,
        logger=logger,
    )
    welcome_entry = WelcomeEntryService(
        repo=entry_repo,
        session_store=session_store,
        logger=logger,
    )

    return ServiceContainer(
        session_store=session_store,
        remote_auth=remote_auth,
        current_user=current_user,
        login=login,
        register=register,
        logout=logout,
        change_password=change_password,
        journal_entries=entry_repo,
        account=account,
        welcome_entry=welcome_entry,
    )
