"""
Account lifecycle operations: login, login-or-create, snapshot, lock/unlock.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from shared.constants import UNLOCK_CODE_DIGITS
from shared.types import Account
from shared.utils import now_ms
from vault.db import DbClient
from vault.errors import ErrorKind, OperationError
from vault.results import OperationResult, operation
from vault.session import (
    ACCOUNT_LOCKED_MESSAGE,
    SessionContext,
    require_unlocked,
    resolve_identifier,
)

logger = logging.getLogger(__name__)


def generate_unlock_code() -> str:
    return f"{secrets.randbelow(10**UNLOCK_CODE_DIGITS):0{UNLOCK_CODE_DIGITS}d}"


@operation("Login")
def login(db: DbClient, identifier: str) -> OperationResult:
    account_id = resolve_identifier(identifier)
    require_unlocked(db, account_id)
    return OperationResult.ok(f"Welcome, {account_id}!", identifier=str(account_id))


@operation("Login/Create")
def login_or_create(
    db: DbClient,
    identifier: str,
    username: Optional[str] = None,
    email: Optional[str] = None,
) -> OperationResult:
    account_id = resolve_identifier(identifier)
    key = account_id.storage_key
    account = db.get_account(key)

    if account is None:
        db.create_account(
            key,
            Account(
                created_at=now_ms(),
                usage_bytes=0,
                tier=account_id.initial_tier,
                username=username or None,
                email=email or None,
            ),
        )
        logger.info("Created account %s (%s)", account_id, account_id.initial_tier)
    else:
        if account.locked:
            raise OperationError(ErrorKind.ACCESS_DENIED, ACCOUNT_LOCKED_MESSAGE)
        if username or email:
            db.update_profile(key, username=username, email=email)

    return OperationResult.ok(f"Welcome, {account_id}!", identifier=str(account_id))


@operation("Account Snapshot")
def get_snapshot(session: SessionContext) -> OperationResult:
    snapshot = session.snapshot()
    return OperationResult.ok("Account loaded.", **snapshot.as_dict())


@operation("Lock Account")
def lock_account(session: SessionContext) -> OperationResult:
    """
    Lock the session's account and hand back the one-time unlock code.

    The code is returned only here; it must be shown to the user right away.
    """
    session.load_account()
    unlock_code = generate_unlock_code()
    session.db.set_lock(session.key, True, unlock_code)
    logger.warning("Account %s locked", session.account_id)
    return OperationResult.ok("Account locked successfully.", unlock_code=unlock_code)


@operation("Unlock Account")
def unlock_account(db: DbClient, identifier: str, unlock_code: str) -> OperationResult:
    code = unlock_code or ""
    if not identifier or not code:
        raise OperationError(
            ErrorKind.VALIDATION, "User ID and unlock code are required."
        )
    account_id = resolve_identifier(identifier)
    account = db.get_account(account_id.storage_key)
    if account is None:
        raise OperationError(ErrorKind.NOT_FOUND, "User not found.")
    if not account.locked:
        raise OperationError(ErrorKind.VALIDATION, "Account is not locked.")
    if not account.unlock_code or not secrets.compare_digest(
        account.unlock_code.encode("utf-8"), code.encode("utf-8")
    ):
        raise OperationError(ErrorKind.ACCESS_DENIED, "Invalid unlock code.")

    db.set_lock(account_id.storage_key, False, None)
    logger.info("Account %s unlocked", account_id)
    return OperationResult.ok("Account unlocked successfully!")
