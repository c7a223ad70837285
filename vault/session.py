"""
Request-scoped session context.

A SessionContext names the calling account and carries the clients an
operation needs. It is built per request and passed explicitly; nothing in
the service keeps a "current user" between requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from shared.identifiers import AccountIdentifier, InvalidIdentifierError, parse_identifier
from shared.types import Account, AccountSnapshot
from vault.db import DbClient, Unsubscribe
from vault.errors import ErrorKind, OperationError, UpstreamUnavailable
from vault.file_host import FileHostClient

logger = logging.getLogger(__name__)

ACCOUNT_NOT_FOUND_MESSAGE = "User not found. Please create an account."
ACCOUNT_LOCKED_MESSAGE = "Account is locked."


def resolve_identifier(raw: str | None) -> AccountIdentifier:
    try:
        return parse_identifier(raw)
    except InvalidIdentifierError as e:
        raise OperationError(ErrorKind.VALIDATION, str(e)) from e


def require_unlocked(db: DbClient, account_id: AccountIdentifier) -> Account:
    """Load the account, rejecting missing and locked accounts."""
    account = db.get_account(account_id.storage_key)
    if account is None:
        raise OperationError(ErrorKind.NOT_FOUND, ACCOUNT_NOT_FOUND_MESSAGE)
    if account.locked:
        raise OperationError(ErrorKind.ACCESS_DENIED, ACCOUNT_LOCKED_MESSAGE)
    return account


@dataclass(frozen=True)
class SessionContext:
    identifier: str
    db: DbClient
    file_host: FileHostClient

    @property
    def account_id(self) -> AccountIdentifier:
        return resolve_identifier(self.identifier)

    @property
    def key(self) -> str:
        return self.account_id.storage_key

    def load_account(self) -> Account:
        """Current account record; raises OperationError if missing or locked."""
        return require_unlocked(self.db, self.account_id)

    def snapshot(self) -> AccountSnapshot:
        account_id = self.account_id
        account = require_unlocked(self.db, account_id)
        key = account_id.storage_key
        return AccountSnapshot(
            identifier=str(account_id),
            account=account,
            diary=self.db.list_diary_entries(key),
            files=self.db.list_files(key),
        )

    def watch(self, callback: Callable[[AccountSnapshot], None]) -> Unsubscribe:
        """
        Deliver a fresh snapshot to `callback` after every write to the
        account until the returned function is called. Writes that leave
        the account unreadable (missing, locked, upstream down) are skipped.
        """
        account_id = self.account_id

        def on_change(key: str) -> None:
            try:
                snapshot = self.snapshot()
            except OperationError as e:
                logger.info("Skipping snapshot for %s: %s", account_id, e.message)
                return
            except UpstreamUnavailable:
                logger.warning("Could not refresh snapshot for %s", account_id)
                return
            callback(snapshot)

        return self.db.subscribe(account_id.storage_key, on_change)
