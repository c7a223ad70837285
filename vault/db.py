"""
Database abstraction for the Firebase Realtime Database, a SQLAlchemy
alternative, and an in-memory test implementation.

Every method is a single remote read or write. None of the clients offer
transactions spanning more than one key; callers do read-modify-write.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Dict, Iterator, Optional, Protocol

import firebase_admin
from firebase_admin import credentials
from firebase_admin import db as rtdb
from firebase_admin.exceptions import FirebaseError
from sqlalchemy import BigInteger, Boolean, Column, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.constants import DIARY_COLLECTION, FILES_COLLECTION, USERS_COLLECTION
from shared.types import (
    Account,
    AccountTier,
    DiaryEntry,
    StoredFile,
    account_from_record,
    diary_entry_from_record,
    stored_file_from_record,
)
from shared.utils import get_unique_id
from vault.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

AccountListener = Callable[[str], None]
Unsubscribe = Callable[[], None]


class DbClient(Protocol):
    """Interface for database access, keyed by account storage key."""

    def get_account(self, key: str) -> Optional[Account]:
        ...

    def create_account(self, key: str, account: Account) -> None:
        ...

    def update_profile(
        self, key: str, *, username: Optional[str] = None, email: Optional[str] = None
    ) -> None:
        ...

    def set_usage(self, key: str, usage_bytes: int) -> None:
        ...

    def set_lock(self, key: str, locked: bool, unlock_code: Optional[str]) -> None:
        ...

    def add_diary_entry(self, key: str, entry: DiaryEntry) -> str:
        ...

    def update_diary_entry(self, key: str, entry_id: str, entry: DiaryEntry) -> None:
        ...

    def get_diary_entry(self, key: str, entry_id: str) -> Optional[DiaryEntry]:
        ...

    def list_diary_entries(self, key: str) -> Dict[str, DiaryEntry]:
        ...

    def delete_diary_entry(self, key: str, entry_id: str) -> None:
        ...

    def add_file(self, key: str, record: StoredFile) -> str:
        ...

    def get_file(self, key: str, file_id: str) -> Optional[StoredFile]:
        ...

    def list_files(self, key: str) -> Dict[str, StoredFile]:
        ...

    def delete_file(self, key: str, file_id: str) -> None:
        ...

    def subscribe(self, key: str, listener: AccountListener) -> Unsubscribe:
        """Call `listener(key)` after every write under the account."""
        ...


class SubscriberRegistry:
    """In-process fan-out of account change notifications."""

    def __init__(self):
        self._listeners: Dict[str, list[AccountListener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, key: str, listener: AccountListener) -> Unsubscribe:
        with self._lock:
            self._listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(key, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def notify(self, key: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(key, []))
        for listener in listeners:
            try:
                listener(key)
            except Exception:
                logger.exception("Account listener for %s raised", key)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.accounts: Dict[str, Account] = {}
        self.diary: Dict[str, Dict[str, DiaryEntry]] = {}
        self.files: Dict[str, Dict[str, StoredFile]] = {}
        self.subscribers = SubscriberRegistry()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.accounts.clear()
        self.diary.clear()
        self.files.clear()

    def get_account(self, key: str) -> Optional[Account]:
        account = self.accounts.get(key)
        return replace(account) if account else None

    def create_account(self, key: str, account: Account) -> None:
        self.accounts[key] = replace(account)
        self.subscribers.notify(key)

    def update_profile(
        self, key: str, *, username: Optional[str] = None, email: Optional[str] = None
    ) -> None:
        account = self.accounts.get(key)
        if not account:
            return
        if username:
            account.username = username
        if email:
            account.email = email
        self.subscribers.notify(key)

    def set_usage(self, key: str, usage_bytes: int) -> None:
        account = self.accounts.get(key)
        if account:
            account.usage_bytes = usage_bytes
            self.subscribers.notify(key)

    def set_lock(self, key: str, locked: bool, unlock_code: Optional[str]) -> None:
        account = self.accounts.get(key)
        if account:
            account.locked = locked
            account.unlock_code = unlock_code
            self.subscribers.notify(key)

    def add_diary_entry(self, key: str, entry: DiaryEntry) -> str:
        entry_id = get_unique_id()
        self.diary.setdefault(key, {})[entry_id] = replace(entry)
        self.subscribers.notify(key)
        return entry_id

    def update_diary_entry(self, key: str, entry_id: str, entry: DiaryEntry) -> None:
        self.diary.setdefault(key, {})[entry_id] = replace(entry)
        self.subscribers.notify(key)

    def get_diary_entry(self, key: str, entry_id: str) -> Optional[DiaryEntry]:
        entry = self.diary.get(key, {}).get(entry_id)
        return replace(entry) if entry else None

    def list_diary_entries(self, key: str) -> Dict[str, DiaryEntry]:
        return {k: replace(v) for k, v in self.diary.get(key, {}).items()}

    def delete_diary_entry(self, key: str, entry_id: str) -> None:
        self.diary.get(key, {}).pop(entry_id, None)
        self.subscribers.notify(key)

    def add_file(self, key: str, record: StoredFile) -> str:
        file_id = get_unique_id()
        self.files.setdefault(key, {})[file_id] = replace(record)
        self.subscribers.notify(key)
        return file_id

    def get_file(self, key: str, file_id: str) -> Optional[StoredFile]:
        record = self.files.get(key, {}).get(file_id)
        return replace(record) if record else None

    def list_files(self, key: str) -> Dict[str, StoredFile]:
        return {k: replace(v) for k, v in self.files.get(key, {}).items()}

    def delete_file(self, key: str, file_id: str) -> None:
        self.files.get(key, {}).pop(file_id, None)
        self.subscribers.notify(key)

    def subscribe(self, key: str, listener: AccountListener) -> Unsubscribe:
        return self.subscribers.subscribe(key, listener)


@contextmanager
def _firebase_call(action: str) -> Iterator[None]:
    try:
        yield
    except FirebaseError as e:
        raise UpstreamUnavailable(f"Realtime Database {action} failed: {e}") from e


class FirebaseDbClient:
    """
    Firebase Realtime Database implementation.

    Layout: users/<key> holds the account fields, with diary/<push id> and
    files/<push id> children. Listeners registered through `subscribe` also
    fire once on registration with the current state.
    """

    def __init__(
        self,
        database_url: str,
        credentials_path: Optional[str] = None,
        app_name: str = "vault",
    ):
        if not database_url:
            raise ValueError("FIREBASE_DATABASE_URL is required for FirebaseDbClient")
        try:
            self.app = firebase_admin.get_app(app_name)
        except ValueError:
            cred = (
                credentials.Certificate(credentials_path)
                if credentials_path
                else credentials.ApplicationDefault()
            )
            self.app = firebase_admin.initialize_app(
                cred, {"databaseURL": database_url}, name=app_name
            )

    def _ref(self, key: str, *children: str) -> rtdb.Reference:
        path = "/".join((USERS_COLLECTION, key) + children)
        return rtdb.reference(path, app=self.app)

    def get_account(self, key: str) -> Optional[Account]:
        with _firebase_call("read"):
            data = self._ref(key).get()
        if not data:
            return None
        return account_from_record(data)

    def create_account(self, key: str, account: Account) -> None:
        with _firebase_call("write"):
            self._ref(key).set(account.to_record())

    def update_profile(
        self, key: str, *, username: Optional[str] = None, email: Optional[str] = None
    ) -> None:
        updates = {}
        if username:
            updates["username"] = username
        if email:
            updates["email"] = email
        if not updates:
            return
        with _firebase_call("update"):
            self._ref(key).update(updates)

    def set_usage(self, key: str, usage_bytes: int) -> None:
        with _firebase_call("update"):
            self._ref(key).update({"usageBytes": usage_bytes})

    def set_lock(self, key: str, locked: bool, unlock_code: Optional[str]) -> None:
        with _firebase_call("update"):
            self._ref(key).update({"locked": locked, "unlockCode": unlock_code})

    def add_diary_entry(self, key: str, entry: DiaryEntry) -> str:
        with _firebase_call("push"):
            new_ref = self._ref(key, DIARY_COLLECTION).push(entry.to_record())
        return new_ref.key

    def update_diary_entry(self, key: str, entry_id: str, entry: DiaryEntry) -> None:
        with _firebase_call("update"):
            self._ref(key, DIARY_COLLECTION, entry_id).update(entry.to_record())

    def get_diary_entry(self, key: str, entry_id: str) -> Optional[DiaryEntry]:
        with _firebase_call("read"):
            data = self._ref(key, DIARY_COLLECTION, entry_id).get()
        return diary_entry_from_record(data) if data else None

    def list_diary_entries(self, key: str) -> Dict[str, DiaryEntry]:
        with _firebase_call("read"):
            data = self._ref(key, DIARY_COLLECTION).get() or {}
        return {k: diary_entry_from_record(v) for k, v in data.items()}

    def delete_diary_entry(self, key: str, entry_id: str) -> None:
        with _firebase_call("delete"):
            self._ref(key, DIARY_COLLECTION, entry_id).delete()

    def add_file(self, key: str, record: StoredFile) -> str:
        with _firebase_call("push"):
            new_ref = self._ref(key, FILES_COLLECTION).push(record.to_record())
        return new_ref.key

    def get_file(self, key: str, file_id: str) -> Optional[StoredFile]:
        with _firebase_call("read"):
            data = self._ref(key, FILES_COLLECTION, file_id).get()
        return stored_file_from_record(data) if data else None

    def list_files(self, key: str) -> Dict[str, StoredFile]:
        with _firebase_call("read"):
            data = self._ref(key, FILES_COLLECTION).get() or {}
        return {k: stored_file_from_record(v) for k, v in data.items()}

    def delete_file(self, key: str, file_id: str) -> None:
        with _firebase_call("delete"):
            self._ref(key, FILES_COLLECTION, file_id).delete()

    def subscribe(self, key: str, listener: AccountListener) -> Unsubscribe:
        with _firebase_call("listen"):
            registration = self._ref(key).listen(lambda event: listener(key))
        return registration.close


@contextmanager
def _sql_call(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        raise UpstreamUnavailable(f"Database {action} failed: {e}") from e


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)
        self.subscribers = SubscriberRegistry()

    def _to_account(self, row: "AccountRow") -> Account:
        return Account(
            created_at=row.created_at,
            usage_bytes=row.usage_bytes,
            tier=AccountTier(row.tier),
            username=row.username,
            email=row.email,
            locked=row.locked,
            unlock_code=row.unlock_code,
        )

    def _to_diary_entry(self, row: "DiaryRow") -> DiaryEntry:
        return DiaryEntry(text=row.text, timestamp=row.timestamp)

    def _to_stored_file(self, row: "FileRow") -> StoredFile:
        return StoredFile(
            name=row.name,
            size=row.size,
            url=row.url,
            timestamp=row.timestamp,
            type=row.type,
        )

    def get_account(self, key: str) -> Optional[Account]:
        with _sql_call("read"), self.Session() as session:
            row = session.get(AccountRow, key)
            return self._to_account(row) if row else None

    def create_account(self, key: str, account: Account) -> None:
        with _sql_call("write"), self.Session() as session:
            session.add(
                AccountRow(
                    key=key,
                    created_at=account.created_at,
                    usage_bytes=account.usage_bytes,
                    tier=account.tier.value,
                    username=account.username,
                    email=account.email,
                    locked=account.locked,
                    unlock_code=account.unlock_code,
                )
            )
            session.commit()
        self.subscribers.notify(key)

    def _update_account(self, key: str, **values) -> None:
        with _sql_call("update"), self.Session() as session:
            row = session.get(AccountRow, key)
            if not row:
                return
            for name, value in values.items():
                setattr(row, name, value)
            session.commit()
        self.subscribers.notify(key)

    def update_profile(
        self, key: str, *, username: Optional[str] = None, email: Optional[str] = None
    ) -> None:
        updates = {}
        if username:
            updates["username"] = username
        if email:
            updates["email"] = email
        if updates:
            self._update_account(key, **updates)

    def set_usage(self, key: str, usage_bytes: int) -> None:
        self._update_account(key, usage_bytes=usage_bytes)

    def set_lock(self, key: str, locked: bool, unlock_code: Optional[str]) -> None:
        self._update_account(key, locked=locked, unlock_code=unlock_code)

    def add_diary_entry(self, key: str, entry: DiaryEntry) -> str:
        entry_id = get_unique_id()
        with _sql_call("write"), self.Session() as session:
            session.add(
                DiaryRow(
                    id=entry_id,
                    account_key=key,
                    text=entry.text,
                    timestamp=entry.timestamp,
                )
            )
            session.commit()
        self.subscribers.notify(key)
        return entry_id

    def update_diary_entry(self, key: str, entry_id: str, entry: DiaryEntry) -> None:
        with _sql_call("update"), self.Session() as session:
            row = session.get(DiaryRow, entry_id)
            if not row or row.account_key != key:
                return
            row.text = entry.text
            row.timestamp = entry.timestamp
            session.commit()
        self.subscribers.notify(key)

    def get_diary_entry(self, key: str, entry_id: str) -> Optional[DiaryEntry]:
        with _sql_call("read"), self.Session() as session:
            row = session.get(DiaryRow, entry_id)
            if not row or row.account_key != key:
                return None
            return self._to_diary_entry(row)

    def list_diary_entries(self, key: str) -> Dict[str, DiaryEntry]:
        with _sql_call("read"), self.Session() as session:
            stmt = (
                select(DiaryRow)
                .where(DiaryRow.account_key == key)
                .order_by(DiaryRow.timestamp.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return {row.id: self._to_diary_entry(row) for row in rows}

    def delete_diary_entry(self, key: str, entry_id: str) -> None:
        with _sql_call("delete"), self.Session() as session:
            row = session.get(DiaryRow, entry_id)
            if row and row.account_key == key:
                session.delete(row)
                session.commit()
        self.subscribers.notify(key)

    def add_file(self, key: str, record: StoredFile) -> str:
        file_id = get_unique_id()
        with _sql_call("write"), self.Session() as session:
            session.add(
                FileRow(
                    id=file_id,
                    account_key=key,
                    name=record.name,
                    size=record.size,
                    url=record.url,
                    timestamp=record.timestamp,
                    type=record.type,
                )
            )
            session.commit()
        self.subscribers.notify(key)
        return file_id

    def get_file(self, key: str, file_id: str) -> Optional[StoredFile]:
        with _sql_call("read"), self.Session() as session:
            row = session.get(FileRow, file_id)
            if not row or row.account_key != key:
                return None
            return self._to_stored_file(row)

    def list_files(self, key: str) -> Dict[str, StoredFile]:
        with _sql_call("read"), self.Session() as session:
            stmt = (
                select(FileRow)
                .where(FileRow.account_key == key)
                .order_by(FileRow.timestamp.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return {row.id: self._to_stored_file(row) for row in rows}

    def delete_file(self, key: str, file_id: str) -> None:
        with _sql_call("delete"), self.Session() as session:
            row = session.get(FileRow, file_id)
            if row and row.account_key == key:
                session.delete(row)
                session.commit()
        self.subscribers.notify(key)

    def subscribe(self, key: str, listener: AccountListener) -> Unsubscribe:
        return self.subscribers.subscribe(key, listener)


Base = declarative_base()


class AccountRow(Base):
    __tablename__ = "accounts"

    key = Column(String, primary_key=True)
    created_at = Column(BigInteger, nullable=False)
    usage_bytes = Column(BigInteger, nullable=False, default=0)
    tier = Column(String, nullable=False, default=AccountTier.BASE.value)
    username = Column(String, nullable=True)
    email = Column(String, nullable=True)
    locked = Column(Boolean, nullable=False, default=False)
    unlock_code = Column(String, nullable=True)


class DiaryRow(Base):
    __tablename__ = "diary_entries"

    id = Column(String, primary_key=True)
    account_key = Column(String, nullable=False, index=True)
    text = Column(Text, nullable=False)
    timestamp = Column(BigInteger, nullable=True)


class FileRow(Base):
    __tablename__ = "stored_files"

    id = Column(String, primary_key=True)
    account_key = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    size = Column(BigInteger, nullable=False)
    url = Column(String, nullable=False)
    timestamp = Column(BigInteger, nullable=True)
    type = Column(String, nullable=False)
