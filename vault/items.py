"""
Diary and file operations.

Every write re-reads the account, checks lock and quota, performs the write,
and then writes the recomputed usage back as a separate call.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from shared.constants import DEFAULT_MIME_TYPE, MAX_INLINE_UPLOAD_BYTES, UNTITLED_FILE_NAME
from shared.types import Account, DiaryEntry, ItemKind, StoredFile
from shared.utils import now_ms
from vault.errors import ErrorKind, OperationError, RemoteFetchError, RemoteFileTooLarge
from vault.quota import (
    ensure_quota,
    remaining_bytes,
    usage_after_add,
    usage_after_delete,
)
from vault.results import OperationResult, operation
from vault.session import SessionContext

logger = logging.getLogger(__name__)

DIARY_QUOTA_MESSAGE = "Storage limit exceeded. Cannot save diary entry."
FILE_QUOTA_MESSAGE = (
    "Storage limit exceeded. Please upgrade to premium or delete files."
)
INLINE_TOO_LARGE_MESSAGE = (
    "File is too large. Max 1MB for direct upload. "
    "Please use URL upload for larger files."
)
EMPTY_FILE_MESSAGE = "Cannot upload an empty file."
INVALID_URL_MESSAGE = "A valid http(s) URL is required."


def _store_file_record(
    session: SessionContext, account: Account, record: StoredFile
) -> str:
    """Write the record, then the usage counter. Not atomic."""
    file_id = session.db.add_file(session.key, record)
    session.db.set_usage(session.key, usage_after_add(account, record.size))
    logger.info(
        "Stored %s (%d bytes) for %s", record.name, record.size, session.account_id
    )
    return file_id


@operation("Save Diary")
def save_diary_entry(session: SessionContext, text: str) -> OperationResult:
    if not text or not text.strip():
        raise OperationError(ErrorKind.VALIDATION, "Missing required fields.")
    account = session.load_account()
    ensure_quota(account, 0, DIARY_QUOTA_MESSAGE)
    entry_id = session.db.add_diary_entry(
        session.key, DiaryEntry(text=text, timestamp=now_ms())
    )
    return OperationResult.ok("Diary entry saved.", entry_id=entry_id)


@operation("Update Diary")
def update_diary_entry(
    session: SessionContext, entry_id: str, text: str
) -> OperationResult:
    if not entry_id or not text or not text.strip():
        raise OperationError(
            ErrorKind.VALIDATION, "Missing required fields for update."
        )
    session.load_account()
    if session.db.get_diary_entry(session.key, entry_id) is None:
        raise OperationError(ErrorKind.NOT_FOUND, "Diary entry not found.")
    # The edit time replaces the original timestamp.
    session.db.update_diary_entry(
        session.key, entry_id, DiaryEntry(text=text, timestamp=now_ms())
    )
    return OperationResult.ok("Diary entry updated successfully.", entry_id=entry_id)


@operation("Upload File")
def upload_file(
    session: SessionContext,
    name: str,
    content: bytes,
    content_type: str | None = None,
) -> OperationResult:
    if not content:
        raise OperationError(ErrorKind.VALIDATION, EMPTY_FILE_MESSAGE)
    if len(content) > MAX_INLINE_UPLOAD_BYTES:
        raise OperationError(ErrorKind.VALIDATION, INLINE_TOO_LARGE_MESSAGE)

    account = session.load_account()
    ensure_quota(account, len(content), FILE_QUOTA_MESSAGE)

    name = name or UNTITLED_FILE_NAME
    content_type = content_type or DEFAULT_MIME_TYPE
    url = session.file_host.upload(name, content, content_type)
    file_id = _store_file_record(
        session,
        account,
        StoredFile(
            name=name,
            size=len(content),
            url=url,
            timestamp=now_ms(),
            type=content_type,
        ),
    )
    return OperationResult.ok("File uploaded successfully.", file_id=file_id, url=url)


@operation("Upload from URL")
def upload_file_from_url(session: SessionContext, url: str) -> OperationResult:
    """
    Fetch `url` server-side and re-host it. Bounded only by the account
    quota, not by the inline upload ceiling.
    """
    url = (url or "").strip()
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise OperationError(ErrorKind.VALIDATION, INVALID_URL_MESSAGE) from e
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise OperationError(ErrorKind.VALIDATION, INVALID_URL_MESSAGE)

    account = session.load_account()
    try:
        fetched = session.file_host.fetch(url, max_bytes=remaining_bytes(account))
    except RemoteFetchError as e:
        logger.info("%s", e)
        raise OperationError(
            ErrorKind.NOT_FOUND, "Failed to fetch the file from the provided URL."
        ) from e
    except RemoteFileTooLarge as e:
        logger.info("%s", e)
        raise OperationError(ErrorKind.QUOTA_EXCEEDED, FILE_QUOTA_MESSAGE) from e
    if not fetched.content:
        raise OperationError(ErrorKind.VALIDATION, EMPTY_FILE_MESSAGE)

    ensure_quota(account, fetched.size, FILE_QUOTA_MESSAGE)

    hosted_url = session.file_host.upload(
        fetched.name, fetched.content, fetched.content_type
    )
    file_id = _store_file_record(
        session,
        account,
        StoredFile(
            name=fetched.name,
            size=fetched.size,
            url=hosted_url,
            timestamp=now_ms(),
            type=fetched.content_type,
        ),
    )
    return OperationResult.ok(
        f"File from URL uploaded: {fetched.name}", file_id=file_id, url=hosted_url
    )


@operation("Register File")
def register_file(session: SessionContext, record: StoredFile) -> OperationResult:
    """
    Add a record pointing at an already hosted URL. Charges the recorded
    size against the quota; the binary itself is neither fetched nor copied.
    """
    if not record.url or record.size < 0:
        raise OperationError(ErrorKind.VALIDATION, "A file URL and size are required.")
    account = session.load_account()
    ensure_quota(account, record.size, FILE_QUOTA_MESSAGE)
    file_id = _store_file_record(
        session,
        account,
        StoredFile(
            name=record.name or UNTITLED_FILE_NAME,
            size=record.size,
            url=record.url,
            timestamp=now_ms(),
            type=record.type or DEFAULT_MIME_TYPE,
        ),
    )
    return OperationResult.ok("File registered.", file_id=file_id)


@operation("Delete Item")
def delete_item(session: SessionContext, kind: str, item_id: str) -> OperationResult:
    try:
        item_kind = ItemKind(kind)
    except ValueError:
        raise OperationError(ErrorKind.VALIDATION, f"Unknown item type: {kind}")
    if not item_id:
        raise OperationError(
            ErrorKind.VALIDATION, "Missing required information for deletion."
        )

    account = session.load_account()
    if item_kind == ItemKind.DIARY:
        if session.db.get_diary_entry(session.key, item_id) is None:
            raise OperationError(ErrorKind.NOT_FOUND, "Item not found.")
        session.db.delete_diary_entry(session.key, item_id)
    else:
        record = session.db.get_file(session.key, item_id)
        if record is None:
            raise OperationError(ErrorKind.NOT_FOUND, "Item not found.")
        session.db.set_usage(
            session.key, usage_after_delete(account.usage_bytes, record.size)
        )
        session.db.delete_file(session.key, item_id)
        logger.info(
            "Deleted %s (%d bytes) for %s", record.name, record.size, session.account_id
        )

    return OperationResult.ok("Item deleted successfully.")
