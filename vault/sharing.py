"""
Share codes: export a selection of diary entries and file records as a
pasteable string, and replay one into another account.

A share code is standard base64 over compact UTF-8 JSON of
{"diary": [...], "files": [...]}. It is not encrypted or signed; anyone
holding it can read it.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Iterable

from dacite import Config, DaciteError, from_dict

from shared.types import SharePayload
from vault.errors import ErrorKind, OperationError
from vault.items import register_file, save_diary_entry
from vault.results import OperationResult, operation
from vault.session import SessionContext

logger = logging.getLogger(__name__)

MALFORMED_CODE_MESSAGE = "The share code is malformed or invalid."


class MalformedShareCode(ValueError):
    pass


def _is_bool(value) -> bool:
    return isinstance(value, bool)


def encode_share_code(payload: SharePayload) -> str:
    text = json.dumps(payload.to_dict(), separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_share_code(code: str) -> SharePayload:
    """
    Reverse `encode_share_code` and check the payload shape.

    Raises:
        MalformedShareCode: if the code is not base64, not UTF-8 JSON, or the
            JSON is not a diary/files payload.
    """
    compact = "".join((code or "").split())
    if not compact:
        raise MalformedShareCode("Empty share code")
    try:
        raw = base64.b64decode(compact, validate=True)
        parsed = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError) as e:
        raise MalformedShareCode(f"Undecodable share code: {e}") from e

    if not isinstance(parsed, dict) or not ({"diary", "files"} & parsed.keys()):
        raise MalformedShareCode("Share code has no diary or files collection")
    try:
        payload = from_dict(data_class=SharePayload, data=parsed, config=Config())
    except DaciteError as e:
        raise MalformedShareCode(f"Unexpected share payload shape: {e}") from e
    # JSON booleans pass dacite's int check.
    if any(_is_bool(entry.timestamp) for entry in payload.diary) or any(
        _is_bool(record.size) or _is_bool(record.timestamp) for record in payload.files
    ):
        raise MalformedShareCode("Sizes and timestamps must be integers")
    if any(record.size < 0 for record in payload.files):
        raise MalformedShareCode("File size cannot be negative")
    return payload


def _select(items: dict, ids: Iterable[str]) -> list:
    return [items[item_id] for item_id in dict.fromkeys(ids) if item_id in items]


@operation("Export Share Code")
def export_share_code(
    session: SessionContext,
    diary_ids: Iterable[str] = (),
    file_ids: Iterable[str] = (),
) -> OperationResult:
    diary_ids = list(diary_ids or [])
    file_ids = list(file_ids or [])
    if not diary_ids and not file_ids:
        raise OperationError(
            ErrorKind.VALIDATION, "Please select at least one item to share."
        )

    session.load_account()
    payload = SharePayload(
        diary=_select(session.db.list_diary_entries(session.key), diary_ids)
        if diary_ids
        else [],
        files=_select(session.db.list_files(session.key), file_ids)
        if file_ids
        else [],
    )
    if payload.is_empty:
        raise OperationError(
            ErrorKind.NOT_FOUND, "None of the selected items were found."
        )

    return OperationResult.ok(
        "Share code generated.",
        share_code=encode_share_code(payload),
        diary_count=len(payload.diary),
        files_count=len(payload.files),
    )


@operation("Preview Share Code")
def preview_share_code(code: str) -> OperationResult:
    try:
        payload = decode_share_code(code)
    except MalformedShareCode as e:
        logger.info("Rejected share code: %s", e)
        raise OperationError(ErrorKind.MALFORMED_INPUT, MALFORMED_CODE_MESSAGE) from e
    return OperationResult.ok("Share code is valid.", **payload.to_dict())


@operation("Import Share Code")
def import_share_code(session: SessionContext, code: str) -> OperationResult:
    """
    Replay every item of a share code as a fresh create under the session's
    account. Items are imported one at a time; a failure (quota, upstream)
    does not undo the items already imported.
    """
    session.load_account()
    try:
        payload = decode_share_code(code)
    except MalformedShareCode as e:
        logger.info("Rejected share code: %s", e)
        raise OperationError(ErrorKind.MALFORMED_INPUT, MALFORMED_CODE_MESSAGE) from e

    failures: list[str] = []
    diary_imported = 0
    for entry in payload.diary:
        result = save_diary_entry(session, entry.text)
        if result.success:
            diary_imported += 1
        else:
            failures.append(f"Diary entry: {result.message}")

    files_imported = 0
    for record in payload.files:
        result = register_file(session, record)
        if result.success:
            files_imported += 1
        else:
            failures.append(f"{record.name}: {result.message}")

    message = f"Imported {diary_imported} diary entries and {files_imported} files."
    if failures:
        message += f" {len(failures)} item(s) could not be imported."
        logger.warning(
            "Partial import for %s: %d failures", session.account_id, len(failures)
        )
    return OperationResult.ok(
        message,
        diary_imported=diary_imported,
        diary_failed=len(payload.diary) - diary_imported,
        files_imported=files_imported,
        files_failed=len(payload.files) - files_imported,
        failures=failures,
    )
