"""
HTTP routes for the storage API.

Routes only translate HTTP into operation calls. Every body is an
OperationResponse; the status code mirrors the error kind.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Response, UploadFile

from shared.constants import MAX_INLINE_UPLOAD_BYTES
from shared.types import ItemKind
from vault import accounts, items, sharing
from vault.db import DbClient
from vault.dependencies import get_db_client, get_session
from vault.errors import ErrorKind
from vault.results import OperationResult
from vault.schemas import (
    DiaryEntryRequest,
    LoginOrCreateRequest,
    LoginRequest,
    OperationResponse,
    ShareCodeRequest,
    ShareExportRequest,
    UnlockRequest,
    UrlUploadRequest,
)
from vault.session import SessionContext

router = APIRouter()

STATUS_BY_ERROR = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.MALFORMED_INPUT: 400,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.QUOTA_EXCEEDED: 507,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
}


def _respond(result: OperationResult, response: Response) -> OperationResponse:
    if result.error:
        response.status_code = STATUS_BY_ERROR[result.error]
    return OperationResponse(**result.as_dict())


@router.post("/login", response_model=OperationResponse)
def login(
    payload: LoginRequest, response: Response, db: DbClient = Depends(get_db_client)
):
    return _respond(accounts.login(db, payload.identifier), response)


@router.post("/accounts", response_model=OperationResponse)
def login_or_create(
    payload: LoginOrCreateRequest,
    response: Response,
    db: DbClient = Depends(get_db_client),
):
    result = accounts.login_or_create(
        db, payload.identifier, username=payload.username, email=payload.email
    )
    return _respond(result, response)


@router.get("/account", response_model=OperationResponse)
def account_snapshot(
    response: Response, session: SessionContext = Depends(get_session)
):
    return _respond(accounts.get_snapshot(session), response)


@router.post("/account/lock", response_model=OperationResponse)
def lock_account(response: Response, session: SessionContext = Depends(get_session)):
    return _respond(accounts.lock_account(session), response)


@router.post("/account/unlock", response_model=OperationResponse)
def unlock_account(
    payload: UnlockRequest, response: Response, db: DbClient = Depends(get_db_client)
):
    result = accounts.unlock_account(db, payload.identifier, payload.unlock_code)
    return _respond(result, response)


@router.post("/diary", response_model=OperationResponse)
def save_diary_entry(
    payload: DiaryEntryRequest,
    response: Response,
    session: SessionContext = Depends(get_session),
):
    return _respond(items.save_diary_entry(session, payload.text), response)


@router.put("/diary/{entry_id}", response_model=OperationResponse)
def update_diary_entry(
    entry_id: str,
    payload: DiaryEntryRequest,
    response: Response,
    session: SessionContext = Depends(get_session),
):
    result = items.update_diary_entry(session, entry_id, payload.text)
    return _respond(result, response)


@router.delete("/diary/{entry_id}", response_model=OperationResponse)
def delete_diary_entry(
    entry_id: str, response: Response, session: SessionContext = Depends(get_session)
):
    result = items.delete_item(session, ItemKind.DIARY.value, entry_id)
    return _respond(result, response)


@router.post("/files", response_model=OperationResponse)
async def upload_file(
    response: Response,
    file: UploadFile = File(...),
    session: SessionContext = Depends(get_session),
):
    # At most one byte past the inline ceiling.
    content = await file.read(MAX_INLINE_UPLOAD_BYTES + 1)
    result = items.upload_file(session, file.filename, content, file.content_type)
    return _respond(result, response)


@router.post("/files/from-url", response_model=OperationResponse)
def upload_file_from_url(
    payload: UrlUploadRequest,
    response: Response,
    session: SessionContext = Depends(get_session),
):
    return _respond(items.upload_file_from_url(session, payload.url), response)


@router.delete("/files/{file_id}", response_model=OperationResponse)
def delete_file(
    file_id: str, response: Response, session: SessionContext = Depends(get_session)
):
    result = items.delete_item(session, ItemKind.FILES.value, file_id)
    return _respond(result, response)


@router.post("/share", response_model=OperationResponse)
def export_share_code(
    payload: ShareExportRequest,
    response: Response,
    session: SessionContext = Depends(get_session),
):
    result = sharing.export_share_code(
        session, diary_ids=payload.diary_ids, file_ids=payload.file_ids
    )
    return _respond(result, response)


@router.post("/share/preview", response_model=OperationResponse)
def preview_share_code(payload: ShareCodeRequest, response: Response):
    return _respond(sharing.preview_share_code(payload.code), response)


@router.post("/share/import", response_model=OperationResponse)
def import_share_code(
    payload: ShareCodeRequest,
    response: Response,
    session: SessionContext = Depends(get_session),
):
    return _respond(sharing.import_share_code(session, payload.code), response)
