"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends, Header

from vault.config import get_settings
from vault.db import DbClient, FirebaseDbClient, InMemoryDbClient, SqlDbClient
from vault.file_host import CatboxFileHost, FileHostClient, InMemoryFileHost
from vault.session import SessionContext

_db_client: DbClient | None = None
_file_host: FileHostClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so account state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _db_client = InMemoryDbClient()
    elif settings.firebase_database_url:
        _db_client = FirebaseDbClient(
            settings.firebase_database_url,
            credentials_path=settings.firebase_credentials_path,
        )
    elif settings.database_url:
        _db_client = SqlDbClient(settings.database_url)
    else:
        _db_client = InMemoryDbClient()
    return _db_client


def get_file_host() -> FileHostClient:
    global _file_host
    if _file_host:
        return _file_host

    settings = get_settings()
    if settings.use_in_memory_backends:
        _file_host = InMemoryFileHost()
    else:
        _file_host = CatboxFileHost(
            api_url=settings.file_host_url,
            userhash=settings.file_host_userhash,
            timeout=settings.request_timeout_seconds,
        )
    return _file_host


def get_session(
    x_account_id: str = Header(default=""),
    db: DbClient = Depends(get_db_client),
    file_host: FileHostClient = Depends(get_file_host),
) -> SessionContext:
    """
    Build the request-scoped session for the caller named by X-Account-Id.

    The identifier is validated by the operation, not here, so a bad header
    comes back in the uniform result shape.
    """
    return SessionContext(identifier=x_account_id, db=db, file_host=file_host)
