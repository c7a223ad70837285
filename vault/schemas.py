"""
Pydantic schemas for the storage API.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    identifier: str = Field(..., max_length=16)


class LoginOrCreateRequest(BaseModel):
    identifier: str = Field(..., max_length=16)
    username: Optional[str] = Field(default=None, max_length=128)
    email: Optional[str] = Field(default=None, max_length=256)


class UnlockRequest(BaseModel):
    identifier: str = Field(..., max_length=16)
    unlock_code: str = Field(..., max_length=16)


class DiaryEntryRequest(BaseModel):
    text: str


class UrlUploadRequest(BaseModel):
    url: str = Field(..., max_length=2048)


class ShareExportRequest(BaseModel):
    diary_ids: list[str] = Field(default_factory=list)
    file_ids: list[str] = Field(default_factory=list)


class ShareCodeRequest(BaseModel):
    code: str


class OperationResponse(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None
    data: dict = Field(default_factory=dict)
