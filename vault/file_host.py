"""
External file host client (catbox-compatible) and an in-memory test double.

The host takes a multipart upload and answers with the retrieval URL as plain
text. The same client fetches user-supplied URLs for URL-based ingestion.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import unquote, urlsplit

import requests

from shared.constants import DEFAULT_MIME_TYPE, UNTITLED_FILE_NAME
from shared.utils import get_unique_id
from vault.errors import (
    FileHostError,
    RemoteFetchError,
    RemoteFileTooLarge,
    UpstreamUnavailable,
)

REQUEST_TIMEOUT = 30  # seconds
FETCH_CHUNK_BYTES = 64 * 1024


@dataclass
class FetchedFile:
    name: str
    content: bytes
    content_type: str = DEFAULT_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


class FileHostClient(Protocol):
    """Defines the operations the service needs from the external file host."""

    def upload(self, name: str, content: bytes, content_type: str) -> str:
        ...

    def fetch(self, url: str, max_bytes: int | None = None) -> FetchedFile:
        ...


def file_name_from_url(url: str) -> str:
    """Last path segment of `url`, ignoring query and fragment."""
    path = urlsplit(url).path
    name = unquote(posixpath.basename(path))
    return name or UNTITLED_FILE_NAME


@dataclass
class InMemoryFileHost:
    """Test double for file host interactions."""

    base_url: str = "https://files.example.test"
    stored_objects: dict = field(default_factory=dict)
    remote_objects: dict = field(default_factory=dict)

    def upload(self, name: str, content: bytes, content_type: str) -> str:
        ext = posixpath.splitext(name)[1]
        url = f"{self.base_url}/{get_unique_id()}{ext}"
        self.stored_objects[url] = content
        return url

    def fetch(self, url: str, max_bytes: int | None = None) -> FetchedFile:
        remote = self.remote_objects.get(url)
        if remote is None:
            raise RemoteFetchError(url, 404)
        content, content_type = remote
        if max_bytes is not None and len(content) > max_bytes:
            raise RemoteFileTooLarge(url, max_bytes)
        return FetchedFile(
            name=file_name_from_url(url), content=content, content_type=content_type
        )


@dataclass
class CatboxFileHost:
    """
    Client for catbox.moe style hosts (POST reqtype=fileupload).
    """

    api_url: str
    userhash: str | None = None
    timeout: float = REQUEST_TIMEOUT

    def upload(self, name: str, content: bytes, content_type: str) -> str:
        data = {"reqtype": "fileupload"}
        if self.userhash:
            data["userhash"] = self.userhash
        try:
            response = requests.post(
                self.api_url,
                data=data,
                files={"fileToUpload": (name, content, content_type)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FileHostError(f"File host upload failed: {e}") from e

        if not response.ok:
            raise FileHostError(
                f"File host upload failed: HTTP {response.status_code} {response.reason}"
            )
        text = response.text.strip()
        if not text.startswith("http"):
            raise FileHostError(f"Unexpected file host response: {text[:200]!r}")
        return text

    def fetch(self, url: str, max_bytes: int | None = None) -> FetchedFile:
        """
        Stream `url` into memory, giving up as soon as more than `max_bytes`
        arrive (or a larger Content-Length is announced).
        """
        try:
            response = requests.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Fetching {url} failed: {e}") from e

        try:
            if not response.ok:
                raise RemoteFetchError(url, response.status_code)
            declared = response.headers.get("Content-Length", "")
            if max_bytes is not None and declared.isdigit() and int(declared) > max_bytes:
                raise RemoteFileTooLarge(url, max_bytes)

            content = bytearray()
            for chunk in response.iter_content(chunk_size=FETCH_CHUNK_BYTES):
                content.extend(chunk)
                if max_bytes is not None and len(content) > max_bytes:
                    raise RemoteFileTooLarge(url, max_bytes)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Reading {url} failed: {e}") from e
        finally:
            response.close()

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        return FetchedFile(
            name=file_name_from_url(url),
            content=bytes(content),
            content_type=content_type or DEFAULT_MIME_TYPE,
        )
