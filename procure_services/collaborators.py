"""
Outbound collaborator ports: rendering and file storage.

The engine never produces bytes for presentation and never keeps files; it
hands a document to a ``DocumentRenderer`` and uploads to a ``FileStore``,
keeping only the returned url.  ``InMemoryFileStore`` backs tests and
embedded use.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Protocol, runtime_checkable

from procure_kernel.domain.documents import DocumentBase


@runtime_checkable
class DocumentRenderer(Protocol):
    """Produces a printable representation (PDF, HTML...) of a document."""

    def render(self, document: DocumentBase) -> bytes:
        ...


@runtime_checkable
class FileStore(Protocol):
    """Stores an uploaded file and returns a url for it."""

    def store(self, data: bytes, content_type: str) -> str:
        ...


class InMemoryFileStore:
    """Content-addressed dict store; the url is ``memory://<sha256>``."""

    def __init__(self) -> None:
        self._files: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def store(self, data: bytes, content_type: str) -> str:
        url = f"memory://{hashlib.sha256(data).hexdigest()}"
        with self._lock:
            self._files[url] = (bytes(data), content_type)
        return url

    def get(self, url: str) -> tuple[bytes, str]:
        return self._files[url]

    def __len__(self) -> int:
        return len(self._files)
