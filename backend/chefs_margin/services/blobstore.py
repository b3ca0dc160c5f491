"""
Chef's Margin - Blob Persistence

Flat key/value store of whole serialized collections. No schema, no
versioning, no transactions across keys.
"""

import logging
from typing import Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from chefs_margin.db.models import Blob

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def put(self, key: str, value: str) -> None:
        ...


class MemoryBlobStore:
    """Dict-backed store used by tests and ephemeral runs."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._blobs: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def put(self, key: str, value: str) -> None:
        self._blobs[key] = value

    def keys(self) -> list[str]:
        return list(self._blobs)


class SqlBlobStore:
    """Blob store on the ``blobs`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            blob = session.get(Blob, key)
            return blob.value if blob else None

    def put(self, key: str, value: str) -> None:
        with self._session_factory() as session:
            self._upsert(session, key, value)
            session.commit()
        logger.debug(f"Saved blob {key} ({len(value)} bytes)")

    @staticmethod
    def _upsert(session: Session, key: str, value: str) -> None:
        blob = session.get(Blob, key)
        if blob is None:
            session.add(Blob(key=key, value=value))
        else:
            blob.value = value
