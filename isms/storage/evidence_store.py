"""Evidence attachment storage.

Local filesystem backend. Files live under
``<root>/<boundary_control_or_control_id>/<uuid7>/<filename>``, one
directory per upload so equal file names never share a path. The storage
key (relative path) is what the evidence row records.

Downloads go through short-lived signed URLs: the signature is an
HMAC-SHA256 over ``key`` and ``expires`` with ``EVIDENCE_URL_SECRET``.
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, urlencode
from uuid import UUID

from isms.models.common import new_uuid7
from isms.workflow.errors import StorageError

logger = logging.getLogger(__name__)

DOWNLOAD_PATH = "/v1/evidence-files"


@dataclass(frozen=True)
class StoredFile:
    storage_key: str
    file_name: str
    file_type: str
    size_bytes: int
    hash_sha256: str


class EvidenceStore:
    """Stores, signs and removes evidence files."""

    def __init__(self, storage_root: str, secret: str, ttl_seconds: int = 300) -> None:
        self._root = Path(storage_root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._secret = secret.encode()
        self._ttl = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def _path(self, storage_key: str) -> Path:
        path = (self._root / storage_key).resolve()
        if not path.is_relative_to(self._root) or path == self._root:
            raise StorageError(f"Invalid storage key: {storage_key}")
        return path

    def upload(self, *, owner_id: UUID, filename: str, content: bytes,
               mime_type: str) -> StoredFile:
        """Write ``content`` and return its storage metadata.

        ``owner_id`` is the boundary control id when there is one, else the
        control id.
        """
        if len(content) == 0:
            raise StorageError("Evidence file must not be empty.")
        safe_name = Path(filename).name or "evidence"
        storage_key = f"{owner_id}/{new_uuid7()}/{safe_name}"
        dest = self._path(storage_key)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(content)
        except OSError as exc:
            raise StorageError(f"Failed to upload file: {exc}") from exc
        logger.info("Stored evidence file %s (%d bytes)", storage_key, len(content))
        return StoredFile(
            storage_key=storage_key,
            file_name=safe_name,
            file_type=mime_type,
            size_bytes=len(content),
            hash_sha256=f"sha256:{hashlib.sha256(content).hexdigest()}",
        )

    def retrieve(self, storage_key: str) -> bytes:
        path = self._path(storage_key)
        if not path.is_file():
            raise StorageError(f"Evidence file not found: {storage_key}")
        return path.read_bytes()

    def delete(self, storage_key: str) -> None:
        path = self._path(storage_key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete file: {exc}") from exc
        logger.info("Deleted evidence file %s", storage_key)

    # --- Signed download URLs ---

    def _signature(self, storage_key: str, expires: int) -> str:
        message = f"{storage_key}:{expires}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def signed_url(self, storage_key: str, now: float | None = None) -> str:
        """Download URL valid for ``ttl_seconds`` from ``now``."""
        self._path(storage_key)
        expires = int((now if now is not None else time.time()) + self._ttl)
        query = urlencode({"expires": expires, "signature": self._signature(storage_key, expires)})
        return f"{DOWNLOAD_PATH}/{quote(storage_key)}?{query}"

    def verify(self, storage_key: str, expires: int, signature: str,
               now: float | None = None) -> bool:
        if expires < (now if now is not None else time.time()):
            logger.debug("Expired download link for %s", storage_key)
            return False
        valid = hmac.compare_digest(self._signature(storage_key, expires), signature)
        if not valid:
            logger.warning("Rejected download signature for %s", storage_key)
        return valid
