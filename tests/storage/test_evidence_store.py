"""Tests for the filesystem evidence store and signed download URLs."""

import logging
from urllib.parse import parse_qs, urlsplit
from uuid import UUID

import pytest

from isms.models.common import new_uuid7
from isms.storage.evidence_store import EvidenceStore
from isms.workflow.errors import StorageError


@pytest.fixture
def store(tmp_path) -> EvidenceStore:
    return EvidenceStore(str(tmp_path), secret="s3cret", ttl_seconds=60)


class TestUpload:
    def test_key_is_owner_scoped_per_upload(self, store) -> None:
        owner = new_uuid7()
        stored = store.upload(owner_id=owner, filename="report.pdf", content=b"data",
                              mime_type="application/pdf")
        prefix, upload_id, name = stored.storage_key.split("/")
        assert prefix == str(owner)
        assert UUID(upload_id).version == 7
        assert name == "report.pdf"
        assert stored.size_bytes == 4
        assert stored.hash_sha256.startswith("sha256:")

    def test_same_name_uploads_do_not_collide(self, store) -> None:
        owner = new_uuid7()
        first = store.upload(owner_id=owner, filename="scan.png", content=b"first",
                             mime_type="image/png")
        second = store.upload(owner_id=owner, filename="scan.png", content=b"second",
                              mime_type="image/png")
        assert first.storage_key != second.storage_key

        store.delete(first.storage_key)
        assert store.retrieve(second.storage_key) == b"second"
        with pytest.raises(StorageError):
            store.retrieve(first.storage_key)

    def test_upload_and_delete_are_logged(self, store, caplog) -> None:
        caplog.set_level(logging.INFO, logger="isms.storage.evidence_store")
        stored = store.upload(owner_id=new_uuid7(), filename="a.txt", content=b"abc",
                              mime_type="text/plain")
        store.delete(stored.storage_key)
        messages = [r.getMessage() for r in caplog.records]
        assert f"Stored evidence file {stored.storage_key} (3 bytes)" in messages
        assert f"Deleted evidence file {stored.storage_key}" in messages

    def test_directory_components_are_stripped(self, store) -> None:
        stored = store.upload(owner_id=new_uuid7(), filename="../../etc/passwd",
                              content=b"x", mime_type="text/plain")
        assert stored.file_name == "passwd"
        assert store.retrieve(stored.storage_key) == b"x"

    def test_empty_file_is_rejected(self, store) -> None:
        with pytest.raises(StorageError):
            store.upload(owner_id=new_uuid7(), filename="a.txt", content=b"",
                         mime_type="text/plain")


class TestRetrieveDelete:
    def test_missing_file(self, store) -> None:
        with pytest.raises(StorageError):
            store.retrieve(f"{new_uuid7()}/1-missing.txt")

    def test_traversal_key_is_rejected(self, store) -> None:
        with pytest.raises(StorageError):
            store.retrieve("../outside.txt")

    def test_delete_is_idempotent(self, store) -> None:
        stored = store.upload(owner_id=new_uuid7(), filename="a.txt", content=b"x",
                              mime_type="text/plain")
        store.delete(stored.storage_key)
        store.delete(stored.storage_key)
        with pytest.raises(StorageError):
            store.retrieve(stored.storage_key)


class TestSignedUrls:
    def test_signed_url_verifies_until_expiry(self, store) -> None:
        key = f"{new_uuid7()}/1-a.txt"
        url = store.signed_url(key, now=1_000_000)
        parts = urlsplit(url)
        assert parts.path == f"/v1/evidence-files/{key}"
        query = parse_qs(parts.query)
        expires = int(query["expires"][0])
        signature = query["signature"][0]

        assert expires == 1_000_060
        assert store.verify(key, expires, signature, now=1_000_030) is True
        assert store.verify(key, expires, signature, now=1_000_061) is False

    def test_tampered_signature_or_key_fails(self, store) -> None:
        key = f"{new_uuid7()}/1-a.txt"
        query = parse_qs(urlsplit(store.signed_url(key, now=0)).query)
        expires = int(query["expires"][0])
        assert store.verify(key, expires, "0" * 64, now=0) is False
        assert store.verify(key + "x", expires, query["signature"][0], now=0) is False

    def test_other_secret_does_not_verify(self, store, tmp_path) -> None:
        key = f"{new_uuid7()}/1-a.txt"
        query = parse_qs(urlsplit(store.signed_url(key, now=0)).query)
        other = EvidenceStore(str(tmp_path), secret="different")
        assert other.verify(key, int(query["expires"][0]), query["signature"][0], now=0) is False
