import unittest
from unittest.mock import patch

from shared.constants import ONE_GB, ONE_MB
from shared.types import Account, AccountTier, DiaryEntry, StoredFile
from vault.accounts import login_or_create
from vault.db import InMemoryDbClient
from vault.errors import ErrorKind, FileHostError, UpstreamUnavailable
from vault.file_host import InMemoryFileHost
from vault.items import (
    delete_item,
    register_file,
    save_diary_entry,
    update_diary_entry,
    upload_file,
    upload_file_from_url,
)
from vault.session import SessionContext

REMOTE_URL = "https://example.org/media/big.bin?download=1"


class ItemOperationTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.host = InMemoryFileHost()
        self.session = SessionContext(identifier="123456", db=self.db, file_host=self.host)
        result = login_or_create(self.db, "123456", username="ann")
        self.assertTrue(result.success)

    def usage(self) -> int:
        return self.db.get_account("123456").usage_bytes

    def test_inline_ceiling_and_url_path(self):
        content = b"x" * 2_000_000
        inline = upload_file(self.session, "big.bin", content, "application/octet-stream")
        self.assertFalse(inline.success)
        self.assertEqual(inline.error, ErrorKind.VALIDATION)
        self.assertEqual(self.usage(), 0)

        self.host.remote_objects[REMOTE_URL] = (content, "application/octet-stream")
        via_url = upload_file_from_url(self.session, REMOTE_URL)
        self.assertTrue(via_url.success, via_url.message)
        self.assertEqual(self.usage(), 2_000_000)

        file_id = via_url.data["file_id"]
        record = self.db.get_file("123456", file_id)
        self.assertEqual(record.name, "big.bin")
        self.assertEqual(record.size, 2_000_000)
        self.assertIn(record.url, self.host.stored_objects)

        deleted = delete_item(self.session, "files", file_id)
        self.assertTrue(deleted.success)
        self.assertEqual(self.usage(), 0)
        self.assertIsNone(self.db.get_file("123456", file_id))

    def test_upload_adds_size_to_usage(self):
        result = upload_file(self.session, "a.txt", b"hello", "text/plain")
        self.assertTrue(result.success)
        self.assertEqual(self.usage(), 5)
        result = upload_file(self.session, "b.txt", b"x" * ONE_MB, "text/plain")
        self.assertTrue(result.success)
        self.assertEqual(self.usage(), 5 + ONE_MB)

    def test_upload_rejects_empty_file(self):
        result = upload_file(self.session, "empty.txt", b"", "text/plain")
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.VALIDATION)

    def test_upload_over_quota_leaves_usage_unchanged(self):
        self.db.set_usage("123456", ONE_GB - 3)
        result = upload_file(self.session, "a.txt", b"four", "text/plain")
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.QUOTA_EXCEEDED)
        self.assertEqual(self.usage(), ONE_GB - 3)
        self.assertEqual(self.db.list_files("123456"), {})
        self.assertEqual(self.host.stored_objects, {})

    def test_url_upload_capped_by_remaining_quota(self):
        self.db.set_usage("123456", ONE_GB - 3)
        self.host.remote_objects[REMOTE_URL] = (b"four", "text/plain")
        with patch.object(self.host, "fetch", wraps=self.host.fetch) as fetch:
            result = upload_file_from_url(self.session, REMOTE_URL)
        fetch.assert_called_once_with(REMOTE_URL, max_bytes=3)
        self.assertEqual(result.error, ErrorKind.QUOTA_EXCEEDED)
        self.assertEqual(self.usage(), ONE_GB - 3)
        self.assertEqual(self.host.stored_objects, {})

    def test_premium_tier_has_more_room(self):
        self.db.create_account(
            "654321",
            Account(created_at=1, usage_bytes=ONE_GB, tier=AccountTier.PREMIUM),
        )
        session = SessionContext(identifier="654321", db=self.db, file_host=self.host)
        result = upload_file(session, "a.txt", b"data", "text/plain")
        self.assertTrue(result.success)

    def test_delete_clamps_usage_at_zero(self):
        file_id = self.db.add_file(
            "123456", StoredFile(name="a", size=500, url="https://h/a", timestamp=1)
        )
        self.db.set_usage("123456", 100)
        result = delete_item(self.session, "files", file_id)
        self.assertTrue(result.success)
        self.assertEqual(self.usage(), 0)

    def test_delete_unknown_item(self):
        result = delete_item(self.session, "files", "missing")
        self.assertEqual(result.error, ErrorKind.NOT_FOUND)
        result = delete_item(self.session, "photos", "x")
        self.assertEqual(result.error, ErrorKind.VALIDATION)

    def test_diary_save_update_delete(self):
        saved = save_diary_entry(self.session, "first")
        self.assertTrue(saved.success)
        entry_id = saved.data["entry_id"]

        updated = update_diary_entry(self.session, entry_id, "second")
        self.assertTrue(updated.success)
        self.assertEqual(self.db.get_diary_entry("123456", entry_id).text, "second")

        self.assertEqual(
            update_diary_entry(self.session, "nope", "x").error, ErrorKind.NOT_FOUND
        )
        self.assertTrue(delete_item(self.session, "diary", entry_id).success)
        self.assertEqual(self.db.list_diary_entries("123456"), {})
        self.assertEqual(self.usage(), 0)

    def test_diary_rejected_when_quota_is_full(self):
        self.db.set_usage("123456", ONE_GB)
        result = save_diary_entry(self.session, "no room")
        self.assertEqual(result.error, ErrorKind.QUOTA_EXCEEDED)
        self.assertEqual(self.db.list_diary_entries("123456"), {})

    def test_diary_requires_text(self):
        self.assertEqual(save_diary_entry(self.session, "  ").error, ErrorKind.VALIDATION)

    def test_locked_account_rejects_every_mutation(self):
        file_id = self.db.add_file(
            "123456", StoredFile(name="a", size=1, url="https://h/a", timestamp=1)
        )
        entry_id = self.db.add_diary_entry(
            "123456", DiaryEntry(text="kept", timestamp=1)
        )
        self.db.set_lock("123456", True, "1234")
        self.host.remote_objects[REMOTE_URL] = (b"abc", "text/plain")

        results = [
            save_diary_entry(self.session, "text"),
            update_diary_entry(self.session, entry_id, "text"),
            upload_file(self.session, "a.txt", b"abc", "text/plain"),
            upload_file_from_url(self.session, REMOTE_URL),
            register_file(
                self.session, StoredFile(name="r", size=1, url="https://h/r")
            ),
            delete_item(self.session, "files", file_id),
            delete_item(self.session, "diary", entry_id),
        ]
        for result in results:
            self.assertFalse(result.success)
            self.assertEqual(result.error, ErrorKind.ACCESS_DENIED)
        self.assertEqual(len(self.db.list_files("123456")), 1)
        self.assertEqual(len(self.db.list_diary_entries("123456")), 1)

    def test_missing_account_is_not_found(self):
        session = SessionContext(identifier="999999", db=self.db, file_host=self.host)
        self.assertEqual(save_diary_entry(session, "x").error, ErrorKind.NOT_FOUND)

    def test_invalid_identifier_is_validation_error(self):
        session = SessionContext(identifier="12ab", db=self.db, file_host=self.host)
        self.assertEqual(save_diary_entry(session, "x").error, ErrorKind.VALIDATION)

    def test_url_upload_reports_unreachable_resource(self):
        result = upload_file_from_url(self.session, "https://example.org/gone.png")
        self.assertEqual(result.error, ErrorKind.NOT_FOUND)
        for bad_url in ["ftp://example.org/x", "http://[::1/x", "not a url"]:
            with self.subTest(url=bad_url):
                result = upload_file_from_url(self.session, bad_url)
                self.assertFalse(result.success)
                self.assertEqual(result.error, ErrorKind.VALIDATION)

    def test_file_host_failure_is_upstream_error(self):
        with patch.object(
            self.host, "upload", side_effect=FileHostError("HTTP 500")
        ):
            result = upload_file(self.session, "a.txt", b"abc", "text/plain")
        self.assertEqual(result.error, ErrorKind.UPSTREAM_UNAVAILABLE)
        self.assertEqual(self.usage(), 0)
        self.assertEqual(self.db.list_files("123456"), {})

    def test_database_failure_is_upstream_error(self):
        with patch.object(
            self.db, "get_account", side_effect=UpstreamUnavailable("down")
        ):
            result = save_diary_entry(self.session, "text")
        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.UPSTREAM_UNAVAILABLE)
        self.assertIn("try again", result.message)

    def test_register_file_points_at_existing_url(self):
        result = register_file(
            self.session,
            StoredFile(name="pic.png", size=42, url="https://files/pic.png", type="image/png"),
        )
        self.assertTrue(result.success)
        record = self.db.get_file("123456", result.data["file_id"])
        self.assertEqual(record.url, "https://files/pic.png")
        self.assertEqual(record.type, "image/png")
        self.assertEqual(self.usage(), 42)
        self.assertEqual(self.host.stored_objects, {})


if __name__ == "__main__":
    unittest.main()
