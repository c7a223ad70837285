import unittest
from unittest.mock import patch

from shared.types import AccountTier, DiaryEntry
from vault.accounts import (
    generate_unlock_code,
    get_snapshot,
    lock_account,
    login,
    login_or_create,
    unlock_account,
)
from vault.db import InMemoryDbClient
from vault.errors import ErrorKind
from vault.file_host import InMemoryFileHost
from vault.session import SessionContext


class AccountLifecycleTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.session = SessionContext(
            identifier="123456", db=self.db, file_host=InMemoryFileHost()
        )

    def test_login_or_create_creates_base_account(self):
        result = login_or_create(self.db, "123456", username="ann", email="a@b.c")
        self.assertTrue(result.success)
        account = self.db.get_account("123456")
        self.assertEqual(account.usage_bytes, 0)
        self.assertEqual(account.tier, AccountTier.BASE)
        self.assertFalse(account.locked)
        self.assertEqual(account.username, "ann")

    def test_special_identifier_gets_own_key_and_tier(self):
        login_or_create(self.db, "123456")
        result = login_or_create(self.db, "#123456")
        self.assertTrue(result.success)
        self.assertEqual(result.data["identifier"], "#123456")
        self.assertEqual(self.db.get_account("123456").tier, AccountTier.BASE)
        self.assertEqual(
            self.db.get_account("special_123456").tier, AccountTier.SPECIAL
        )

    def test_login_or_create_updates_profile_of_existing_account(self):
        login_or_create(self.db, "123456", username="ann")
        login_or_create(self.db, "123456", email="ann@example.com")
        account = self.db.get_account("123456")
        self.assertEqual(account.username, "ann")
        self.assertEqual(account.email, "ann@example.com")

    def test_login_requires_existing_account(self):
        result = login(self.db, "123456")
        self.assertEqual(result.error, ErrorKind.NOT_FOUND)
        login_or_create(self.db, "123456")
        self.assertTrue(login(self.db, "123456").success)

    def test_login_rejects_malformed_identifier(self):
        for raw in ["12345", "1234567", "abcdef", "##12345", ""]:
            result = login(self.db, raw)
            self.assertEqual(result.error, ErrorKind.VALIDATION, raw)

    def test_lock_and_unlock(self):
        login_or_create(self.db, "123456")
        locked = lock_account(self.session)
        self.assertTrue(locked.success)
        code = locked.data["unlock_code"]
        self.assertRegex(code, r"^[0-9]{4}$")

        self.assertEqual(login(self.db, "123456").error, ErrorKind.ACCESS_DENIED)
        self.assertEqual(
            login_or_create(self.db, "123456").error, ErrorKind.ACCESS_DENIED
        )
        self.assertEqual(lock_account(self.session).error, ErrorKind.ACCESS_DENIED)
        self.assertEqual(get_snapshot(self.session).error, ErrorKind.ACCESS_DENIED)

        wrong = "0000" if code != "0000" else "1111"
        rejected = unlock_account(self.db, "123456", wrong)
        self.assertEqual(rejected.error, ErrorKind.ACCESS_DENIED)
        self.assertTrue(self.db.get_account("123456").locked)
        self.assertEqual(self.db.get_account("123456").unlock_code, code)

        padded = unlock_account(self.db, "123456", f" {code} ")
        self.assertEqual(padded.error, ErrorKind.ACCESS_DENIED)
        self.assertTrue(self.db.get_account("123456").locked)

        unlocked = unlock_account(self.db, "123456", code)
        self.assertTrue(unlocked.success)
        account = self.db.get_account("123456")
        self.assertFalse(account.locked)
        self.assertIsNone(account.unlock_code)
        self.assertTrue(login(self.db, "123456").success)

        # The code is single-use.
        self.assertEqual(
            unlock_account(self.db, "123456", code).error, ErrorKind.VALIDATION
        )

    def test_unlock_requires_fields(self):
        self.assertEqual(
            unlock_account(self.db, "123456", "").error, ErrorKind.VALIDATION
        )
        self.assertEqual(
            unlock_account(self.db, "123456", "1234").error, ErrorKind.NOT_FOUND
        )

    def test_unlock_code_is_zero_padded(self):
        with patch("vault.accounts.secrets.randbelow", return_value=42):
            self.assertEqual(generate_unlock_code(), "0042")

    def test_snapshot_lists_items(self):
        login_or_create(self.db, "123456", username="ann")
        self.db.add_diary_entry("123456", DiaryEntry(text="hello", timestamp=1))
        result = get_snapshot(self.session)
        self.assertTrue(result.success)
        self.assertEqual(result.data["identifier"], "123456")
        self.assertEqual(result.data["account"]["quota_bytes"], 1073741824)
        self.assertEqual(
            [e["text"] for e in result.data["diary"].values()], ["hello"]
        )
        self.assertNotIn("unlock_code", result.data["account"])


if __name__ == "__main__":
    unittest.main()
