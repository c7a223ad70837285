# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import unittest

from shared.constants import ONE_GB, ONE_TB
from shared.json_utils import convert_keys
from shared.types import (
    Account,
    AccountTier,
    StoredFile,
    account_from_record,
    stored_file_from_record,
)


class TestAccountRecords(unittest.TestCase):

    def test_round_trip_through_camel_case(self):
        account = Account(
            created_at=1, usage_bytes=10, tier=AccountTier.PREMIUM, username="ann"
        )
        record = account.to_record()
        self.assertEqual(record["usageBytes"], 10)
        self.assertEqual(record["tier"], "premium")
        self.assertEqual(account_from_record(record), account)

    def test_legacy_flags(self):
        special = account_from_record({"createdAt": 1, "special": True, "premium": True})
        self.assertEqual(special.tier, AccountTier.SPECIAL)
        self.assertEqual(special.quota_bytes, ONE_TB)

        premium = account_from_record({"createdAt": 1, "premium": True})
        self.assertTrue(premium.premium)
        self.assertEqual(premium.quota_bytes, 2 * ONE_GB)

        base = account_from_record({"createdAt": 1})
        self.assertEqual(base.tier, AccountTier.BASE)
        self.assertEqual(base.usage_bytes, 0)

    def test_child_collections_are_ignored(self):
        account = account_from_record(
            {"createdAt": 1, "files": {"-NabcDef": {"name": "a"}}, "diary": {}}
        )
        self.assertEqual(account.created_at, 1)

    def test_stored_file_defaults(self):
        record = stored_file_from_record(
            {"name": "a.txt", "size": 3, "url": "https://h/a.txt", "type": None}
        )
        self.assertEqual(record, StoredFile(name="a.txt", size=3, url="https://h/a.txt"))


class TestConvertKeys(unittest.TestCase):

    def test_nested(self):
        data = {"usage_bytes": 1, "items": [{"unlock_code": "0001"}]}
        converted = convert_keys(data, "snake_to_camel")
        self.assertEqual(converted, {"usageBytes": 1, "items": [{"unlockCode": "0001"}]})
        self.assertEqual(convert_keys(converted, "camel_to_snake"), data)


if __name__ == "__main__":
    unittest.main()
