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


from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Dict, List, Optional

from dacite import Config, from_dict

from shared.constants import DEFAULT_MIME_TYPE, ONE_GB, ONE_TB
from shared.json_utils import convert_keys

# Keys of an account record that hold child collections rather than fields.
_CHILD_COLLECTION_KEYS = ("diary", "files")


class AccountTier(StrEnum):
    BASE = "base"
    PREMIUM = "premium"
    SPECIAL = "special"


class ItemKind(StrEnum):
    DIARY = "diary"
    FILES = "files"


QUOTA_BYTES: Dict[AccountTier, int] = {
    AccountTier.BASE: ONE_GB,
    AccountTier.PREMIUM: 2 * ONE_GB,
    AccountTier.SPECIAL: ONE_TB,
}


def _drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class DiaryEntry:
    text: str
    timestamp: Optional[int] = None

    def to_record(self) -> dict:
        return _drop_none(asdict(self))


@dataclass
class StoredFile:
    name: str
    size: int
    url: str
    timestamp: Optional[int] = None
    type: str = DEFAULT_MIME_TYPE

    def to_record(self) -> dict:
        return _drop_none(asdict(self))


@dataclass
class Account:
    """An account record as persisted under users/<account key>."""

    created_at: int
    usage_bytes: int = 0
    tier: AccountTier = AccountTier.BASE
    username: Optional[str] = None
    email: Optional[str] = None
    locked: bool = False
    unlock_code: Optional[str] = None

    @property
    def premium(self) -> bool:
        return self.tier == AccountTier.PREMIUM

    @property
    def quota_bytes(self) -> int:
        return QUOTA_BYTES[self.tier]

    def to_record(self) -> dict:
        record = asdict(self)
        record["tier"] = self.tier.value
        return convert_keys(record, "snake_to_camel")


@dataclass
class SharePayload:
    diary: List[DiaryEntry] = field(default_factory=list)
    files: List[StoredFile] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "diary": [entry.to_record() for entry in self.diary],
            "files": [record.to_record() for record in self.files],
        }

    @property
    def is_empty(self) -> bool:
        return not self.diary and not self.files


@dataclass
class AccountSnapshot:
    """Everything a client needs to render one account."""

    identifier: str
    account: Account
    diary: Dict[str, DiaryEntry] = field(default_factory=dict)
    files: Dict[str, StoredFile] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "account": {
                "username": self.account.username,
                "email": self.account.email,
                "created_at": self.account.created_at,
                "usage_bytes": self.account.usage_bytes,
                "quota_bytes": self.account.quota_bytes,
                "tier": self.account.tier.value,
                "premium": self.account.premium,
                "locked": self.account.locked,
            },
            "diary": {k: v.to_record() for k, v in self.diary.items()},
            "files": {k: v.to_record() for k, v in self.files.items()},
        }


def account_from_record(record: dict) -> Account:
    """
    Builds an Account from a stored record.

    Records written before the tier field existed carry `special` and
    `premium` booleans instead; the tier is derived from those.
    """
    fields = {k: v for k, v in record.items() if k not in _CHILD_COLLECTION_KEYS}
    if not fields.get("tier"):
        if fields.get("special") is True:
            fields["tier"] = AccountTier.SPECIAL.value
        elif fields.get("premium") is True:
            fields["tier"] = AccountTier.PREMIUM.value
        else:
            fields["tier"] = AccountTier.BASE.value
    fields.pop("special", None)
    fields.pop("premium", None)
    return from_dict(
        data_class=Account,
        data=convert_keys(_drop_none(fields), "camel_to_snake"),
        config=Config(cast=[AccountTier], check_types=False),
    )


def diary_entry_from_record(record: dict) -> DiaryEntry:
    return from_dict(
        data_class=DiaryEntry, data=record, config=Config(check_types=False)
    )


def stored_file_from_record(record: dict) -> StoredFile:
    return from_dict(
        data_class=StoredFile,
        data=_drop_none(record),
        config=Config(check_types=False),
    )
