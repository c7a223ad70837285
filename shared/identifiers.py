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


import re
from dataclasses import dataclass

from shared.constants import (
    ACCOUNT_ID_DIGITS,
    SPECIAL_ACCOUNT_KEY_PREFIX,
    SPECIAL_ACCOUNT_MARKER,
)
from shared.types import AccountTier

_NUMERIC_ID = re.compile(rf"^[0-9]{{{ACCOUNT_ID_DIGITS}}}$")


class InvalidIdentifierError(ValueError):
    pass


@dataclass(frozen=True)
class AccountIdentifier:
    """
    A parsed account identifier.

    `123456` and `#123456` name two different accounts. The marked form is
    stored under its own key prefix so the two never collide.
    """

    digits: str
    special: bool = False

    @property
    def storage_key(self) -> str:
        if self.special:
            return f"{SPECIAL_ACCOUNT_KEY_PREFIX}{self.digits}"
        return self.digits

    @property
    def initial_tier(self) -> AccountTier:
        """Tier assigned when an account is first created under this identifier."""
        return AccountTier.SPECIAL if self.special else AccountTier.BASE

    def __str__(self) -> str:
        if self.special:
            return f"{SPECIAL_ACCOUNT_MARKER}{self.digits}"
        return self.digits


def parse_identifier(raw: str | None) -> AccountIdentifier:
    """
    Parses a user-supplied identifier.

    Raises:
        InvalidIdentifierError: if `raw` is not six digits, optionally
            prefixed with the special marker.
    """
    value = (raw or "").strip()
    special = value.startswith(SPECIAL_ACCOUNT_MARKER)
    digits = value[len(SPECIAL_ACCOUNT_MARKER) :] if special else value
    if not _NUMERIC_ID.match(digits):
        raise InvalidIdentifierError(
            "Please enter a valid 6-digit numeric ID, optionally prefixed with #"
        )
    return AccountIdentifier(digits=digits, special=special)
