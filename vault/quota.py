"""
Per-account storage quota bookkeeping.

The check and the usage write-back are separate remote calls. Two writes
racing on the same account can both pass the check against the same stale
usage value.
"""

from __future__ import annotations

from shared.types import Account
from vault.errors import ErrorKind, OperationError


def fits_quota(account: Account, cost_bytes: int) -> bool:
    """
    True if a write of `cost_bytes` fits the account's tier.

    Zero-cost writes (diary text) still need room left: they are refused
    once usage has reached the quota.
    """
    if cost_bytes == 0:
        return account.usage_bytes < account.quota_bytes
    return account.usage_bytes + cost_bytes <= account.quota_bytes


def ensure_quota(account: Account, cost_bytes: int, message: str) -> None:
    if not fits_quota(account, cost_bytes):
        raise OperationError(ErrorKind.QUOTA_EXCEEDED, message)


def usage_after_add(account: Account, added_bytes: int) -> int:
    return account.usage_bytes + added_bytes


def usage_after_delete(current_usage: int, freed_bytes: int) -> int:
    """Clamped at zero."""
    return max(0, current_usage - freed_bytes)


def remaining_bytes(account: Account) -> int:
    return max(0, account.quota_bytes - account.usage_bytes)
