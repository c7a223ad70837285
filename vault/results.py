"""
Uniform result shape returned by every operation.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from vault.errors import (
    SERVICE_UNAVAILABLE_MESSAGE,
    ErrorKind,
    OperationError,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    success: bool
    message: str
    error: Optional[ErrorKind] = None
    data: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **data: Any) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "OperationResult":
        return cls(success=False, message=message, error=kind)

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "error": self.error.value if self.error else None,
            "data": self.data,
        }


def operation(name: str) -> Callable:
    """
    Wraps an operation so that rejections and upstream failures come back as
    an OperationResult instead of propagating.
    """

    def decorator(func: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> OperationResult:
            try:
                return func(*args, **kwargs)
            except OperationError as e:
                logger.info("%s rejected (%s): %s", name, e.kind.value, e.message)
                return OperationResult.fail(e.kind, e.message)
            except UpstreamUnavailable:
                logger.exception("%s failed upstream", name)
                return OperationResult.fail(
                    ErrorKind.UPSTREAM_UNAVAILABLE, SERVICE_UNAVAILABLE_MESSAGE
                )

        return wrapper

    return decorator
