from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceError(Exception):
    message: str
    status_code: int = 500
    data: Any = None
    meta: Any = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class CollaboratorFailure:
    """A catalog or pricing call that raised and was replaced with a default."""

    operation: str
    arguments: tuple[Any, ...]
    error_type: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "arguments": list(self.arguments),
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(frozen=True)
class LookupResult(Generic[T]):
    value: T
    failure: Optional[CollaboratorFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None
