"""
Portfolio Site Backend — Tagged Results
========================================

What:  `Ok(value)` / `Err(kind, message)` outcomes returned across the
       Supabase boundary.
How:   The gateway and the auth service translate SDK responses (and SDK
       exceptions) into one of these two shapes. Callers branch on
       `result.ok` and read `value` or `kind`/`message`; they never look at
       SDK fields like `.data`, `.error` or `.code` themselves.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories a remote call can end in."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    REMOTE = "remote"
    AUTH = "auth"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    # Debug details (PostgREST code, exception type); logged, never shown to users
    context: Dict[str, Any] = field(default_factory=dict)
    ok: bool = field(default=False, init=False)


Result = Union[Ok[T], Err]
