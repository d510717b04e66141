"""Discriminated result values returned by player-facing operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, NoReturn, TypeVar, Union

from harvest_backend.shared.errors import GameError, InvariantViolation

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class Success(Generic[_T]):
    """Operation completed; *value* carries its outcome."""

    value: _T
    ok: Literal[True] = True

    def unwrap(self) -> _T:
        """Return the wrapped value."""
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    """Operation was rejected with an expected, typed *error*."""

    error: GameError
    ok: Literal[False] = False

    def unwrap(self) -> NoReturn:
        """Raise because there is no value to return."""
        msg = f"Called unwrap() on a failed result: {self.error!r}"
        raise InvariantViolation(msg)


Result = Union[Success[_T], Failure]  # noqa: UP007


__all__ = ["Failure", "Result", "Success"]
