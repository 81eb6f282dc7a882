"""Outcome values for service operations.

Every service operation returns ``Ok(value)`` or ``Err(error)`` where the
error is one of the ``ClaimError`` family. A unit of work commits only when
its operation returns ``Ok``; an ``Err`` rolls it back.
"""

from collections.abc import Callable
from typing import Any, Generic, NoReturn, TypeVar

from attrs import frozen
from beartype import beartype

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")


@frozen
class Ok(Generic[T]):
    value: T

    @beartype
    def is_ok(self) -> bool:
        return True

    @beartype
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Expected an error, got Ok({self.value!r})")

    def map(self, func: Callable[[T], U]) -> "Ok[U]":
        """Apply ``func`` to the value, keeping it wrapped."""
        return Ok(func(self.value))


@frozen
class Err(Generic[E]):
    error: E

    @beartype
    def is_ok(self) -> bool:
        return False

    @beartype
    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err value: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def map(self, func: Callable[[Any], Any]) -> "Err[E]":
        """Errors pass through unchanged."""
        return self


# ``Result[Claim, ClaimError]`` resolves to ``Ok[Claim] | Err[ClaimError]``.
Result = Ok[T] | Err[E]
