"""Tagged success-or-failure results for pipeline steps."""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful step outcome."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed step outcome carrying the error instead of raising it."""

    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Ok[T] | Err[E]
