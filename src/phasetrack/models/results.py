"""Result types returned by async engine operations.

Engine entry points never raise for expected failures; they return either
``Ok(value)`` or ``Err(error)``.

Example:
    >>> match await engine.request_advance(3):
    ...     case Ok(value=index):
    ...         print(f"requested phase {index}")
    ...     case Err(error=error):
    ...         print(f"{error.kind}: {error.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeAlias, TypeVar

if TYPE_CHECKING:
    from phasetrack.exceptions import PhaseTrackError
    from phasetrack.models.enums import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    """Failed outcome carrying a typed error."""

    error: PhaseTrackError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        """Error taxonomy tag of the wrapped error."""
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message


Result: TypeAlias = Ok[T] | Err
