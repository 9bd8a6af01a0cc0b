"""
Outcome of validating or evaluating a batch.

A value outside its declared domain does not raise: it produces a
``SkipBatch`` that the evaluation loop returns early with, so a caller
processing many records can drop the offending one and carry on.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class SkipBatch:
    """Soft failure: the current evaluation call should yield no result."""

    reason: str
    feature: str | None = None

    def __bool__(self) -> bool:
        return False


Result = Ok[T] | SkipBatch
