# receipt_hub/services/results.py
"""
Outcome of a repository write.

Repositories return ``Success`` or ``Failure`` instead of raising when a
write simply affected nothing (zero rows updated, nothing deleted). The
orchestrating service decides whether that is fatal; ``unwrap()`` turns a
failure into a RepositoryError so the enclosing transaction rolls back.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from receipt_hub.services.errors import RepositoryError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.data


@dataclass(frozen=True)
class Failure:
    error: str

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise RepositoryError(self.error)


Result = Union[Success[T], Failure]
