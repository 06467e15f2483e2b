# dealwatch/storage/protocols.py

"""Repository contracts consumed by the cleaning pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Protocol

from dealwatch.models.candidate_item import CandidateItem
from dealwatch.models.master_product import MasterProduct
from dealwatch.models.price_trend import PriceTrend


class UnitOfWork(Protocol):
    """Anything that can group repository writes atomically."""

    def transaction(self) -> AbstractContextManager[None]:
        """Open an atomic block; nested blocks join the outer one."""
        ...


class MasterProductStore(Protocol):
    """Master catalog access.

    Lookups return ``None`` for absence and raise ``StorageError`` only
    when the store itself fails.
    """

    def find_by_id(self, product_id: str) -> MasterProduct | None: ...

    def find_by_region(self, region: str) -> list[MasterProduct]: ...

    def list_all(self) -> list[MasterProduct]: ...

    def create(self, product: MasterProduct) -> None: ...

    def update(self, product: MasterProduct) -> None: ...


class CandidateStore(Protocol):
    """Candidate pool access."""

    def find_by_region(self, region: str) -> list[CandidateItem]: ...

    def list_all(self) -> list[CandidateItem]: ...

    def create(self, candidate: CandidateItem) -> None: ...

    def update(self, candidate: CandidateItem) -> None: ...

    def delete_by_ids(self, candidate_ids: Sequence[int]) -> int: ...


class TrendStore(Protocol):
    """Daily price samples, latest write wins."""

    def upsert(self, trend: PriceTrend) -> None: ...


__all__ = [
    "CandidateStore",
    "MasterProductStore",
    "TrendStore",
    "UnitOfWork",
]
