"""
Pool Registry

Append-only, ordered collection of pools. A pool's id is its position in
the registry; pools are never removed.
"""

from typing import Iterator, List

from ..exceptions import InvalidPoolError
from .types import Pool


class PoolRegistry:

    def __init__(self):
        self._pools: List[Pool] = []

    @property
    def next_id(self) -> int:
        return len(self._pools)

    def add(self, pool: Pool) -> int:
        if pool.pool_id != self.next_id:
            raise InvalidPoolError(
                f"Pool id {pool.pool_id} does not match next id {self.next_id}"
            )
        self._pools.append(pool)
        return pool.pool_id

    def get(self, pool_id: int) -> Pool:
        if not self.exists(pool_id):
            raise InvalidPoolError(f"invalid pool id {pool_id!r}")
        return self._pools[pool_id]

    def exists(self, pool_id: int) -> bool:
        # bool is an int subclass but never a pool id
        if isinstance(pool_id, bool) or not isinstance(pool_id, int):
            return False
        return 0 <= pool_id < len(self._pools)

    def truncate(self, length: int) -> None:
        """Drop pools appended after *length*; only used to revert an aborted create."""
        del self._pools[length:]

    def __len__(self) -> int:
        return len(self._pools)

    def __iter__(self) -> Iterator[Pool]:
        return iter(list(self._pools))

    def __repr__(self) -> str:
        return f"<PoolRegistry pools={len(self._pools)}>"
