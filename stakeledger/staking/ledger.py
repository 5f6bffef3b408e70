"""
Position Ledger

Maps (pool id, depositor) to that depositor's Position. Records are created
lazily on first deposit and stay in place (possibly empty) afterwards.
"""

from typing import Dict, Iterator, Optional, Tuple

from .types import Position

PositionKey = Tuple[int, str]


class PositionLedger:

    def __init__(self):
        self._positions: Dict[PositionKey, Position] = {}

    def get(self, pool_id: int, user: str) -> Position:
        """Stored position, or a detached empty one if the pair never deposited."""
        return self._positions.get((pool_id, user)) or Position()

    def find(self, pool_id: int, user: str) -> Optional[Position]:
        return self._positions.get((pool_id, user))

    def get_or_create(self, pool_id: int, user: str) -> Position:
        key = (pool_id, user)
        position = self._positions.get(key)
        if position is None:
            position = self._positions[key] = Position()
        return position

    def discard(self, pool_id: int, user: str) -> None:
        """Forget a record; only used to revert the action that created it."""
        self._positions.pop((pool_id, user), None)

    def positions_for(self, pool_id: int) -> Iterator[Tuple[str, Position]]:
        for (pid, user), position in self._positions.items():
            if pid == pool_id:
                yield user, position

    def total_for(self, pool_id: int) -> int:
        """Sum of stored amounts in *pool_id*; an audit helper, O(positions)."""
        return sum(p.amount for _, p in self.positions_for(pool_id))

    def __len__(self) -> int:
        return len(self._positions)
