"""
Exit penalties and exit policies.

The penalty-decay policy charges an early-exit penalty that falls linearly
from ``max_penalty`` percent right after a deposit to zero once
``penalty_duration`` seconds have passed. The locked policy refuses
withdrawals before ``lock_end`` and never charges a penalty.
"""

from typing import Dict, Protocol, runtime_checkable

from ..constants import PERCENT
from ..exceptions import ValidationError
from .types import ExitPolicy, Pool, Position


def penalty_percent(pool: Pool, position: Position, now: int) -> int:
    """Current penalty percentage (0..max_penalty) for leaving *pool*."""
    if position.last_stake_time == 0 or pool.penalty_duration <= 0:
        return 0
    # a clock reading behind the deposit counts as "just deposited"
    time_staked = max(0, now - position.last_stake_time)
    if time_staked >= pool.penalty_duration:
        return 0
    remaining = pool.penalty_duration - time_staked
    return pool.max_penalty * remaining // pool.penalty_duration


def penalty_amount(amount: int, percent: int) -> int:
    return amount * percent // PERCENT


@runtime_checkable
class ExitStrategy(Protocol):
    """How a pool decides whether, and at what cost, a depositor may withdraw."""

    policy: ExitPolicy

    def check(self, pool: Pool, position: Position, now: int) -> None: ...

    def penalty_percent(self, pool: Pool, position: Position, now: int) -> int: ...


class PenaltyDecayExit:
    """Withdrawals always allowed; penalty decays over the penalty window."""

    policy = ExitPolicy.PENALTY_DECAY

    def check(self, pool: Pool, position: Position, now: int) -> None:
        pass

    def penalty_percent(self, pool: Pool, position: Position, now: int) -> int:
        return penalty_percent(pool, position, now)


class LockedExit:
    """Withdrawals refused until the position's lock expires; no penalty."""

    policy = ExitPolicy.LOCKED

    def check(self, pool: Pool, position: Position, now: int) -> None:
        if now < position.lock_end:
            raise ValidationError(f"tokens locked until {position.lock_end}")

    def penalty_percent(self, pool: Pool, position: Position, now: int) -> int:
        return 0


_POLICIES: Dict[ExitPolicy, ExitStrategy] = {
    ExitPolicy.PENALTY_DECAY: PenaltyDecayExit(),
    ExitPolicy.LOCKED: LockedExit(),
}


def exit_policy_for(pool: Pool) -> ExitStrategy:
    return _POLICIES[pool.exit_policy]
