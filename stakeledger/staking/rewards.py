"""
Reward Index: lazy reward-per-share accrual

Each pool carries a cumulative reward-per-unit-deposit index
(``acc_reward_per_share``, scaled by PRECISION). The index is advanced on
demand, immediately before any action reads or changes ``total_staked``, so
a depositor's entitlement is always

    amount * acc_reward_per_share // PRECISION - reward_debt

without iterating over other depositors.
"""

from ..constants import PRECISION
from ..logger import get_logger
from .types import Pool, Position

logger = get_logger(__name__)


def accumulated_per_share(pool: Pool, now: int) -> int:
    """Index value *pool* would hold if advanced to *now* (read-only)."""
    if now <= pool.last_reward_time or pool.total_staked == 0:
        return pool.acc_reward_per_share
    elapsed = now - pool.last_reward_time
    reward = pool.reward_rate * elapsed
    return pool.acc_reward_per_share + reward * PRECISION // pool.total_staked


def advance(pool: Pool, now: int) -> None:
    """
    Bring the pool's index current.

    Idempotent within one instant. Intervals with nothing staked accrue
    nothing; that reward is not banked for later depositors.
    """
    if now <= pool.last_reward_time:
        return
    if pool.total_staked == 0:
        pool.last_reward_time = now
        return

    acc = accumulated_per_share(pool, now)
    logger.debug(
        f"Index advance pool={pool.pool_id}: {pool.last_reward_time}→{now} "
        f"acc {pool.acc_reward_per_share}→{acc}"
    )
    pool.acc_reward_per_share = acc
    pool.last_reward_time = now


def accrued(amount: int, acc_reward_per_share: int) -> int:
    """Reward attributable to *amount* at index *acc_reward_per_share*."""
    return amount * acc_reward_per_share // PRECISION


def pending(pool: Pool, position: Position) -> int:
    """Unsettled reward for *position* at the pool's stored index."""
    return accrued(position.amount, pool.acc_reward_per_share) - position.reward_debt


def peek_pending(pool: Pool, position: Position, now: int) -> int:
    """Unsettled reward for *position* as of *now*, without mutating *pool*."""
    return accrued(position.amount, accumulated_per_share(pool, now)) - position.reward_debt


def settle(pool: Pool, position: Position) -> None:
    """Re-anchor reward debt to the current index (call after every amount change)."""
    position.reward_debt = accrued(position.amount, pool.acc_reward_per_share)
