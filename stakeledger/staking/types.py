"""
Staking Types

Core data records for the staking ledger: pool configuration with its
aggregate reward index, and the per-depositor position.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from ..tokens import TokenLike


class ExitPolicy(Enum):
    """How a depositor may leave a pool through ``withdraw``."""
    PENALTY_DECAY = "penalty_decay"   # Always allowed; early exits pay a decaying penalty
    LOCKED = "locked"                 # Only after lockEnd; no penalty


@dataclass
class Pool:
    """
    An independently configured deposit / reward relationship.

    ``acc_reward_per_share`` is scaled by PRECISION and never decreases;
    ``total_staked`` always equals the sum of its positions' amounts.
    """
    pool_id: int
    deposit_token: TokenLike
    reward_token: TokenLike
    reward_rate: int
    lock_duration: int
    end_time: int
    penalty_duration: int
    max_penalty: int
    last_reward_time: int
    exit_policy: ExitPolicy = ExitPolicy.PENALTY_DECAY
    acc_reward_per_share: int = 0
    total_staked: int = 0
    is_paused: bool = False
    created_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "poolId": self.pool_id,
            "depositToken": self.deposit_token.symbol,
            "rewardToken": self.reward_token.symbol,
            "rewardRate": str(self.reward_rate),
            "lockDuration": self.lock_duration,
            "endTime": self.end_time,
            "penaltyDuration": self.penalty_duration,
            "maxPenalty": self.max_penalty,
            "exitPolicy": self.exit_policy.value,
            "lastRewardTime": self.last_reward_time,
            "accRewardPerShare": str(self.acc_reward_per_share),
            "totalStaked": str(self.total_staked),
            "isPaused": self.is_paused,
            "createdAt": self.created_at,
        }


@dataclass
class Position:
    """A single depositor's stake and bookkeeping within one pool."""
    amount: int = 0
    reward_debt: int = 0
    last_stake_time: int = 0
    lock_end: int = 0

    @property
    def is_active(self) -> bool:
        return self.amount > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": str(self.amount),
            "rewardDebt": str(self.reward_debt),
            "lastStakeTime": self.last_stake_time,
            "lockEnd": self.lock_end,
            "active": self.is_active,
        }
