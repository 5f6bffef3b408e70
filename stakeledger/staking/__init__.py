"""
Multi-pool staking ledger.

Provides:
  - StakingEngine   : deposit / withdraw / claim / emergency exit, pool admin
  - PoolRegistry    : append-only pool storage
  - PositionLedger  : per-(pool, depositor) positions
  - rewards         : lazy reward-per-share index
  - penalty         : decaying exit penalty and exit policies
"""

from . import rewards
from .auth import Authorizer, OwnerAuthorizer
from .clock import ManualClock, system_clock
from .engine import StakingEngine
from .events import (
    EmergencyWithdrawnEvent,
    EngineEvent,
    EventLog,
    PenaltyTakenEvent,
    PoolCreatedEvent,
    PoolPausedEvent,
    PoolResumedEvent,
    RewardClaimedEvent,
    RewardsFundedEvent,
    StakedEvent,
    WithdrawnEvent,
)
from .ledger import PositionLedger
from .penalty import (
    ExitStrategy,
    LockedExit,
    PenaltyDecayExit,
    exit_policy_for,
    penalty_amount,
    penalty_percent,
)
from .registry import PoolRegistry
from .types import ExitPolicy, Pool, Position

__all__ = [
    "StakingEngine",
    "PoolRegistry",
    "PositionLedger",
    "Pool",
    "Position",
    "ExitPolicy",
    "Authorizer",
    "OwnerAuthorizer",
    "ManualClock",
    "system_clock",
    "rewards",
    "penalty_percent",
    "penalty_amount",
    "exit_policy_for",
    "ExitStrategy",
    "PenaltyDecayExit",
    "LockedExit",
    "EventLog",
    "EngineEvent",
    "PoolCreatedEvent",
    "StakedEvent",
    "WithdrawnEvent",
    "RewardClaimedEvent",
    "EmergencyWithdrawnEvent",
    "PenaltyTakenEvent",
    "PoolPausedEvent",
    "PoolResumedEvent",
    "RewardsFundedEvent",
]
