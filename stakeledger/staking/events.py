"""
Engine events.

One frozen record per state transition, carrying the acting identity, the
pool id and the amount involved. Events are observational: subscribers
cannot influence engine state, and the engine only publishes the events of
actions that committed.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """Base event record."""
    caller: str
    pool_id: int
    amount: int = 0
    timestamp: float = field(default_factory=time.time)

    name = "EngineEvent"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "caller": self.caller,
            "poolId": self.pool_id,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class PoolCreatedEvent(EngineEvent):
    """amount carries the pool's reward rate."""
    name = "PoolCreated"


@dataclass(frozen=True)
class StakedEvent(EngineEvent):
    name = "Staked"


@dataclass(frozen=True)
class WithdrawnEvent(EngineEvent):
    """amount is what the depositor received, after penalty."""
    name = "Withdrawn"


@dataclass(frozen=True)
class RewardClaimedEvent(EngineEvent):
    name = "RewardClaimed"


@dataclass(frozen=True)
class EmergencyWithdrawnEvent(EngineEvent):
    name = "EmergencyWithdrawn"


@dataclass(frozen=True)
class PenaltyTakenEvent(EngineEvent):
    name = "PenaltyTaken"


@dataclass(frozen=True)
class PoolPausedEvent(EngineEvent):
    name = "PoolPaused"


@dataclass(frozen=True)
class PoolResumedEvent(EngineEvent):
    name = "PoolResumed"


@dataclass(frozen=True)
class RewardsFundedEvent(EngineEvent):
    name = "RewardsFunded"


Subscriber = Callable[[EngineEvent], None]


class EventLog:
    """Event sink: keeps every published event and fans out to subscribers."""

    def __init__(self):
        self._events: List[EngineEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def emit(self, event: EngineEvent) -> None:
        self._events.append(event)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                # Observers never affect the engine
                logger.exception(f"Event subscriber failed on {event.name}")

    @property
    def events(self) -> List[EngineEvent]:
        return list(self._events)

    def of_type(self, event_type: type) -> List[EngineEvent]:
        return [e for e in self._events if isinstance(e, event_type)]

    def __len__(self) -> int:
        return len(self._events)
