"""
Staking Engine

Multi-pool deposit ledger that accrues a reward token continuously, pro rata
to each depositor's share of the pool, with an early-exit penalty that decays
over a configurable window.

Every state-changing action runs as one atomic transaction:
  1. bring the pool's reward index current
  2. settle the depositor's reward debt
  3. compute any exit penalty
  4. request token transfers

Security features:
  - Reentrancy guard: a nested action started from inside an in-flight one
    (e.g. from a token callback) is rejected; independent callers queue
  - Rollback on any failure: pool and position state restored, and the
    engine's own token transfers reversed (other holders' transfers untouched)
  - Events are published only for committed actions
  - Admin actions gated by an injected authorizer
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from ..constants import DEFAULT_ENGINE_ADDRESS, MAX_PENALTY_PERCENT
from ..exceptions import (
    ReentrancyError,
    StakingError,
    StateConflictError,
    TransferFailedError,
    ValidationError,
)
from ..logger import get_logger
from ..tokens import TokenLike
from . import rewards
from .auth import Authorizer, OwnerAuthorizer
from .clock import system_clock
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
from .penalty import exit_policy_for, penalty_amount
from .registry import PoolRegistry
from .types import ExitPolicy, Pool, Position

logger = get_logger(__name__)

# ids of the engines whose action is running in the current task context
_active_engines: ContextVar[FrozenSet[int]] = ContextVar(
    "stakeledger_active_engines", default=frozenset()
)


class _Transaction:
    """Undo journal and event buffer for a single engine action."""

    def __init__(self, engine: "StakingEngine"):
        self._engine = engine
        self._registry_len = len(engine._registry)
        self._pools: Dict[int, Dict[str, Any]] = {}
        self._positions: Dict[tuple, Optional[Dict[str, Any]]] = {}
        self._transfers: List[Tuple[TokenLike, str, str, int, Optional[str]]] = []
        self.events: List[EngineEvent] = []

    def pool(self, pool_id: int) -> Pool:
        pool = self._engine._registry.get(pool_id)
        if pool_id not in self._pools:
            self._pools[pool_id] = dict(vars(pool))
        return pool

    def transferred(
        self,
        token: TokenLike,
        sender: str,
        recipient: str,
        amount: int,
        spender: Optional[str] = None,
    ) -> None:
        """Journal a transfer that completed, so rollback can reverse it."""
        self._transfers.append((token, sender, recipient, amount, spender))

    def position(self, pool_id: int, user: str) -> Position:
        """Position for writing; created (and journaled as new) if missing."""
        ledger = self._engine._ledger
        key = (pool_id, user)
        if key not in self._positions:
            existing = ledger.find(pool_id, user)
            self._positions[key] = None if existing is None else dict(vars(existing))
        return ledger.get_or_create(pool_id, user)

    def emit(self, event: EngineEvent) -> None:
        self.events.append(event)

    def rollback(self) -> None:
        """
        Restore journaled pools and positions, then reverse the engine's own
        transfers newest first.

        Raises TransferFailedError if a transfer could not be reversed (its
        recipient already moved the funds on); every other reversal is still
        attempted.
        """
        engine = self._engine
        for (pool_id, user), saved in self._positions.items():
            if saved is None:
                engine._ledger.discard(pool_id, user)
            else:
                vars(engine._ledger.get_or_create(pool_id, user)).update(saved)
        for pool_id, saved in self._pools.items():
            vars(engine._registry.get(pool_id)).update(saved)
        engine._registry.truncate(self._registry_len)
        self.events.clear()

        failures = []
        for token, sender, recipient, amount, spender in reversed(self._transfers):
            try:
                token.revert_transfer(sender, recipient, amount, spender)
            except Exception as e:
                failures.append(f"{token.symbol} {sender}→{recipient} amount={amount}: {e}")
        self._transfers.clear()
        if failures:
            raise TransferFailedError("rollback incomplete: " + "; ".join(failures))

    def commit(self) -> None:
        for event in self.events:
            self._engine.events.emit(event)


class StakingEngine:
    """
    Orchestrates pools, positions, reward accrual and exit penalties.

    Usage:
        engine = StakingEngine(OwnerAuthorizer("admin"), clock=clock)
        pid = await engine.create_pool("admin", stk, rwd, rate, lock, end, window, 10)
        await engine.deposit("alice", pid, 1000)
        await engine.claim("alice", pid)
    """

    def __init__(
        self,
        authorizer: Authorizer,
        *,
        address: str = DEFAULT_ENGINE_ADDRESS,
        clock: Optional[Callable[[], int]] = None,
        event_log: Optional[EventLog] = None,
        penalty_recipient: Optional[str] = None,
        default_exit_policy: ExitPolicy = ExitPolicy.PENALTY_DECAY,
    ):
        if not address:
            raise ValidationError("engine address cannot be empty")
        self.address = address
        self.authorizer = authorizer
        self.events = event_log if event_log is not None else EventLog()
        self.default_exit_policy = default_exit_policy
        self._clock = clock or system_clock
        self._penalty_recipient = penalty_recipient
        self._registry = PoolRegistry()
        self._ledger = PositionLedger()
        self._serial = asyncio.Lock()

    @classmethod
    def from_config(cls, config, *, clock=None, event_log=None) -> "StakingEngine":
        """Build an engine from a LedgerConfig (validated, logging applied)."""
        config.validate()
        config.logging.apply()
        staking = config.staking
        return cls(
            OwnerAuthorizer(staking.admin),
            address=staking.engine_address,
            clock=clock,
            event_log=event_log,
            penalty_recipient=staking.penalty_recipient or None,
            default_exit_policy=ExitPolicy(staking.exit_policy),
        )

    # ── Transaction plumbing ──────────────────────────────────────────

    @asynccontextmanager
    async def _transaction(self, action: str, caller: str):
        active = _active_engines.get()
        if id(self) in active:
            raise ReentrancyError(f"reentrant {action} by {caller} rejected")

        async with self._serial:
            marker = _active_engines.set(active | {id(self)})
            tx = _Transaction(self)
            try:
                yield tx
            except BaseException as e:
                logger.warning(f"{action} by {caller} rolled back: {e}")
                tx.rollback()
                raise
            else:
                tx.commit()
            finally:
                _active_engines.reset(marker)

    async def _send(self, tx: _Transaction, token: TokenLike, recipient: str, amount: int) -> None:
        if amount <= 0:
            return
        try:
            ok = await token.transfer(self.address, recipient, amount)
        except StakingError:
            raise
        except Exception as e:
            raise TransferFailedError(f"{token.symbol} transfer to {recipient} failed: {e}") from e
        if not ok:
            raise TransferFailedError(f"{token.symbol} transfer to {recipient} failed")
        tx.transferred(token, self.address, recipient, amount)

    async def _pull(self, tx: _Transaction, token: TokenLike, sender: str, amount: int) -> None:
        try:
            ok = await token.transfer_from(self.address, sender, self.address, amount)
        except StakingError:
            raise
        except Exception as e:
            raise TransferFailedError(f"{token.symbol} transfer from {sender} failed: {e}") from e
        if not ok:
            raise TransferFailedError(f"{token.symbol} transfer from {sender} failed")
        tx.transferred(token, sender, self.address, amount, spender=self.address)

    @property
    def penalty_recipient(self) -> str:
        return self._penalty_recipient or self.authorizer.admin

    # ── Admin actions ─────────────────────────────────────────────────

    async def create_pool(
        self,
        caller: str,
        deposit_token: TokenLike,
        reward_token: TokenLike,
        reward_rate: int,
        lock_duration: int,
        end_time: int,
        penalty_duration: int,
        max_penalty: int,
        exit_policy: Optional[ExitPolicy] = None,
    ) -> int:
        """Register a new pool and return its id (its index in the registry)."""
        async with self._transaction("create_pool", caller) as tx:
            self.authorizer.require_admin(caller)

            if deposit_token is None or reward_token is None:
                raise ValidationError("token handles cannot be null")
            if reward_rate <= 0:
                raise ValidationError("reward rate must be positive")
            if lock_duration <= 0:
                raise ValidationError("lock duration must be positive")
            if end_time <= 0:
                raise ValidationError("end time must be positive")
            if penalty_duration < 0:
                raise ValidationError("penalty duration cannot be negative")
            if not 0 <= max_penalty <= MAX_PENALTY_PERCENT:
                raise ValidationError(f"max penalty must be 0-{MAX_PENALTY_PERCENT}")

            now = self._clock()
            pool = Pool(
                pool_id=self._registry.next_id,
                deposit_token=deposit_token,
                reward_token=reward_token,
                reward_rate=reward_rate,
                lock_duration=lock_duration,
                end_time=end_time,
                penalty_duration=penalty_duration,
                max_penalty=max_penalty,
                last_reward_time=now,
                exit_policy=exit_policy or self.default_exit_policy,
                created_at=now,
            )
            pool_id = self._registry.add(pool)

            tx.emit(PoolCreatedEvent(caller=caller, pool_id=pool_id, amount=reward_rate, timestamp=now))
            logger.info(
                f"Pool created pool={pool_id}: {deposit_token.symbol}→{reward_token.symbol} "
                f"rate={reward_rate}/s policy={pool.exit_policy.value}"
            )
            return pool_id

    async def pause_pool(self, caller: str, pool_id: int) -> None:
        """Stop new deposits; exits and claims stay available."""
        async with self._transaction("pause_pool", caller) as tx:
            pool = tx.pool(pool_id)
            self.authorizer.require_admin(caller)
            now = self._clock()
            if pool.is_paused:
                raise StateConflictError("already paused")
            pool.is_paused = True
            tx.emit(PoolPausedEvent(caller=caller, pool_id=pool_id, timestamp=now))
            logger.info(f"Pool paused pool={pool_id}")

    async def resume_pool(self, caller: str, pool_id: int) -> None:
        async with self._transaction("resume_pool", caller) as tx:
            pool = tx.pool(pool_id)
            self.authorizer.require_admin(caller)
            now = self._clock()
            if not pool.is_paused:
                raise StateConflictError("not paused")
            pool.is_paused = False
            tx.emit(PoolResumedEvent(caller=caller, pool_id=pool_id, timestamp=now))
            logger.info(f"Pool resumed pool={pool_id}")

    # ── Depositor actions ─────────────────────────────────────────────

    async def deposit(self, caller: str, pool_id: int, amount: int) -> int:
        """
        Stake *amount* of the pool's deposit token.

        Pays out reward accrued on the existing balance first, then restarts
        the penalty clock. Returns the reward paid out.
        """
        async with self._transaction("deposit", caller) as tx:
            pool = tx.pool(pool_id)
            if amount <= 0:
                raise ValidationError("amount must be positive")
            if pool.is_paused:
                raise ValidationError("pool paused")
            now = self._clock()
            if now >= pool.end_time:
                raise ValidationError("pool ended")

            rewards.advance(pool, now)
            position = tx.position(pool_id, caller)
            reward = rewards.pending(pool, position)

            position.amount += amount
            pool.total_staked += amount
            rewards.settle(pool, position)
            position.last_stake_time = now
            position.lock_end = now + pool.lock_duration

            await self._pull(tx, pool.deposit_token, caller, amount)
            await self._send(tx, pool.reward_token, caller, reward)

            if reward > 0:
                tx.emit(RewardClaimedEvent(caller=caller, pool_id=pool_id, amount=reward, timestamp=now))
            tx.emit(StakedEvent(caller=caller, pool_id=pool_id, amount=amount, timestamp=now))
            logger.debug(f"Deposit pool={pool_id} {caller} amount={amount} reward={reward}")
            return reward

    async def withdraw(self, caller: str, pool_id: int, amount: int) -> Dict[str, int]:
        """
        Unstake *amount*, paying accrued reward and charging the exit policy's
        penalty (sent to the penalty recipient).

        Returns the amounts moved: ``received``, ``penalty`` and ``reward``.
        """
        async with self._transaction("withdraw", caller) as tx:
            pool = tx.pool(pool_id)
            if amount <= 0:
                raise ValidationError("amount must be positive")
            existing = self._ledger.find(pool_id, caller)
            if existing is None or amount > existing.amount:
                raise ValidationError("insufficient staked balance")

            now = self._clock()
            policy = exit_policy_for(pool)
            policy.check(pool, existing, now)

            rewards.advance(pool, now)
            position = tx.position(pool_id, caller)
            reward = rewards.pending(pool, position)

            position.amount -= amount
            pool.total_staked -= amount
            rewards.settle(pool, position)

            percent = policy.penalty_percent(pool, position, now)
            penalty = penalty_amount(amount, percent)
            received = amount - penalty

            await self._send(tx, pool.reward_token, caller, reward)
            await self._send(tx, pool.deposit_token, caller, received)
            await self._send(tx, pool.deposit_token, self.penalty_recipient, penalty)

            if reward > 0:
                tx.emit(RewardClaimedEvent(caller=caller, pool_id=pool_id, amount=reward, timestamp=now))
            tx.emit(WithdrawnEvent(caller=caller, pool_id=pool_id, amount=received, timestamp=now))
            if penalty > 0:
                tx.emit(PenaltyTakenEvent(caller=caller, pool_id=pool_id, amount=penalty, timestamp=now))
            logger.debug(
                f"Withdraw pool={pool_id} {caller} amount={amount} penalty={penalty} reward={reward}"
            )
            return {"received": received, "penalty": penalty, "reward": reward}

    async def claim(self, caller: str, pool_id: int) -> int:
        """Pay out all reward accrued so far; fails when there is none."""
        async with self._transaction("claim", caller) as tx:
            pool = tx.pool(pool_id)
            now = self._clock()
            rewards.advance(pool, now)

            existing = self._ledger.find(pool_id, caller)
            reward = rewards.pending(pool, existing) if existing is not None else 0
            if reward <= 0:
                raise StateConflictError("nothing to claim")

            position = tx.position(pool_id, caller)
            rewards.settle(pool, position)

            await self._send(tx, pool.reward_token, caller, reward)

            tx.emit(RewardClaimedEvent(caller=caller, pool_id=pool_id, amount=reward, timestamp=now))
            logger.debug(f"Claim pool={pool_id} {caller} reward={reward}")
            return reward

    async def emergency_withdraw(self, caller: str, pool_id: int) -> int:
        """
        Return the whole stake immediately, forfeiting pending reward.

        Skips the index advance and the penalty. Returns the amount returned.
        """
        async with self._transaction("emergency_withdraw", caller) as tx:
            pool = tx.pool(pool_id)
            existing = self._ledger.find(pool_id, caller)
            if existing is None or existing.amount <= 0:
                raise StateConflictError("nothing to withdraw")
            now = self._clock()

            position = tx.position(pool_id, caller)
            amount = position.amount
            position.amount = 0
            position.reward_debt = 0
            pool.total_staked -= amount

            await self._send(tx, pool.deposit_token, caller, amount)

            tx.emit(EmergencyWithdrawnEvent(caller=caller, pool_id=pool_id, amount=amount, timestamp=now))
            logger.warning(f"Emergency withdraw pool={pool_id} {caller} amount={amount}")
            return amount

    async def fund_rewards(self, caller: str, pool_id: int, amount: int) -> None:
        """Move *amount* of the pool's reward token into engine custody."""
        async with self._transaction("fund_rewards", caller) as tx:
            pool = tx.pool(pool_id)
            if amount <= 0:
                raise ValidationError("amount must be positive")
            now = self._clock()
            await self._pull(tx, pool.reward_token, caller, amount)
            tx.emit(RewardsFundedEvent(caller=caller, pool_id=pool_id, amount=amount, timestamp=now))
            logger.info(f"Rewards funded pool={pool_id} by {caller} amount={amount}")

    # ── Read surface ──────────────────────────────────────────────────

    @property
    def pool_count(self) -> int:
        return len(self._registry)

    def get_pool(self, pool_id: int) -> Pool:
        """Copy of the pool record (token handles shared)."""
        return dataclasses.replace(self._registry.get(pool_id))

    def pools(self) -> List[Pool]:
        return [dataclasses.replace(p) for p in self._registry]

    def get_position(self, pool_id: int, user: str) -> Position:
        self._registry.get(pool_id)
        return copy.copy(self._ledger.get(pool_id, user))

    def pending_reward(self, pool_id: int, user: str) -> int:
        """Reward *user* could claim right now, without touching state."""
        pool = self._registry.get(pool_id)
        return rewards.peek_pending(pool, self._ledger.get(pool_id, user), self._clock())

    def get_penalty(self, pool_id: int, user: str) -> int:
        """Penalty percentage *user* would pay on withdrawing right now."""
        pool = self._registry.get(pool_id)
        position = self._ledger.get(pool_id, user)
        return exit_policy_for(pool).penalty_percent(pool, position, self._clock())

    def staked_total(self, pool_id: int) -> int:
        """Sum of positions in *pool_id*, recomputed from the ledger (audit)."""
        self._registry.get(pool_id)
        return self._ledger.total_for(pool_id)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "pools": len(self._registry),
            "pausedPools": sum(1 for p in self._registry if p.is_paused),
            "positions": len(self._ledger),
            "activePositions": sum(
                1 for p in self._registry for _, pos in self._ledger.positions_for(p.pool_id)
                if pos.is_active
            ),
            "events": len(self.events),
        }

    def __repr__(self) -> str:
        return f"<StakingEngine {self.address} pools={len(self._registry)}>"
