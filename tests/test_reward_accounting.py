"""
Reward accounting test suite

Coverage:
  - Reward index: lazy advance, empty-pool intervals, read-only peeking
  - Reward debt settlement
  - Exit penalty: linear decay, boundaries, monotonicity
  - Exit policies: penalty-decay vs locked
  - Pool registry and position ledger
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from stakeledger.constants import MAX_PENALTY_PERCENT, PRECISION
from stakeledger.exceptions import InvalidPoolError, ValidationError
from stakeledger.staking import rewards
from stakeledger.staking.ledger import PositionLedger
from stakeledger.staking.penalty import (
    ExitStrategy,
    LockedExit,
    PenaltyDecayExit,
    exit_policy_for,
    penalty_amount,
    penalty_percent,
)
from stakeledger.staking.registry import PoolRegistry
from stakeledger.staking.types import ExitPolicy, Pool, Position
from stakeledger.tokens import Token


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

START = 1_700_000_000
DAY = 86_400
E18 = 10**18


def make_pool(pool_id=0, **kwargs) -> Pool:
    """Helper to build a pool record without an engine."""
    params = dict(
        pool_id=pool_id,
        deposit_token=Token(name="Stake", symbol="STK"),
        reward_token=Token(name="Reward", symbol="RWD"),
        reward_rate=E18,
        lock_duration=7 * DAY,
        end_time=START + 365 * DAY,
        penalty_duration=3 * DAY,
        max_penalty=10,
        last_reward_time=START,
    )
    params.update(kwargs)
    return Pool(**params)


# ══════════════════════════════════════════════════════════════════════
#  REWARD INDEX
# ══════════════════════════════════════════════════════════════════════


class TestRewardIndexAdvance:
    """advance(): lazy accrual of accRewardPerShare."""

    def test_advance_accrues_pro_rata(self):
        pool = make_pool(total_staked=1000 * E18)
        rewards.advance(pool, START + 100)
        # 100 s × 1e18/s spread over 1000e18 staked
        assert pool.acc_reward_per_share == 100 * E18 * PRECISION // (1000 * E18)
        assert pool.last_reward_time == START + 100

    def test_advance_same_instant_is_noop(self):
        pool = make_pool(total_staked=1000 * E18)
        rewards.advance(pool, START + 50)
        acc = pool.acc_reward_per_share
        rewards.advance(pool, START + 50)
        assert pool.acc_reward_per_share == acc
        assert pool.last_reward_time == START + 50

    def test_advance_backwards_is_noop(self):
        pool = make_pool(total_staked=E18)
        rewards.advance(pool, START - 10)
        assert pool.acc_reward_per_share == 0
        assert pool.last_reward_time == START

    def test_empty_pool_moves_clock_without_accrual(self):
        pool = make_pool()
        rewards.advance(pool, START + 1000)
        assert pool.acc_reward_per_share == 0
        assert pool.last_reward_time == START + 1000

    def test_empty_interval_is_not_banked(self):
        pool = make_pool()
        rewards.advance(pool, START + 1000)
        pool.total_staked = E18
        rewards.advance(pool, START + 1010)
        # Only the 10 s with stake present count
        assert pool.acc_reward_per_share == 10 * E18 * PRECISION // E18

    def test_index_never_decreases(self):
        pool = make_pool(total_staked=3 * E18)
        previous = 0
        for step in (1, 7, 7, 30, 31, 1000):
            rewards.advance(pool, START + step)
            assert pool.acc_reward_per_share >= previous
            previous = pool.acc_reward_per_share

    def test_wide_intermediate_does_not_overflow(self):
        pool = make_pool(reward_rate=10**30, total_staked=1)
        rewards.advance(pool, START + 10**9)
        assert pool.acc_reward_per_share == 10**30 * 10**9 * PRECISION


class TestRewardIndexPending:
    """pending / peek_pending / settle."""

    def test_peek_does_not_mutate(self):
        pool = make_pool(total_staked=1000 * E18)
        position = Position(amount=1000 * E18)
        quoted = rewards.peek_pending(pool, position, START + 100)
        assert quoted == 100 * E18
        assert pool.acc_reward_per_share == 0
        assert pool.last_reward_time == START

    def test_peek_matches_advance(self):
        pool = make_pool(total_staked=700 * E18)
        position = Position(amount=300 * E18)
        quoted = rewards.peek_pending(pool, position, START + 333)
        rewards.advance(pool, START + 333)
        assert rewards.pending(pool, position) == quoted

    def test_settle_zeroes_pending(self):
        pool = make_pool(total_staked=10 * E18)
        position = Position(amount=10 * E18)
        rewards.advance(pool, START + 60)
        assert rewards.pending(pool, position) == 60 * E18
        rewards.settle(pool, position)
        assert rewards.pending(pool, position) == 0

    def test_settle_after_amount_change_keeps_pending_nonnegative(self):
        pool = make_pool(total_staked=3 * E18)
        position = Position(amount=3 * E18)
        rewards.advance(pool, START + 7)
        rewards.settle(pool, position)
        position.amount -= 2 * E18
        pool.total_staked -= 2 * E18
        rewards.settle(pool, position)
        rewards.advance(pool, START + 8)
        assert rewards.pending(pool, position) >= 0

    def test_accrued_truncates(self):
        assert rewards.accrued(3, PRECISION // 2) == 1


# ══════════════════════════════════════════════════════════════════════
#  PENALTY
# ══════════════════════════════════════════════════════════════════════


class TestPenaltyPercent:
    """Linear decay of the exit penalty."""

    def test_max_penalty_at_deposit_time(self):
        pool = make_pool()
        assert penalty_percent(pool, Position(amount=1, last_stake_time=START), START) == 10

    def test_one_day_into_three_day_window(self):
        pool = make_pool()
        position = Position(amount=1, last_stake_time=START)
        assert penalty_percent(pool, position, START + DAY) == 10 * (2 * DAY) // (3 * DAY)
        assert penalty_percent(pool, position, START + DAY) == 6

    def test_two_days_in_floors(self):
        pool = make_pool()
        position = Position(amount=1, last_stake_time=START)
        assert penalty_percent(pool, position, START + 2 * DAY) == 3

    def test_zero_at_window_end(self):
        pool = make_pool()
        position = Position(amount=1, last_stake_time=START)
        assert penalty_percent(pool, position, START + 3 * DAY) == 0
        assert penalty_percent(pool, position, START + 30 * DAY) == 0

    def test_never_staked_is_zero(self):
        pool = make_pool()
        assert penalty_percent(pool, Position(), START) == 0

    def test_zero_window_is_zero(self):
        pool = make_pool(penalty_duration=0)
        assert penalty_percent(pool, Position(amount=1, last_stake_time=START), START) == 0

    def test_zero_window_with_clock_behind_deposit(self):
        pool = make_pool(penalty_duration=0)
        position = Position(amount=1, last_stake_time=START)
        assert penalty_percent(pool, position, START - 1) == 0

    def test_clock_behind_deposit_caps_at_max_penalty(self):
        pool = make_pool(max_penalty=10)
        position = Position(amount=1, last_stake_time=START)
        assert penalty_percent(pool, position, START - DAY) == 10
        assert penalty_percent(pool, position, START - 10 * DAY) == 10

    def test_monotonically_non_increasing(self):
        pool = make_pool(max_penalty=MAX_PENALTY_PERCENT)
        position = Position(amount=1, last_stake_time=START)
        previous = MAX_PENALTY_PERCENT
        for elapsed in range(0, 3 * DAY + 3600, 3600):
            current = penalty_percent(pool, position, START + elapsed)
            assert current <= previous
            previous = current
        assert previous == 0

    def test_penalty_amount_floors_and_conserves(self):
        amount = 1003
        penalty = penalty_amount(amount, 6)
        assert penalty == 60
        assert (amount - penalty) + penalty == amount


class TestExitPolicies:
    """Penalty-decay vs locked withdrawal strategies."""

    def test_policy_lookup(self):
        assert isinstance(exit_policy_for(make_pool()), PenaltyDecayExit)
        assert isinstance(exit_policy_for(make_pool(exit_policy=ExitPolicy.LOCKED)), LockedExit)

    def test_penalty_decay_never_blocks(self):
        pool = make_pool()
        position = Position(amount=1, last_stake_time=START, lock_end=START + 7 * DAY)
        PenaltyDecayExit().check(pool, position, START)

    def test_locked_blocks_before_lock_end(self):
        pool = make_pool(exit_policy=ExitPolicy.LOCKED)
        position = Position(amount=1, last_stake_time=START, lock_end=START + 7 * DAY)
        with pytest.raises(ValidationError, match="locked"):
            LockedExit().check(pool, position, START + 7 * DAY - 1)

    def test_locked_allows_at_lock_end_without_penalty(self):
        pool = make_pool(exit_policy=ExitPolicy.LOCKED)
        position = Position(amount=1, last_stake_time=START, lock_end=START + 7 * DAY)
        LockedExit().check(pool, position, START + 7 * DAY)
        assert LockedExit().penalty_percent(pool, position, START) == 0

    def test_strategies_share_one_interface(self):
        for policy in ExitPolicy:
            strategy = exit_policy_for(make_pool(exit_policy=policy))
            assert strategy.policy is policy
            assert isinstance(strategy, ExitStrategy)


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY & LEDGER
# ══════════════════════════════════════════════════════════════════════


class TestPoolRegistry:

    def test_sequential_ids(self):
        registry = PoolRegistry()
        assert registry.add(make_pool(pool_id=0)) == 0
        assert registry.add(make_pool(pool_id=1)) == 1
        assert len(registry) == 2
        assert registry.get(1).pool_id == 1

    def test_rejects_out_of_order_id(self):
        registry = PoolRegistry()
        with pytest.raises(InvalidPoolError):
            registry.add(make_pool(pool_id=3))

    @pytest.mark.parametrize("pool_id", [-1, 1, 99, "0", None, False, True])
    def test_get_invalid_id(self, pool_id):
        registry = PoolRegistry()
        registry.add(make_pool())
        with pytest.raises(InvalidPoolError):
            registry.get(pool_id)

    def test_truncate(self):
        registry = PoolRegistry()
        registry.add(make_pool(pool_id=0))
        registry.add(make_pool(pool_id=1))
        registry.truncate(1)
        assert len(registry) == 1
        assert not registry.exists(1)


class TestPositionLedger:

    def test_get_missing_returns_detached_empty(self):
        ledger = PositionLedger()
        position = ledger.get(0, "alice")
        assert position.amount == 0
        position.amount = 5
        assert ledger.find(0, "alice") is None
        assert len(ledger) == 0

    def test_get_or_create_is_stable(self):
        ledger = PositionLedger()
        first = ledger.get_or_create(0, "alice")
        first.amount = 7
        assert ledger.get_or_create(0, "alice") is first
        assert ledger.get(0, "alice").amount == 7

    def test_total_for_pool(self):
        ledger = PositionLedger()
        ledger.get_or_create(0, "alice").amount = 3
        ledger.get_or_create(0, "bob").amount = 4
        ledger.get_or_create(1, "alice").amount = 100
        assert ledger.total_for(0) == 7
        assert ledger.total_for(1) == 100
        assert sorted(user for user, _ in ledger.positions_for(0)) == ["alice", "bob"]
