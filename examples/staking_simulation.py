"""
Staking Engine Example

Walks through a pool's life cycle on a manual clock: deposits, reward
accrual, an early (penalised) withdrawal, a pause and an emergency exit.
"""

import asyncio

from stakeledger.staking import ManualClock, OwnerAuthorizer, StakingEngine
from stakeledger.tokens import Token

ADMIN = '0xAdmin'
ALICE = '0xAlice'
BOB = '0xBob'

DAY = 86_400
E18 = 10**18


async def setup_engine():
    """Example: Deploy tokens, fund users and create a pool."""

    clock = ManualClock(1_700_000_000)
    engine = StakingEngine(OwnerAuthorizer(ADMIN), clock=clock)
    engine.events.subscribe(lambda e: print(f"   event {e.name:<18} {e.caller} amount={e.amount}"))

    stake = Token(name='Stake Token', symbol='STK', deployer=ADMIN)
    reward = Token(name='Reward Token', symbol='RWD', deployer=ADMIN)

    for user in (ALICE, BOB):
        stake.mint(ADMIN, user, 10_000 * E18)
        await stake.approve(user, engine.address, 10_000 * E18)

    # Reward budget is held by the engine
    reward.mint(ADMIN, ADMIN, 1_000_000 * E18)
    await reward.approve(ADMIN, engine.address, 1_000_000 * E18)

    pool_id = await engine.create_pool(
        ADMIN,
        stake,
        reward,
        reward_rate=E18,                    # 1 RWD per second
        lock_duration=7 * DAY,
        end_time=clock.now() + 90 * DAY,
        penalty_duration=3 * DAY,
        max_penalty=10,                     # 10% at deposit time, 0% after 3 days
    )
    await engine.fund_rewards(ADMIN, pool_id, 1_000_000 * E18)

    return engine, clock, pool_id


async def example_reward_accrual(engine, clock, pool_id):
    """Example: Two depositors share the reward stream pro rata."""

    await engine.deposit(ALICE, pool_id, 1_000 * E18)
    await engine.deposit(BOB, pool_id, 3_000 * E18)
    clock.advance(1_000)

    for user in (ALICE, BOB):
        print(f"   {user} pending: {engine.pending_reward(pool_id, user) / E18:.2f} RWD")

    paid = await engine.claim(ALICE, pool_id)
    print(f"   {ALICE} claimed {paid / E18:.2f} RWD")


async def example_early_withdraw(engine, clock, pool_id):
    """Example: Withdraw one day in, inside the penalty window."""

    clock.advance(DAY)
    print(f"   current penalty for {BOB}: {engine.get_penalty(pool_id, BOB)}%")
    result = await engine.withdraw(BOB, pool_id, 1_000 * E18)
    print(
        f"   received={result['received'] / E18:.2f} STK "
        f"penalty={result['penalty'] / E18:.2f} STK reward={result['reward'] / E18:.2f} RWD"
    )


async def example_pause_and_emergency(engine, pool_id):
    """Example: Pause the pool, then leave without rewards."""

    await engine.pause_pool(ADMIN, pool_id)
    returned = await engine.emergency_withdraw(ALICE, pool_id)
    print(f"   {ALICE} emergency-withdrew {returned / E18:.2f} STK")
    await engine.resume_pool(ADMIN, pool_id)


async def main():
    """Run all examples."""

    print("=" * 70)
    print("Stakeledger Staking Examples")
    print("=" * 70)
    print()

    print("1. Creating pool...")
    engine, clock, pool_id = await setup_engine()
    print()

    print("2. Accruing rewards...")
    await example_reward_accrual(engine, clock, pool_id)
    print()

    print("3. Early withdrawal...")
    await example_early_withdraw(engine, clock, pool_id)
    print()

    print("4. Pause and emergency exit...")
    await example_pause_and_emergency(engine, pool_id)
    print()

    print(f"   stats: {engine.get_stats()}")
    print("=" * 70)
    print("Examples complete!")
    print("=" * 70)


if __name__ == '__main__':
    asyncio.run(main())
