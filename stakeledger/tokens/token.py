"""
Fungible Token

In-process fungible token used as the deposit and reward collaborator of the
staking engine. The surface is ERC-20 shaped (balance_of, transfer, approve,
transfer_from) with a few extras the engine and its tests rely on:

  - deployer-only minting
  - a freeze switch that makes every transfer fail
  - an optional async hook awaited after each transfer (token callbacks)
  - revert_transfer, so an aborted engine action can undo exactly the
    transfers it made

Amounts are integers in the token's smallest unit.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ..constants import TOKEN_DEFAULT_DECIMALS, TOKEN_MAX_SUPPLY
from ..logger import get_logger

logger = get_logger(__name__)

MINT_SOURCE = ""


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TokenError(Exception):
    """Base exception for token operations."""


class InsufficientBalanceError(TokenError):
    """Sender holds less than the amount moved."""


class InsufficientAllowanceError(TokenError):
    """Spender's allowance is below the amount moved."""


class TokenFrozenError(TokenError):
    """Token is frozen; nothing moves."""


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """A balance move; mints carry an empty ``sender``."""
    token_symbol: str
    sender: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    @property
    def is_mint(self) -> bool:
        return self.sender == MINT_SOURCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Mint" if self.is_mint else "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


TransferHook = Callable[[TransferEvent], Awaitable[None]]


# ══════════════════════════════════════════════════════════════════════
#  COLLABORATOR CONTRACT
# ══════════════════════════════════════════════════════════════════════

@runtime_checkable
class TokenLike(Protocol):
    """
    What the staking engine needs from a token.

    ``transfer`` / ``transfer_from`` return a truthy value on success; a
    falsy return or a raised exception aborts the engine action and must
    leave balances as they were. ``revert_transfer`` undoes one completed
    transfer and is how the engine rolls back the transfers it made.
    """

    symbol: str

    def balance_of(self, address: str) -> int: ...

    async def transfer(self, sender: str, recipient: str, amount: int) -> Any: ...

    async def transfer_from(self, spender: str, sender: str, recipient: str, amount: int) -> Any: ...

    def revert_transfer(
        self, sender: str, recipient: str, amount: int, spender: Optional[str] = None
    ) -> Any: ...


# ══════════════════════════════════════════════════════════════════════
#  TOKEN
# ══════════════════════════════════════════════════════════════════════

class Token:
    """
    Fungible token.

    Usage:
        stk = Token("Stake", "STK", deployer="admin")
        stk.mint("admin", "alice", 1000)
        await stk.approve("alice", engine.address, 1000)
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int = TOKEN_DEFAULT_DECIMALS,
        total_supply: int = 0,
        deployer: str = "",
        *,
        transfer_hook: Optional[TransferHook] = None,
    ):
        if not name or not symbol:
            raise TokenError("Token name and symbol are required")
        if not 0 <= decimals <= 18:
            raise TokenError(f"Decimals must be 0-18, got {decimals}")
        if not 0 <= total_supply <= TOKEN_MAX_SUPPLY:
            raise TokenError(f"Initial supply {total_supply} outside 0..{TOKEN_MAX_SUPPLY}")

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.deployer = deployer
        self.transfer_hook = transfer_hook
        self.created_at = time.time()

        self._frozen = False
        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)
        self._events: List[Any] = []

        if total_supply and deployer:
            self._issue(deployer, total_supply)
        logger.info(f"Token {symbol} ({name}) created, supply={self._total_supply}")

    # ── Views ─────────────────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    # ── Internals ─────────────────────────────────────────────────────

    def _check_movable(self, amount: int) -> None:
        if self._frozen:
            raise TokenFrozenError(f"{self.symbol} is frozen")
        if amount <= 0:
            raise TokenError(f"{self.symbol} amount must be positive, got {amount}")

    def _issue(self, recipient: str, amount: int) -> TransferEvent:
        self._total_supply += amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        event = TransferEvent(self.symbol, MINT_SOURCE, recipient, amount)
        self._events.append(event)
        return event

    def _move(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {available} {self.symbol}, needs {amount}"
            )
        self._balances[sender] = available - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        event = TransferEvent(self.symbol, sender, recipient, amount)
        self._events.append(event)
        logger.debug(f"{self.symbol} {sender} → {recipient} amount={amount}")
        return event

    async def _notify(self, event: TransferEvent, spender: Optional[str] = None) -> TransferEvent:
        """Run the transfer hook; a failing hook undoes the transfer it was told about."""
        if self.transfer_hook is None:
            return event
        try:
            await self.transfer_hook(event)
        except BaseException:
            self.revert_transfer(event.sender, event.recipient, event.amount, spender)
            raise
        return event

    # ── Transfers ─────────────────────────────────────────────────────

    async def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        self._check_movable(amount)
        if sender == recipient:
            raise TokenError("Cannot transfer to self")
        return await self._notify(self._move(sender, recipient, amount))

    async def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        """Set (not add to) *spender*'s allowance over *owner*'s balance."""
        if self._frozen:
            raise TokenFrozenError(f"{self.symbol} is frozen")
        if amount < 0:
            raise TokenError("Allowance cannot be negative")
        self._allowances[(owner, spender)] = amount
        event = ApprovalEvent(self.symbol, owner, spender, amount)
        self._events.append(event)
        return event

    async def transfer_from(
        self, spender: str, sender: str, recipient: str, amount: int
    ) -> TransferEvent:
        """Move *sender*'s tokens on their behalf, consuming *spender*'s allowance."""
        self._check_movable(amount)
        allowed = self.allowance(sender, spender)
        if allowed < amount:
            raise InsufficientAllowanceError(
                f"{spender} may move {allowed} {self.symbol} of {sender}, needs {amount}"
            )
        event = self._move(sender, recipient, amount)
        self._allowances[(sender, spender)] = allowed - amount
        return await self._notify(event, spender)

    # ── Supply & admin ────────────────────────────────────────────────

    def mint(self, minter: str, recipient: str, amount: int) -> TransferEvent:
        self._check_movable(amount)
        if minter != self.deployer:
            raise TokenError(f"{minter} is not allowed to mint {self.symbol}")
        if self._total_supply + amount > TOKEN_MAX_SUPPLY:
            raise TokenError(f"Minting {amount} {self.symbol} exceeds max supply")
        logger.info(f"Mint {self.symbol} → {recipient} amount={amount}")
        return self._issue(recipient, amount)

    def freeze(self) -> None:
        self._frozen = True
        logger.warning(f"Token {self.symbol} frozen")

    def unfreeze(self) -> None:
        self._frozen = False
        logger.info(f"Token {self.symbol} unfrozen")

    # ── Rollback support ──────────────────────────────────────────────

    def revert_transfer(
        self, sender: str, recipient: str, amount: int, spender: Optional[str] = None
    ) -> TransferEvent:
        """
        Undo a completed transfer of *amount* from *sender* to *recipient*.

        Only the two balances involved change (plus *spender*'s allowance when
        the transfer went through transfer_from), so transfers between other
        holders made in the meantime are untouched. Ignores the freeze switch
        and the hook; fails if *recipient* no longer holds *amount*.
        """
        event = self._move(recipient, sender, amount)
        if spender is not None:
            self._allowances[(sender, spender)] = self.allowance(sender, spender) + amount
        logger.debug(f"{self.symbol} reverted {sender} → {recipient} amount={amount}")
        return event

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": str(self._total_supply),
            "deployer": self.deployer,
            "frozen": self._frozen,
            "holders": sum(1 for b in self._balances.values() if b > 0),
            "createdAt": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Token {self.symbol} supply={self._total_supply}>"
