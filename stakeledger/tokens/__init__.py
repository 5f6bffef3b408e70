"""
Fungible tokens used as deposit and reward collaborators.

Provides:
  - Token      : in-process fungible token with ERC-20–style interface
  - TokenLike  : the contract the staking engine relies on
"""

from .token import (
    Token,
    TokenLike,
    TransferEvent,
    ApprovalEvent,
    TokenError,
    InsufficientBalanceError,
    InsufficientAllowanceError,
    TokenFrozenError,
)

__all__ = [
    "Token",
    "TokenLike",
    "TransferEvent",
    "ApprovalEvent",
    "TokenError",
    "InsufficientBalanceError",
    "InsufficientAllowanceError",
    "TokenFrozenError",
]
