"""
Stakeledger Exceptions

Custom exception classes for the staking ledger. Every engine failure is a
synchronous rejection; the action that raised it leaves no partial effect.
"""


class StakeledgerException(Exception):
    """Base exception for stakeledger."""
    pass


class ConfigurationError(StakeledgerException):
    """Configuration error."""
    pass


class StakingError(StakeledgerException):
    """Base exception for staking engine actions."""
    pass


class ValidationError(StakingError):
    """Action arguments or pool state fail a precondition."""
    pass


class InvalidPoolError(ValidationError):
    """Pool id is outside the registry's range."""
    pass


class UnauthorizedError(StakingError):
    """Caller is not the administrator for an admin-only action."""
    pass


class StateConflictError(StakingError):
    """Action conflicts with current state (already paused, nothing to claim, ...)."""
    pass


class TransferFailedError(StakingError):
    """A token collaborator reported failure; the enclosing action is rolled back."""
    pass


class ReentrancyError(StakingError):
    """A state-mutating action was entered from within another in-flight action."""
    pass
