"""
Stakeledger Package

Multi-pool, reward-accruing deposit ledger.

Core imports are lazily loaded. For direct module access, import from
submodules:

    from stakeledger.staking import StakingEngine, OwnerAuthorizer
    from stakeledger.tokens import Token
    from stakeledger.config import load_config
"""

__version__ = "1.0.0"


# Lazy imports keep `import stakeledger` free of logging side effects
def __getattr__(name):
    """Lazy module loading."""
    if name == 'StakingEngine':
        from .staking import StakingEngine
        return StakingEngine
    elif name == 'Token':
        from .tokens import Token
        return Token
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'stakeledger' has no attribute {name!r}")

__all__ = ['StakingEngine', 'Token', 'load_config']
