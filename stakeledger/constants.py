"""
Stakeledger Constants

Accounting constants shared by the reward index and penalty code, engine
and token defaults, and the logging settings read from ``.env``.
"""
from dotenv import dotenv_values


# ==================================================================================
# REWARD ACCOUNTING
# ==================================================================================
# Changing these invalidates every stored reward debt and index value.
PRECISION = 10**18  # Fixed-point scale of accRewardPerShare
PERCENT = 100  # Penalty percentages are whole numbers out of 100
MAX_PENALTY_PERCENT = 50  # Upper bound on a pool's maxPenalty


# ==================================================================================
# ENGINE DEFAULTS
# ==================================================================================
DEFAULT_ENGINE_ADDRESS = "stakeledger:engine"
DEFAULT_CONFIG_FILE = "config.toml"


# ==================================================================================
# TOKEN PARAMETERS
# ==================================================================================
TOKEN_DEFAULT_DECIMALS = 18
TOKEN_MAX_SUPPLY = 10**36  # Smallest units


# ==================================================================================
# LOGGING (overridable from .env)
# ==================================================================================
LOG_MAX_FILE_SIZE = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

_LOG_SETTINGS = {
    'LOG_LEVEL':                'INFO',
    'LOG_FORMAT':               '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':          '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING': 'True',
    'LOG_FILE_ENABLED':         'False',
}


class ConfigString(str):
    """A ``.env`` string setting that still knows its built-in default."""

    def __new__(cls, value, default):
        obj = super().__new__(cls, value)
        obj.fallback = default
        return obj


class ConfigBool(int):
    """A ``.env`` flag; behaves as a bool and still knows its built-in default."""

    def __new__(cls, value, default):
        obj = super().__new__(cls, bool(value))
        obj.fallback = default
        return obj

    def __repr__(self):
        return repr(bool(self))

    __str__ = __repr__

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


def parse_bool(value):
    """Return True/False for "true"/"false" in any casing; anything else unchanged."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return value


def _load_log_settings(env_file=".env"):
    overrides = dotenv_values(env_file)
    settings = {}
    for key, default in _LOG_SETTINGS.items():
        raw = overrides.get(key)
        value = default if raw is None else raw
        if isinstance(parse_bool(default), bool):
            flag = parse_bool(value)
            if not isinstance(flag, bool):
                flag = parse_bool(default)
            settings[key] = ConfigBool(flag, parse_bool(default))
        else:
            settings[key] = ConfigString(value, default)
    return settings


globals().update(_load_log_settings())
