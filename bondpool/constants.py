"""
bondpool Constants

This module consolidates global constants and environment configuration
used throughout the codebase. Environment values are read once, at import,
from a local `.env` file; every value keeps its default alongside it.
"""

from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

PROTOCOL_DEFAULTS = {
    'BONDPOOL_POOL_ADDRESS':           'bondpool.reserve',
    'BONDPOOL_CUSTODY_ADDRESS':        'bondpool.auction',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# AUCTION PARAMETERS
# ==================================================================================
# Bounds applied at auction creation: min <= duration < max (seconds)
DEFAULT_MIN_AUCTION_DURATION = 60 * 60            # 1 hour
DEFAULT_MAX_AUCTION_DURATION = 60 * 60 * 24 * 30  # 30 days

# First id handed out by the auction store
FIRST_AUCTION_ID = 1


# ==================================================================================
# ENVIRONMENT VALUES
# ==================================================================================
class ConfigString(str):
    """
    String subclass that remembers its default, so a bad override
    (an unusable log format, say) can fall back to it.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default


def parse_bool(v):
    """
    "True"/"False" in any casing, surrounding whitespace ignored.
    Anything else returns None.
    """
    s = v.strip().casefold() if isinstance(v, str) else ""
    if s == "true":
        return True
    if s == "false":
        return False
    return None


def _raw(key, defaults):
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    return defaults[key] if raw is None else raw


def _string(key, defaults):
    return ConfigString(_raw(key, defaults), defaults[key])


def _flag(key, defaults):
    value = parse_bool(_raw(key, defaults))
    return parse_bool(defaults[key]) if value is None else value


LOG_LEVEL = _string('LOG_LEVEL', LOGGER_DEFAULTS)
LOG_FORMAT = _string('LOG_FORMAT', LOGGER_DEFAULTS)
LOG_DATE_FORMAT = _string('LOG_DATE_FORMAT', LOGGER_DEFAULTS)
LOG_CONSOLE_HIGHLIGHTING = _flag('LOG_CONSOLE_HIGHLIGHTING', LOGGER_DEFAULTS)
LOG_FILE_OUTPUT = _flag('LOG_FILE_OUTPUT', LOGGER_DEFAULTS)

BONDPOOL_POOL_ADDRESS = _string('BONDPOOL_POOL_ADDRESS', PROTOCOL_DEFAULTS)
BONDPOOL_CUSTODY_ADDRESS = _string('BONDPOOL_CUSTODY_ADDRESS', PROTOCOL_DEFAULTS)
