"""
Configuration dataclasses and constants.
"""

from testenv.config.config import BitcoindConf, Config, ElectrsdConf, resolve_exe
from testenv.config.constants import (
    BITCOIND_EXE_ENV,
    DEFAULT_POLL_INTERVAL,
    ELECTRS_EXE_ENV,
    RPC_INVALID_PARAMETER,
    ServiceType,
)

__all__ = [
    # config.py
    "Config",
    "BitcoindConf",
    "ElectrsdConf",
    "resolve_exe",
    # constants.py
    "ServiceType",
    "BITCOIND_EXE_ENV",
    "ELECTRS_EXE_ENV",
    "DEFAULT_POLL_INTERVAL",
    "RPC_INVALID_PARAMETER",
]
