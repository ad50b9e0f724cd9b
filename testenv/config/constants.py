"""
Constants used throughout the test environment.
"""

from enum import Enum

BITCOIND_EXE_ENV = "BITCOIND_EXE"
ELECTRS_EXE_ENV = "ELECTRS_EXE"

DEFAULT_POLL_INTERVAL = 0.2

# getblockhash: "Block height out of range"
RPC_INVALID_PARAMETER = -8


class ServiceType(str, Enum):
    """
    Keys of the two services in an environment, also used as their directory and
    logger names.

    Usage:
        services = {ServiceType.Bitcoin: bitcoind, ServiceType.Electrs: electrsd}
        bitcoind = env.get_service(ServiceType.Bitcoin)
    """

    Bitcoin = "bitcoin"
    Electrs = "electrs"

    def __str__(self) -> str:
        return self.value
