"""Service factories for creating test services."""

from testenv.factories.bitcoin import BitcoinFactory, start_bitcoind
from testenv.factories.electrs import ElectrsFactory, restart_electrs, start_electrs

__all__ = [
    "BitcoinFactory",
    "ElectrsFactory",
    "start_bitcoind",
    "start_electrs",
    "restart_electrs",
]
