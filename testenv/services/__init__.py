"""
Service wrappers for test infrastructure.
"""

from testenv.services.base import RpcService
from testenv.services.bitcoin import BitcoinProps, BitcoinService
from testenv.services.electrs import ElectrsProps, ElectrsService

__all__ = [
    "RpcService",
    "BitcoinService",
    "BitcoinProps",
    "ElectrsService",
    "ElectrsProps",
]
