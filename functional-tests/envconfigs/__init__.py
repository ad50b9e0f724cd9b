"""Environment configurations for functional tests."""

from envconfigs.regtest import RegtestEnvConfig

__all__ = [
    "RegtestEnvConfig",
]
