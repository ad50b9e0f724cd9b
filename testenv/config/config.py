"""
Configuration dataclasses for services.
"""

import os
import shutil
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

import toml

from testenv.errors import EnvironmentSetupError


@dataclass
class BitcoindConf:
    rpc_user: str = field(default="testenv")
    rpc_password: str = field(default="testenv-rpc")
    wallet: str | None = field(default="default")
    fallback_fee: str = field(default="0.00001")
    txindex: bool = field(default=True)
    extra_args: list[str] = field(default_factory=list)


@dataclass
class ElectrsdConf:
    # Not electrs' own default; the Esplora API is needed by HTTP-based consumers.
    http_enabled: bool = field(default=True)
    monitoring_enabled: bool = field(default=False)
    verbosity: int = field(default=3)
    extra_args: list[str] = field(default_factory=list)


@dataclass
class Config:
    bitcoind: BitcoindConf = field(default_factory=BitcoindConf)
    electrsd: ElectrsdConf = field(default_factory=ElectrsdConf)

    def as_toml_string(self) -> str:
        d = asdict(self)
        # toml has no null; an unset wallet is simply omitted
        d["bitcoind"] = {k: v for k, v in d["bitcoind"].items() if v is not None}
        return toml.dumps(d)

    @classmethod
    def from_dict(cls, d: dict) -> "Config":
        """
        Build a config from a (possibly partial) nested dict.

        Unknown keys are rejected so that typos in config files do not go unnoticed.
        """
        return cls(
            bitcoind=_section(BitcoindConf, d.get("bitcoind", {})),
            electrsd=_section(ElectrsdConf, d.get("electrsd", {})),
        )

    @classmethod
    def from_toml(cls, path: str | Path) -> "Config":
        with open(path) as f:
            return cls.from_dict(toml.load(f))


def _section(typ, values: dict):
    known = {f.name for f in fields(typ)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"unknown {typ.__name__} keys: {sorted(unknown)}")
    return typ(**values)


def resolve_exe(env_var: str, default_name: str) -> str:
    """
    Resolve a service executable.

    The environment variable wins; otherwise the executable is looked up on `PATH`.

    Raises:
        EnvironmentSetupError: If neither yields an executable
    """
    path = os.environ.get(env_var)
    if path:
        return path

    found = shutil.which(default_name)
    if found is None:
        raise EnvironmentSetupError(
            f"you need to provide an env var {env_var} or have `{default_name}` on PATH"
        )
    return found
