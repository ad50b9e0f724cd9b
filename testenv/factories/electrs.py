"""
electrs service factory.
Creates electrs (esplora flavour) indexers attached to a regtest bitcoind.
"""

import contextlib
import os

import flexitest

from testenv.config import ElectrsdConf, ServiceType
from testenv.errors import EnvironmentSetupError
from testenv.services import BitcoinService, ElectrsProps, ElectrsService

LOCALHOST = "127.0.0.1"


def start_electrs(
    exe: str,
    bitcoind: BitcoinService,
    service_dir: str,
    electrum_port: int,
    conf: ElectrsdConf,
    http_port: int | None = None,
    monitoring_port: int | None = None,
    name: str = ServiceType.Electrs,
) -> ElectrsService:
    """
    Start electrs indexing `bitcoind` over JSON-RPC.

    Every start gets a fresh database directory under `service_dir`, so a restarted
    indexer re-indexes the node's chain from scratch.

    Raises:
        EnvironmentSetupError: If the process cannot be started
    """
    generation = sum(1 for entry in os.listdir(service_dir) if entry.startswith("db."))
    db_dir = os.path.join(service_dir, f"db.{generation}")
    os.makedirs(db_dir)
    logfile = os.path.join(service_dir, "service.log")

    daemon_rpc_addr = f"{LOCALHOST}:{bitcoind.get_prop('rpc_port')}"
    cookie = f"{bitcoind.get_prop('rpc_user')}:{bitcoind.get_prop('rpc_password')}"

    # fmt: off
    cmd = [
        exe,
        "--network", "regtest",
        "--db-dir", db_dir,
        "--daemon-dir", bitcoind.get_prop("datadir"),
        "--daemon-rpc-addr", daemon_rpc_addr,
        "--cookie", cookie,
        "--jsonrpc-import",
        "--electrum-rpc-addr", f"{LOCALHOST}:{electrum_port}",
    ]
    # fmt: on
    if conf.verbosity > 0:
        cmd.append("-" + "v" * conf.verbosity)

    http_url = None
    if conf.http_enabled:
        if http_port is None:
            raise ValueError("http_port is required when the HTTP interface is enabled")
        cmd.extend(["--http-addr", f"{LOCALHOST}:{http_port}"])
        http_url = f"http://{LOCALHOST}:{http_port}"

    if conf.monitoring_enabled:
        if monitoring_port is None:
            raise ValueError("monitoring_port is required when monitoring is enabled")
        cmd.extend(["--monitoring-addr", f"{LOCALHOST}:{monitoring_port}"])

    cmd.extend(conf.extra_args)

    props: ElectrsProps = {
        "electrum_host": LOCALHOST,
        "electrum_port": electrum_port,
        "http_port": http_port if conf.http_enabled else None,
        "http_url": http_url,
        "monitoring_port": monitoring_port if conf.monitoring_enabled else None,
        "service_dir": service_dir,
        "db_dir": db_dir,
        "daemon_rpc_addr": daemon_rpc_addr,
    }

    svc = ElectrsService(props, cmd, stdout=logfile, name=name)
    try:
        svc.start()
    except Exception as e:
        with contextlib.suppress(Exception):
            svc.stop()
        raise EnvironmentSetupError(f"Failed to start electrs service: {e}") from e

    return svc


def restart_electrs(
    exe: str, old: ElectrsService, bitcoind: BitcoinService, conf: ElectrsdConf
) -> ElectrsService:
    """
    Stop `old` and start a replacement on the same ports with a fresh database.
    """
    old.stop()
    return start_electrs(
        exe,
        bitcoind,
        old.get_prop("service_dir"),
        old.get_prop("electrum_port"),
        conf,
        http_port=old.get_prop("http_port"),
        monitoring_port=old.get_prop("monitoring_port"),
    )


class ElectrsFactory(flexitest.Factory):
    """
    Factory for creating electrs indexers.

    Usage:
        factory = ElectrsFactory(range(60401, 60501), exe="/usr/local/bin/electrs")
        electrsd = factory.create_electrs(bitcoind, ElectrsdConf())
        client = electrsd.client
    """

    def __init__(self, port_range: range, exe: str):
        ports = list(port_range)
        if any(p < 1024 or p > 65535 for p in ports):
            raise ValueError(
                f"ElectrsFactory: Port range must be between 1024 and 65535. "
                f"Got: {port_range.start}-{port_range.stop - 1}"
            )
        super().__init__(ports)
        self.exe = exe

    @flexitest.with_ectx("ctx")
    def create_electrs(self, bitcoind: BitcoinService, conf: ElectrsdConf, **kwargs) -> ElectrsService:
        ctx: flexitest.EnvContext = kwargs["ctx"]

        service_dir = ctx.make_service_dir(ServiceType.Electrs)
        electrum_port = self.next_port()
        http_port = self.next_port() if conf.http_enabled else None
        monitoring_port = self.next_port() if conf.monitoring_enabled else None

        return start_electrs(
            self.exe,
            bitcoind,
            service_dir,
            electrum_port,
            conf,
            http_port=http_port,
            monitoring_port=monitoring_port,
        )
