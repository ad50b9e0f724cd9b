"""
Waiting for electrs to catch up with the node.

electrs indexes asynchronously, so after mutating the chain a test has to poll it
before querying indexed state. Each waiter below is a probe plugged into `wait_until`.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from testenv.config import DEFAULT_POLL_INTERVAL
from testenv.electrum import ElectrumClient
from testenv.errors import IndexerRpcError, TimedOut
from testenv.esplora import EsploraClient
from testenv.wait import wait_until

logger = logging.getLogger(__name__)

# floor for a single Electrum read once the wait's deadline is near
MIN_READ_TIMEOUT = 0.05


def _bounded_call(
    client: ElectrumClient,
    deadline: float,
    error_with: str,
    timeout: float,
    fn: Callable[[], Any],
) -> Any:
    """
    Run one Electrum call with its reads limited to the time left before `deadline`.

    A read that times out after the deadline is reported as the wait timing out.
    """
    remaining = max(deadline - time.monotonic(), MIN_READ_TIMEOUT)
    try:
        with client.read_timeout(remaining):
            return fn()
    except IndexerRpcError as e:
        if e.transport and time.monotonic() >= deadline:
            raise TimedOut(error_with, timeout) from e
        raise


def wait_until_electrum_sees_block(
    client: ElectrumClient,
    trigger: Callable[[], None],
    timeout: float,
    step: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """
    Wait for the Electrum notification announcing a new block.

    `trigger` nudges electrs into polling the node; the ping that follows makes the
    client read any notification the server pushed in the meantime.

    Raises:
        TimedOut: If no header notification arrives within `timeout`
        IndexerRpcError: If electrs fails
    """
    error_with = "Timed out waiting for Electrsd to get block header"
    deadline = time.monotonic() + timeout
    _bounded_call(client, deadline, error_with, timeout, client.block_headers_subscribe)

    def _seen_block() -> bool:
        trigger()
        _bounded_call(client, deadline, error_with, timeout, client.ping)
        header = client.block_headers_pop()
        if header is not None:
            logger.debug(f"electrum saw header at height {header.get('height')}")
        return header is not None

    wait_until(_seen_block, error_with=error_with, timeout=timeout, step=step)


def wait_until_electrum_sees_txid(
    client: ElectrumClient,
    txid: str,
    timeout: float,
    step: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """
    Wait until electrs can serve the transaction `txid`.

    Raises:
        TimedOut: If the transaction is not served within `timeout`
        IndexerRpcError: If electrs fails for any reason other than not knowing the tx
    """
    error_with = f"Timed out waiting for Electrsd to get transaction {txid}"
    deadline = time.monotonic() + timeout

    def _seen_txid() -> bool:
        try:
            _bounded_call(client, deadline, error_with, timeout, lambda: client.transaction_get(txid))
        except IndexerRpcError as e:
            if e.is_not_found:
                return False
            raise
        return True

    wait_until(_seen_txid, error_with=error_with, timeout=timeout, step=step)


def wait_until_esplora_sees_height(
    esplora: EsploraClient,
    height: int,
    timeout: float,
    step: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Wait until the Esplora tip is at least `height`."""
    wait_until(
        lambda: esplora.tip_height() >= height,
        error_with=f"Timed out waiting for Esplora to reach height {height}",
        timeout=timeout,
        step=step,
    )
