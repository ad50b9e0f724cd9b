"""
Esplora REST client for electrs' HTTP interface.
"""

import logging

import requests

from testenv.errors import IndexerRpcError


class EsploraClient:
    """
    Thin client over the handful of Esplora endpoints the environment needs.

    Usage:
        esplora = EsploraClient("http://127.0.0.1:3002")
        height = esplora.tip_height()
    """

    def __init__(self, base_url: str, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(f"rpc.esplora.{self.base_url}")

    def _get(self, path: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        self.logger.debug(f"GET {url}")
        try:
            resp = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.warning(f"request failed: {e}")
            raise IndexerRpcError(path, str(e), transport=True) from e

        if resp.status_code == 404:
            raise IndexerRpcError(path, {"code": 404, "message": f"not found: {resp.text}"})
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            self.logger.warning(f"request failed: {e}")
            raise IndexerRpcError(path, {"code": resp.status_code, "message": resp.text}) from e
        return resp

    def tip_height(self) -> int:
        return int(self._get("/blocks/tip/height").text)

    def tip_hash(self) -> str:
        return self._get("/blocks/tip/hash").text.strip()

    def get_tx(self, txid: str) -> dict | None:
        """Transaction as JSON, or None if esplora does not know it (yet)."""
        try:
            return self._get(f"/tx/{txid}").json()
        except IndexerRpcError as e:
            if e.is_not_found:
                return None
            raise
