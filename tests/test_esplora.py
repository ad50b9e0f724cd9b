"""
Tests for the Esplora REST client with `requests.get` replaced.
"""

from types import SimpleNamespace

import pytest
import requests

from testenv.errors import IndexerRpcError
from testenv.esplora import EsploraClient

BASE_URL = "http://127.0.0.1:3002"


def response(status: int, body: str) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body.encode()
    resp.encoding = "utf-8"
    resp.url = BASE_URL
    return resp


@pytest.fixture
def routes(monkeypatch):
    table: dict[str, requests.Response] = {}
    requested: list[str] = []

    def fake_get(url, timeout):
        requested.append(url)
        path = url.removeprefix(BASE_URL)
        if path not in table:
            return response(404, "Transaction not found")
        return table[path]

    monkeypatch.setattr(requests, "get", fake_get)
    return SimpleNamespace(table=table, requested=requested)


def test_tip(routes):
    routes.table["/blocks/tip/height"] = response(200, "101")
    routes.table["/blocks/tip/hash"] = response(200, "ab" * 32 + "\n")

    esplora = EsploraClient(BASE_URL + "/")
    assert esplora.tip_height() == 101
    assert esplora.tip_hash() == "ab" * 32
    assert routes.requested == [f"{BASE_URL}/blocks/tip/height", f"{BASE_URL}/blocks/tip/hash"]


def test_get_tx(routes):
    routes.table["/tx/" + "ab" * 32] = response(200, '{"txid": "' + "ab" * 32 + '", "status": {"confirmed": false}}')

    esplora = EsploraClient(BASE_URL)
    assert esplora.get_tx("ab" * 32)["status"] == {"confirmed": False}
    assert esplora.get_tx("cd" * 32) is None


def test_server_error(routes):
    routes.table["/blocks/tip/height"] = response(500, "internal error")

    with pytest.raises(IndexerRpcError) as e:
        EsploraClient(BASE_URL).tip_height()
    assert e.value.code == 500
    assert e.value.method == "/blocks/tip/height"


def test_server_error_is_not_not_found(routes):
    routes.table["/tx/" + "ab" * 32] = response(400, "invalid hex string")

    with pytest.raises(IndexerRpcError):
        EsploraClient(BASE_URL).get_tx("ab" * 32)


def test_transport_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "get", fake_get)
    with pytest.raises(IndexerRpcError) as e:
        EsploraClient(BASE_URL).tip_height()
    assert e.value.code is None
    assert e.value.transport
    assert not e.value.is_not_found
