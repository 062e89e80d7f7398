import json
import logging
import socket
import struct

import httpx
import pytest

from groonga_relay.client import network_client
from groonga_relay.client.network_client import GQTPTransport, NetworkClient
from groonga_relay.client.response import Response
from groonga_relay.errors import ClientError
from groonga_relay.output.config import NetworkConfig


def test_response_from_http_envelope():
    response = Response.from_http('[[0,1700000000.0,0.001],[[["name","ShortText"]],["Users"]]]')
    assert response.success
    assert response.records() == [{"name": "Users"}]


def test_response_from_http_error_envelope():
    response = Response.from_http('[[-22,1700000000.0,0.001,"invalid table name"],false]')
    assert response.status_known
    assert not response.success
    assert response.error_message == "invalid table name"


@pytest.mark.parametrize("text", ["", "<html>", "{}"])
def test_response_from_http_rejects_garbage(text):
    with pytest.raises(ClientError):
        Response.from_http(text)


@pytest.fixture
def http_requests(monkeypatch):
    requests = []

    def handler(request):
        requests.append(request)
        if request.url.path == "/d/load":
            return httpx.Response(200, text="[[0,0.0,0.0],2]")
        return httpx.Response(200, text="[[0,0.0,0.0],true]")

    real_client = httpx.Client
    monkeypatch.setattr(
        network_client.httpx,
        "Client",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )
    return requests


def test_http_commands_use_get_and_load_uses_post(http_requests):
    client = NetworkClient(NetworkConfig(protocol="http", host="groonga", port=10041))
    client.start()

    assert client.execute("table_create", {"name": "Users", "flags": "TABLE_NO_KEY"}).success
    response = client.execute("load", {"table": "Users", "values": '[{"a":1},{"a":2}]'})
    client.shutdown()

    create, load = http_requests
    assert create.method == "GET"
    assert create.url.host == "groonga"
    assert create.url.raw_path == b"/d/table_create?name=Users&flags=TABLE_NO_KEY"
    assert load.method == "POST"
    assert load.url.raw_path == b"/d/load?table=Users"
    assert json.loads(load.content) == [{"a": 1}, {"a": 2}]
    assert response.body == 2


def test_http_connection_is_created_lazily_and_reused(http_requests):
    client = NetworkClient(NetworkConfig(protocol="http", port=10041))
    client.start()
    assert client.transport is None

    client.execute("status")
    transport = client.transport
    client.execute("status")
    assert client.transport is transport

    client.shutdown()
    assert client.transport is None


def test_sent_commands_are_logged_without_load_body(http_requests, caplog):
    caplog.set_level(logging.DEBUG, logger="groonga_relay.client.network_client")
    client = NetworkClient(NetworkConfig(protocol="http", port=10041))
    client.start()
    client.execute("select", {"table": "Users", "query": "name:@Alice Bob"})
    client.execute("load", {"table": "Users", "values": '[{"secret":1}]'})
    client.shutdown()

    messages = [r.message for r in caplog.records if r.name == "groonga_relay.client.network_client"]
    assert 'Sending select --table Users --query "name:@Alice Bob"' in messages
    assert "Sending load --table Users" in messages
    assert not any("secret" in m for m in messages)


def test_http_failure_is_a_client_error(monkeypatch):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    real_client = httpx.Client
    monkeypatch.setattr(
        network_client.httpx,
        "Client",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )
    client = NetworkClient(NetworkConfig(protocol="http", port=10041))
    with pytest.raises(ClientError):
        client.execute("status")


def _gqtp_reply(body, status=0, flags=0):
    header = GQTPTransport.HEADER.pack(0xC7, 0, 0, 0, flags, status, len(body), 0, 0)
    return header + body


def test_gqtp_exchange(monkeypatch):
    client_end, server_end = socket.socketpair()
    monkeypatch.setattr(
        network_client.socket, "create_connection", lambda address, timeout=None: client_end
    )
    server_end.sendall(_gqtp_reply(b"[[[\"name\",", flags=GQTPTransport.FLAG_MORE))
    server_end.sendall(_gqtp_reply(b"\"ShortText\"]],[\"Users\"]]"))

    client = NetworkClient(NetworkConfig(protocol="gqtp", port=10043))
    response = client.execute("table_list")

    request = server_end.recv(4096)
    header = GQTPTransport.HEADER.unpack(request[:24])
    assert header[0] == 0xC7
    assert header[6] == len(b"/d/table_list")
    assert request[24:] == b"/d/table_list"
    assert response.success
    assert response.records() == [{"name": "Users"}]

    client.shutdown()
    server_end.close()


def test_gqtp_error_status_is_signed(monkeypatch):
    client_end, server_end = socket.socketpair()
    monkeypatch.setattr(
        network_client.socket, "create_connection", lambda address, timeout=None: client_end
    )
    server_end.sendall(_gqtp_reply(b"invalid name", status=struct.unpack(">H", struct.pack(">h", -22))[0]))

    client = NetworkClient(NetworkConfig(protocol="gqtp", port=10043))
    response = client.execute("column_create", {"table": "T", "name": "bad name"})

    assert response.status_code == -22
    assert not response.success
    assert response.error_message == "invalid name"
    client.shutdown()
    server_end.close()


def test_gqtp_connection_refused(monkeypatch):
    def refuse(address, timeout=None):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(network_client.socket, "create_connection", refuse)
    client = NetworkClient(NetworkConfig(protocol="gqtp", port=10043))
    with pytest.raises(ClientError):
        client.execute("status")
