"""
Tests for the HTTP API.
"""
import socket

import pytest
from fastapi.testclient import TestClient

from tcpudp.api.deps import get_host, get_sender
from tcpudp.api.server import app
from tcpudp.config import settings


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "target_host", None)
    get_host.cache_clear()
    get_sender.cache_clear()
    with TestClient(app) as test_client:
        yield test_client
    get_host.cache_clear()
    get_sender.cache_clear()


@pytest.fixture
def udp_receiver():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "operational"


def test_health_reports_idle_sender(client):
    response = client.get("/api/system/health")

    assert response.status_code == 200
    assert response.json()["connection_state"] == "idle"


def test_default_config(client):
    response = client.get("/api/config")

    assert response.json() == {"transport": "tcp", "host": None, "port": 7000}


def test_config_fields(client):
    fields = client.get("/api/config/fields").json()

    assert [field["id"] for field in fields] == ["info", "host", "port", "transport"]
    port_field = fields[2]
    assert port_field["default"] == 7000


@pytest.mark.parametrize(
    "body",
    [
        {"transport": "tcp", "host": "projector.local", "port": 7000},
        {"transport": "tcp", "host": "10.0.0.1", "port": 70000},
        {"transport": "serial", "host": "10.0.0.1", "port": 7000},
    ],
)
def test_invalid_config_is_rejected(client, body):
    response = client.put("/api/config", json=body)

    assert response.status_code == 422
    assert client.get("/api/config").json()["host"] is None


def test_actions_list_terminators(client):
    actions = client.get("/api/actions").json()

    assert actions[0]["id"] == "send"
    terminator = actions[0]["options"][1]
    assert terminator["default"] == "\n"
    assert {"id": "\n\r", "label": "LFCR - \\n\\r (Just stupid)"} in terminator["choices"]


def test_send_while_idle_is_skipped(client):
    response = client.post("/api/actions/send", json={"command": "AB%0A", "terminator": "\r\n"})

    assert response.status_code == 200
    body = response.json()
    assert body["sent"] is False
    assert body["payload_hex"] == "41420a0d0a"
    assert body["size"] == 5


def test_send_rejects_unknown_terminator(client):
    response = client.post("/api/actions/send", json={"command": "PING", "terminator": "eol"})

    assert response.status_code == 422


def test_variables_feed_the_command(client):
    response = client.put("/api/variables", json={"custom:input": "%03"})
    assert response.json() == {"custom:input": "%03"}

    body = client.post(
        "/api/actions/send",
        json={"command": "SRC$(custom:input)", "terminator": "none"},
    ).json()

    assert body["payload_hex"] == "53524303"


def test_udp_send_reaches_target(client, udp_receiver):
    port = udp_receiver.getsockname()[1]

    response = client.put("/api/config", json={"transport": "udp", "host": "127.0.0.1", "port": port})
    assert response.status_code == 200
    assert response.json()["state"] in ("connecting", "connected")

    body = client.post("/api/actions/send", json={"command": "PWR%FF", "terminator": "crlf"}).json()

    assert body["sent"] is True
    assert body["transport"] == "udp"
    data, _ = udp_receiver.recvfrom(1024)
    assert data == b"PWR\xff\r\n"


def test_status_after_configure(client):
    client.put("/api/config", json={"transport": "udp", "host": "127.0.0.1", "port": 9})

    status = client.get("/api/status").json()

    assert status["level"] in ("warning", "ok")
    history = client.get("/api/status/history").json()["history"]
    assert history[0]["message"] == "Connecting"


@pytest.mark.parametrize("terminator", [5, 1.5, ["\n"]])
def test_send_rejects_non_string_terminator(client, terminator):
    response = client.post("/api/actions/send", json={"command": "X", "terminator": terminator})

    assert response.status_code == 422


def test_unbindable_udp_address_degrades_to_error_status(client, monkeypatch):
    monkeypatch.setattr(settings, "udp_bind_host", "203.0.113.7")

    response = client.put("/api/config", json={"transport": "udp", "host": "127.0.0.1", "port": 9})

    assert response.status_code == 200
    assert response.json()["state"] == "error"
    assert response.json()["level"] == "error"


def test_send_resolves_variables_once(client, udp_receiver, monkeypatch):
    sender = get_sender()
    calls = []
    resolve = sender.host.resolve_variables

    def counting_resolve(text):
        calls.append(text)
        return resolve(text)

    monkeypatch.setattr(sender.host, "resolve_variables", counting_resolve)
    port = udp_receiver.getsockname()[1]
    client.put("/api/variables", json={"dev:input": "HDMI1"})
    client.put("/api/config", json={"transport": "udp", "host": "127.0.0.1", "port": port})

    body = client.post(
        "/api/actions/send", json={"command": "IN $(dev:input)", "terminator": "none"}
    ).json()

    assert calls == ["IN $(dev:input)"]
    data, _ = udp_receiver.recvfrom(1024)
    assert data == b"IN HDMI1"
    assert body["payload_hex"] == data.hex()
