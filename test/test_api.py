"""Tests for the HTTP boundary."""

import pytest
import requests
from fastapi.testclient import TestClient
from web3 import Web3
from web3.exceptions import ContractLogicError

from conftest import CHAIN_ID, OTHER_RELAYER, TX_HASH, WALLET
from move_relayer.api import create_app
from move_relayer.config import ServerConfig
from move_relayer.core.pipeline import RelayPipeline
from move_relayer.core.validation import MAX_BODY_BYTES


@pytest.fixture
def http(context):
    return TestClient(create_app(context))


class TestRelayEndpoint:

    def test_success(self, http):
        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3, "memo": "up"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "hash": TX_HASH}
        assert response.headers["X-Request-ID"]

    def test_request_id_is_echoed(self, http):
        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3}, headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    def test_bad_cmd(self, http, chain_client):
        response = http.post("/relay", json={"wallet": WALLET, "cmd": 300})

        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert body["field"] == "cmd"
        assert "cmd" in body["error"]
        assert chain_client.method_calls == []

    def test_wrong_chain_id(self, http):
        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3, "chainId": 1})

        assert response.status_code == 400
        body = response.json()
        assert body["expected"] == CHAIN_ID
        assert body["got"] == 1

    def test_unauthorized(self, http, wallet_proxy):
        wallet_proxy.read_authorized_relayer.return_value = Web3.to_checksum_address(OTHER_RELAYER)

        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3})

        assert response.status_code == 403
        assert "hash" not in response.json()
        wallet_proxy.invoke_relay_move.assert_not_called()

    def test_insufficient_funds(self, http, chain_client):
        chain_client.get_balance.return_value = 5

        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3})

        assert response.status_code == 402
        body = response.json()
        assert body["have"] == "5"
        assert body["need"] == str(140_000 * 2_200_000_000)

    def test_node_rejection(self, http, wallet_proxy):
        wallet_proxy.invoke_relay_move.side_effect = ContractLogicError("execution reverted: locked")

        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3})

        assert response.status_code == 502
        assert response.json()["error"] == "execution reverted: locked"

    def test_node_unreachable(self, http, wallet_proxy):
        wallet_proxy.invoke_relay_move.side_effect = requests.exceptions.ConnectionError("refused")

        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3})

        assert response.status_code == 503

    def test_live_chain_mismatch(self, http, chain_client):
        chain_client.chain_id.return_value = 1

        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3})

        assert response.status_code == 500
        assert response.json()["got"] == 1

    def test_oversized_body(self, http, chain_client):
        content = b'{"wallet": "' + b"a" * MAX_BODY_BYTES + b'", "cmd": 1}'

        response = http.post("/relay", content=content, headers={"Content-Type": "application/json"})

        assert response.status_code == 413
        assert chain_client.method_calls == []

    def test_chunked_oversized_body(self, http, chain_client):
        def chunks():
            for _ in range(3):
                yield b"a" * MAX_BODY_BYTES

        response = http.post("/relay", content=chunks(), headers={"Content-Type": "application/json"})

        assert response.status_code == 413
        assert chain_client.method_calls == []

    def test_huge_integer_cmd_is_client_error(self, http, chain_client):
        content = b'{"wallet": "' + WALLET.encode() + b'", "cmd": ' + b"1" * 5000 + b"}"

        response = http.post("/relay", content=content, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert chain_client.method_calls == []

    def test_huge_integer_string_cmd_is_client_error(self, http, chain_client):
        response = http.post("/relay", json={"wallet": WALLET, "cmd": "1" * 5000})

        assert response.status_code == 400
        assert response.json()["field"] == "cmd"
        assert chain_client.method_calls == []

    def test_invalid_json(self, http):
        response = http.post("/relay", content=b"{oops", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["field"] == "body"

    def test_unexpected_exception_is_500(self, http, monkeypatch):
        def boom(self, request):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(RelayPipeline, "relay", boom)

        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3})

        assert response.status_code == 500
        assert response.json()["error"] == "Internal Server Error"


class TestHealthEndpoint:

    def test_reports_relayer_every_time(self, http, relayer_address):
        for _ in range(3):
            response = http.get("/health")
            assert response.status_code == 200
            assert response.json() == {
                "ok": True,
                "relayer": relayer_address,
                "chainId": CHAIN_ID,
                "balance": str(10**18),
            }

    def test_structured_failure(self, http, chain_client, relayer_address):
        chain_client.get_balance.side_effect = requests.exceptions.ConnectionError("refused")

        response = http.get("/health")

        assert response.status_code == 503
        assert response.json() == {
            "ok": False,
            "relayer": relayer_address,
            "chainId": CHAIN_ID,
            "error": "refused",
        }


class TestCors:

    def test_any_origin_by_default(self, http):
        response = http.get("/health", headers={"Origin": "https://anywhere.example"})

        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"

    def test_options_short_circuits(self, http, chain_client):
        response = http.options(
            "/relay",
            headers={"Origin": "https://anywhere.example", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert chain_client.method_calls == []

    def test_allow_list(self, context):
        http = TestClient(create_app(context, ServerConfig(cors_origins=("https://app.example",))))

        allowed = http.get("/health", headers={"Origin": "https://app.example"})
        denied = http.get("/health", headers={"Origin": "https://evil.example"})

        assert allowed.headers["Access-Control-Allow-Origin"] == "https://app.example"
        assert allowed.headers["Vary"] == "Origin"
        assert "Access-Control-Allow-Origin" not in denied.headers

    def test_options_carries_request_id(self, http):
        response = http.options("/relay", headers={"X-Request-ID": "pre-1"})

        assert response.status_code == 204
        assert response.headers["X-Request-ID"] == "pre-1"

    def test_unexpected_exception_keeps_cors_headers(self, http, monkeypatch):
        def boom(self, request):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(RelayPipeline, "relay", boom)

        response = http.post("/relay", json={"wallet": WALLET, "cmd": 3}, headers={"Origin": "https://anywhere.example"})

        assert response.status_code == 500
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["X-Request-ID"]
