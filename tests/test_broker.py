"""
Unit tests for the broker gateway client and its signed envelopes.
"""

import json
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests
from eth_account import Account
from eth_account.messages import encode_typed_data

from conftest import PROVIDER, WALLET_ADDRESS
from zg_compute.core.broker import BrokerClient, PaymentBroker
from zg_compute.core.errors import BrokerError
from zg_compute.core.payloads import build_action_typed_data, build_authorization_payload


def _response(status_code=200, payload=None, text=None):
    response = Mock()
    response.status_code = status_code
    response.text = text if text is not None else json.dumps(payload)
    response.content = response.text.encode()
    response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(config, session):
    return BrokerClient(config, session=session)


class TestAuthorizationPayload:
    def test_signature_recovers_wallet(self, config):
        nonce = bytes(range(32))

        envelope = build_authorization_payload(
            config, action="settleFee", target=PROVIDER, amount=Decimal("0.01"), now=1_700_000_000, nonce=nonce
        )

        action = envelope["action"]
        assert action["account"] == WALLET_ADDRESS
        assert action["amount"] == "0.01"
        assert action["target"] == PROVIDER
        assert action["nonce"] == "0x" + nonce.hex()
        assert action["issuedAt"] == "1700000000"
        assert action["expiresAt"] == str(1_700_000_000 + config.authorization_ttl_seconds)

        typed_data = build_action_typed_data(
            config,
            action="settleFee",
            target=PROVIDER,
            amount="0.01",
            nonce=nonce,
            issued_at=1_700_000_000,
            expires_at=1_700_000_000 + config.authorization_ttl_seconds,
        )
        signable = encode_typed_data(full_message=typed_data)
        recovered = Account.recover_message(signable, signature=envelope["signature"])
        assert recovered == WALLET_ADDRESS

    def test_fresh_nonce_per_envelope(self, config):
        first = build_authorization_payload(config, action="getLedger")
        second = build_authorization_payload(config, action="getLedger")

        assert first["action"]["nonce"] != second["action"]["nonce"]
        assert first["action"]["amount"] == ""


class TestBrokerClient:
    def test_satisfies_protocol(self, client):
        assert isinstance(client, PaymentBroker)

    def test_list_providers(self, client, session):
        session.get.return_value = _response(payload={"services": [{"provider": PROVIDER}]})

        services = client.list_providers()

        assert services == [{"provider": PROVIDER}]
        session.get.assert_called_once_with("http://broker.test/services", timeout=30.0)

    def test_list_providers_plain_list(self, client, session):
        session.get.return_value = _response(payload=[{"provider": PROVIDER}])

        assert client.list_providers() == [{"provider": PROVIDER}]

    def test_get_service_metadata(self, client, session):
        session.get.return_value = _response(payload={"endpoint": "http://p", "model": "m"})

        assert client.get_service_metadata(PROVIDER) == {"endpoint": "http://p", "model": "m"}
        session.get.assert_called_once_with(f"http://broker.test/services/{PROVIDER}", timeout=30.0)

    def test_get_request_headers(self, client, session):
        session.post.return_value = _response(payload={"headers": {"Address": "0xabc"}})

        headers = client.get_request_headers(PROVIDER, "Hello, AI!")

        assert headers == {"Address": "0xabc"}
        args, kwargs = session.post.call_args
        assert args == (f"http://broker.test/services/{PROVIDER}/headers",)
        assert kwargs["json"]["content"] == "Hello, AI!"
        assert kwargs["json"]["authorization"]["action"]["action"] == "getRequestHeaders"

    def test_verify_and_settle(self, client, session):
        session.post.return_value = _response(payload={"valid": True})

        assert client.verify_and_settle(PROVIDER, "Hi there", "chat-1") is True
        args, kwargs = session.post.call_args
        assert args == (f"http://broker.test/services/{PROVIDER}/responses",)
        assert kwargs["json"]["content"] == "Hi there"
        assert kwargs["json"]["chatId"] == "chat-1"

    @pytest.mark.parametrize("payload,expected", [({"valid": None}, None), ({"valid": 0}, 0)])
    def test_verify_and_settle_passes_verdict_through(self, client, session, payload, expected):
        session.post.return_value = _response(payload=payload)

        assert client.verify_and_settle(PROVIDER, "Hi there", "chat-1") == expected

    @pytest.mark.parametrize("text", ["", "{}"])
    def test_verify_and_settle_without_verdict_is_accepted(self, client, session, text):
        session.post.return_value = _response(payload=json.loads(text or "{}"), text=text)

        assert client.verify_and_settle(PROVIDER, "Hi there", "chat-1") is True

    def test_settle_fee_carries_amount(self, client, session):
        session.post.return_value = _response(payload={})

        client.settle_fee(PROVIDER, Decimal("0.01"))

        _, kwargs = session.post.call_args
        assert kwargs["json"]["fee"] == "0.01"
        assert kwargs["json"]["authorization"]["action"]["amount"] == "0.01"
        assert kwargs["json"]["authorization"]["action"]["target"] == PROVIDER

    def test_ledger_operations(self, client, session):
        session.post.return_value = _response(payload={"ledgerInfo": ["1", "0"]})

        client.deposit_fund(Decimal("0.5"))
        client.add_ledger(Decimal("0.25"))
        ledger = client.get_ledger()

        urls = [call.args[0] for call in session.post.call_args_list]
        assert urls == [
            "http://broker.test/ledger/deposit",
            "http://broker.test/ledger/add",
            "http://broker.test/ledger/query",
        ]
        assert ledger == {"ledgerInfo": ["1", "0"]}

    def test_error_status(self, client, session):
        session.post.return_value = _response(
            status_code=400, payload={"detail": "Fee mismatch: expected 0.0123"}
        )

        with pytest.raises(BrokerError, match="Fee mismatch") as excinfo:
            client.settle_fee(PROVIDER, Decimal("0.01"))

        assert excinfo.value.status_code == 400

    def test_error_with_plain_body(self, client, session):
        response = _response(status_code=502, text="Bad Gateway")
        response.json.side_effect = ValueError("no json")
        session.get.return_value = response

        with pytest.raises(BrokerError, match="Bad Gateway"):
            client.list_providers()

    def test_connection_failure(self, client, session):
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(BrokerError, match="refused"):
            client.list_providers()

    def test_empty_body(self, client, session):
        session.post.return_value = _response(text="")

        assert client.deposit_fund(Decimal(1)) == {}

    def test_unexpected_listing(self, client, session):
        session.get.return_value = _response(payload={"oops": True})

        with pytest.raises(BrokerError):
            client.list_providers()
