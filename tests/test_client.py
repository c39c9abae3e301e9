"""
End-to-end tests of the query workflow with an in-process broker and provider.
"""

from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from conftest import PROVIDER
from zg_compute.api import create_compute_client
from zg_compute.core.broker import BrokerClient
from zg_compute.core.client import ComputeClient
from zg_compute.core.errors import (
    AuthenticationError,
    BrokerError,
    InvalidAddressError,
    InvalidAmountError,
    TransportError,
)
from zg_compute.core.models import PaymentOutcome


def _completion(content="Hi there", chat_id="chat-1"):
    response = Mock()
    response.status_code = 200
    response.json.return_value = {"id": chat_id, "choices": [{"message": {"content": content}}]}
    return response


@pytest.fixture
def session():
    session = Mock(spec=requests.Session)
    session.post.return_value = _completion()
    return session


@pytest.fixture
def client(config, broker, session):
    return ComputeClient(config, broker=broker, session=session)


class TestSendQuery:
    def test_verified(self, client, broker, session):
        result = client.send_query(PROVIDER, "Hello, AI!")

        assert result.content == "Hi there"
        assert result.correlation_id == "chat-1"
        assert result.payment_outcome is PaymentOutcome.VERIFIED
        assert result.model == "llama-3.3-70b-instruct"
        assert result.provider_address == PROVIDER
        broker.get_request_headers.assert_called_once_with(PROVIDER, "Hello, AI!")
        broker.verify_and_settle.assert_called_once_with(PROVIDER, "Hi there", "chat-1")
        _, kwargs = session.post.call_args
        assert kwargs["headers"]["X-Phala-Signature-Type"] == "StandaloneApi"

    def test_fallback_settled(self, client, broker):
        broker.verify_and_settle.side_effect = BrokerError("stale fee")

        result = client.send_query(PROVIDER, "Hello, AI!", fallback_fee="0.01")

        assert result.content == "Hi there"
        assert result.payment_outcome is PaymentOutcome.FALLBACK_SETTLED
        broker.settle_fee.assert_called_once_with(PROVIDER, Decimal("0.01"))

    def test_unsettled_without_fee(self, client, broker):
        broker.verify_and_settle.side_effect = BrokerError("stale fee")

        result = client.send_query(PROVIDER, "Hello, AI!")

        assert result.content == "Hi there"
        assert result.payment_outcome is PaymentOutcome.UNSETTLED
        assert broker.settle_fee.call_count == 0

    def test_transport_error_skips_settlement(self, client, broker, session):
        session.post.side_effect = requests.Timeout()

        with pytest.raises(TransportError):
            client.send_query(PROVIDER, "Hello, AI!", fallback_fee="0.01")

        broker.verify_and_settle.assert_not_called()
        broker.settle_fee.assert_not_called()

    def test_authentication_error_stops_before_inference(self, client, broker, session):
        broker.get_request_headers.side_effect = BrokerError("insufficient balance")

        with pytest.raises(AuthenticationError):
            client.send_query(PROVIDER, "Hello, AI!")

        session.post.assert_not_called()

    def test_invalid_address_makes_no_calls(self, client, broker, session):
        with pytest.raises(InvalidAddressError):
            client.send_query("0xAAA", "Hello, AI!")

        broker.get_service_metadata.assert_not_called()
        session.post.assert_not_called()

    def test_invalid_fee_makes_no_calls(self, client, broker):
        with pytest.raises(InvalidAmountError):
            client.send_query(PROVIDER, "Hello, AI!", fallback_fee="lots")

        broker.get_service_metadata.assert_not_called()

    def test_metadata_resolved_per_query(self, client, broker, session):
        session.post.side_effect = [_completion(chat_id="chat-1"), _completion(chat_id="chat-2")]

        client.send_query(PROVIDER, "Hello, AI!")
        client.send_query(PROVIDER, "Hello, AI!")

        assert broker.get_service_metadata.call_count == 2
        assert broker.get_request_headers.call_count == 2
        assert broker.verify_and_settle.call_count == 2

    def test_duplicate_response_settled_once(self, client, broker):
        first = client.send_query(PROVIDER, "Hello, AI!")
        second = client.send_query(PROVIDER, "Hello, AI!")

        assert broker.verify_and_settle.call_count == 1
        assert second.payment_outcome is first.payment_outcome


class TestAccountPassThrough:
    def test_deposit_and_balance(self, client, broker):
        client.deposit("0.1")
        client.add_to_ledger("0.2")
        snapshot = client.get_balance()

        broker.deposit_fund.assert_called_once_with(Decimal("0.1"))
        broker.add_ledger.assert_called_once_with(Decimal("0.2"))
        assert snapshot.balance == Decimal("1.5")

    def test_settle_fee(self, client, broker):
        client.settle_fee(PROVIDER, "0.0123")

        broker.settle_fee.assert_called_once_with(PROVIDER, Decimal("0.0123"))

    def test_list_providers(self, client, broker):
        broker.list_providers.return_value = [{"provider": PROVIDER, "model": "m", "url": "http://p"}]

        (provider,) = client.list_providers()

        assert provider.address == PROVIDER


class TestCreateComputeClient:
    def test_from_config(self, config, broker):
        client = create_compute_client(config=config, broker=broker)

        assert client.config is config
        assert client.broker is broker

    def test_config_and_parameters_conflict(self, config):
        with pytest.raises(ValueError, match="not both"):
            create_compute_client(config=config, broker_url="http://other")

    def test_default_broker_is_http_client(self, config):
        client = create_compute_client(config=config)

        assert isinstance(client.broker, BrokerClient)
        assert client.inference.timeout == config.inference_timeout_seconds
