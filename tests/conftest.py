"""
Shared fixtures: a fixed wallet, a provider address and a mocked broker.
"""

from unittest.mock import Mock

import pytest
from eth_utils import to_checksum_address

from zg_compute.core.config import ComputeConfig

# Well-known development key (hardhat account #0); never holds real funds.
PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
WALLET_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
PROVIDER = to_checksum_address("0x70997970c51812dc3a010c7d01b50e0d17dc79c8")


@pytest.fixture
def config():
    return ComputeConfig.from_mapping(
        {
            "ZG_PRIVATE_KEY": PRIVATE_KEY,
            "ZG_BROKER_URL": "http://broker.test",
        }
    )


@pytest.fixture
def broker():
    """Broker whose every call succeeds unless a test says otherwise."""
    mock = Mock()
    mock.list_providers.return_value = []
    mock.get_service_metadata.return_value = {
        "endpoint": "http://provider.test/v1/proxy",
        "model": "llama-3.3-70b-instruct",
    }
    mock.get_request_headers.return_value = {"X-Phala-Signature-Type": "StandaloneApi"}
    mock.verify_and_settle.return_value = True
    mock.settle_fee.return_value = {}
    mock.deposit_fund.return_value = {}
    mock.add_ledger.return_value = {}
    mock.get_ledger.return_value = {"ledgerInfo": ["1.5", "0.5"]}
    return mock
