"""Pytest configuration and shared fixtures for all tests."""

import sys
from pathlib import Path

# 把项目根目录加到 PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from mock_relayer import MockRelayConfig, MockRelayProvider
from relay_provider import RelayProvider
from relay_service_core import RelayOrchestrator
from relay_types import ProviderTransaction, RelayerInfo, RelayRequest

FORWARDER_ADDRESS = "0x1234567890123456789012345678901234567890"
RELAYER_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
TARGET_ADDRESS = "0x9876543210987654321098765432109876543210"

RELAY_ENV_VARS = (
    "USE_MOCK_DEFENDER",
    "MOCK_FORWARDER_ADDRESS",
    "MOCK_RELAYER_PRIVATE_KEY",
    "MOCK_RPC_URL",
    "MOCK_CHAIN_ID",
    "DEFENDER_API_KEY",
    "DEFENDER_API_SECRET",
    "DEFENDER_RELAYER_ADDRESS",
    "DEFENDER_API_URL",
    "DEFENDER_REQUEST_TIMEOUT",
    "APP_ENV",
)


class ScriptedProvider(RelayProvider):
    """Provider whose get_status walks through a fixed list of native statuses."""

    name = "ScriptedRelayer"

    def __init__(self, statuses, error=None):
        self.statuses = list(statuses)
        self.error = error
        self.status_calls = 0
        self.closed = False

    async def _send_transaction(self, request):
        if self.error is not None:
            raise self.error
        return ProviderTransaction(transaction_id="scripted-1", hash="0x" + "a" * 64, status="pending")

    async def _get_transaction(self, relay_request_id):
        self.status_calls += 1
        if self.error is not None:
            raise self.error
        index = min(self.status_calls - 1, len(self.statuses) - 1)
        return ProviderTransaction(
            transaction_id=relay_request_id,
            hash="0x" + "a" * 64,
            status=self.statuses[index],
        )

    async def get_relayer(self):
        if self.error is not None:
            raise self.error
        return RelayerInfo(address="0x" + "f" * 40)

    def get_relayer_address(self):
        return "0x" + "f" * 40

    def close(self):
        self.closed = True


@pytest.fixture
def clean_relay_env(monkeypatch):
    """Remove every relay-related environment variable."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def mock_config():
    return MockRelayConfig(
        forwarder_address=FORWARDER_ADDRESS,
        relayer_private_key=RELAYER_PRIVATE_KEY,
        rpc_url="http://localhost:8545",
        chain_id=31337,
    )


@pytest.fixture
def mock_provider(mock_config):
    return MockRelayProvider(mock_config)


@pytest.fixture
def orchestrator(mock_provider):
    return RelayOrchestrator(mock_provider)


@pytest.fixture
def relay_request():
    return RelayRequest(to=TARGET_ADDRESS, data="0xabcd")
