# relay_factory.py
"""
根据环境变量选择 relay provider：
- USE_MOCK_DEFENDER=true：本地模拟 relayer（MockRelayProvider）
- 否则：远端 relay 服务（DefenderRelayProvider）

provider 只在启动时选一次，然后注入给 RelayOrchestrator。
"""
from loguru import logger

from chain_utils import get_env, get_env_flag, require_env
from defender_relayer import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECONDS, DefenderRelayProvider
from mock_relayer import MockRelayConfig, MockRelayProvider
from relay_errors import ConfigurationError
from relay_provider import RelayProvider
from relay_service_core import RelayOrchestrator

MOCK_SWITCH_ENV = "USE_MOCK_DEFENDER"
API_KEY_ENV = "DEFENDER_API_KEY"
API_SECRET_ENV = "DEFENDER_API_SECRET"

DEFAULT_MOCK_RPC_URL = "http://localhost:8545"
DEFAULT_MOCK_CHAIN_ID = "31337"


def is_local_environment() -> bool:
    return get_env_flag(MOCK_SWITCH_ENV)


def get_environment_info() -> dict:
    use_mock = is_local_environment()
    return {
        "is_local": use_mock,
        "use_mock": use_mock,
        "app_env": get_env("APP_ENV", "development"),
    }


def _parse_number(name: str, raw: str, cast):
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def create_mock_provider() -> MockRelayProvider:
    chain_id = _parse_number(
        "MOCK_CHAIN_ID", get_env("MOCK_CHAIN_ID", DEFAULT_MOCK_CHAIN_ID), int
    )
    config = MockRelayConfig(
        forwarder_address=require_env("MOCK_FORWARDER_ADDRESS"),
        relayer_private_key=require_env("MOCK_RELAYER_PRIVATE_KEY"),
        rpc_url=get_env("MOCK_RPC_URL", DEFAULT_MOCK_RPC_URL),
        chain_id=chain_id,
    )
    return MockRelayProvider(config)


def create_defender_provider() -> DefenderRelayProvider:
    api_key = get_env(API_KEY_ENV)
    api_secret = get_env(API_SECRET_ENV)

    if not api_key or not api_secret:
        missing = [
            name for name, value in ((API_KEY_ENV, api_key), (API_SECRET_ENV, api_secret))
            if not value
        ]
        raise ConfigurationError(
            f"{API_KEY_ENV} and {API_SECRET_ENV} are required "
            f"(missing: {', '.join(missing)})"
        )

    timeout = _parse_number(
        "DEFENDER_REQUEST_TIMEOUT",
        get_env("DEFENDER_REQUEST_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)),
        float,
    )
    return DefenderRelayProvider(
        api_key=api_key,
        api_secret=api_secret,
        relayer_address=get_env("DEFENDER_RELAYER_ADDRESS"),
        api_url=get_env("DEFENDER_API_URL", DEFAULT_API_URL),
        timeout=timeout,
    )


def create_relay_provider() -> RelayProvider:
    if is_local_environment():
        provider = create_mock_provider()
    else:
        provider = create_defender_provider()
    logger.info(f"[RelayFactory] using {provider.name} ({get_environment_info()['app_env']})")
    return provider


def create_relay_orchestrator() -> RelayOrchestrator:
    return RelayOrchestrator(create_relay_provider())
