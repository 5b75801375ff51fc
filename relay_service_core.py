# relay_service_core.py
import asyncio

from loguru import logger

from chain_utils import gwei_to_wei, is_hex_data, is_uint_string
from relay_errors import (
    ProviderError,
    RelayTimeoutError,
    ValidationError,
    classify_provider_error,
)
from relay_provider import RelayProvider
from relay_status import RelayStatus
from relay_types import HealthStatus, RelayHandle, RelayRequest

DEFAULT_TIMEOUT_MS = 120_000
DEFAULT_POLL_INTERVAL_MS = 3_000
# 估算手续费用的固定 gas 价格
ESTIMATE_GAS_PRICE_GWEI = 50


class RelayOrchestrator:
    """
    调用方使用的 relay 入口：
    1. submit：把交易交给 provider 代发（不自动重试）
    2. get_status：查状态，供应商的错误统一翻译成 relay_errors 里的类型
    3. wait_for_terminal：轮询直到终态或超时
    4. cancel：只告诉你能不能取消，不会真的发替换交易
    """

    def __init__(self, provider: RelayProvider):
        self.provider = provider

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self.provider.close()

    async def submit(self, request: RelayRequest, payment_id: str | None = None) -> RelayHandle:
        try:
            handle = await self.provider.submit(request)
        except ProviderError as e:
            logger.error(f"[RelayOrchestrator] submit failed: paymentId={payment_id}, error={e}")
            raise classify_provider_error(e, "submit") from e

        logger.info(
            f"[RelayOrchestrator] submitted: paymentId={payment_id}, "
            f"txId={handle.relay_request_id}, status={handle.status.value}"
        )
        return handle

    async def get_status(self, relay_request_id: str) -> RelayHandle:
        try:
            return await self.provider.get_status(relay_request_id)
        except ProviderError as e:
            logger.error(f"[RelayOrchestrator] status lookup failed: txId={relay_request_id}, error={e}")
            raise classify_provider_error(e, "get_status") from e

    async def cancel(self, relay_request_id: str) -> bool:
        handle = await self.get_status(relay_request_id)

        # 已经上链的交易取消不了
        if handle.status in (RelayStatus.MINED, RelayStatus.CONFIRMED):
            logger.warning(f"[RelayOrchestrator] tx already processed: {relay_request_id}")
            return False

        # 已经失败的交易不需要取消
        if handle.status is RelayStatus.FAILED:
            return True

        # 没有 provider 支持真正的取消（需要替换交易），明确返回 False
        logger.warning(f"[RelayOrchestrator] cancellation not supported: {relay_request_id}")
        return False

    async def wait_for_terminal(
        self,
        relay_request_id: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ) -> RelayHandle:
        """
        每轮：查一次状态 -> 终态就返回 -> 否则 sleep poll_interval 再查。
        用事件循环的单调时钟算超时；调用方取消这个协程时在 sleep 处立即退出。
        """
        if timeout_ms <= 0:
            raise ValidationError("timeout_ms must be positive")
        if poll_interval_ms <= 0:
            raise ValidationError("poll_interval_ms must be positive")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        poll_interval = poll_interval_ms / 1000

        try:
            while True:
                handle = await self.get_status(relay_request_id)
                if handle.status.is_terminal:
                    return handle

                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise RelayTimeoutError(relay_request_id, handle.status, timeout_ms)
                await asyncio.sleep(min(poll_interval, remaining))
        except asyncio.CancelledError:
            logger.warning(f"[RelayOrchestrator] wait cancelled by caller: {relay_request_id}")
            raise

    def validate_transaction_data(self, data: str) -> bool:
        return is_hex_data(data)

    def estimate_gas_fee(self, gas_limit: str) -> str:
        """
        粗估手续费（wei）：gas_limit * 50 gwei。
        """
        if not is_uint_string(gas_limit):
            raise ValidationError(f"Invalid gasLimit: {gas_limit!r}")
        return str(int(gas_limit) * gwei_to_wei(ESTIMATE_GAS_PRICE_GWEI))

    def get_relayer_address(self) -> str:
        return self.provider.get_relayer_address()

    async def check_relayer_health(self) -> HealthStatus:
        return await self.provider.check_health()
