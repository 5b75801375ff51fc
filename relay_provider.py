# relay_provider.py
from abc import ABC, abstractmethod

from loguru import logger

from relay_errors import ProviderError, RelayError
from relay_status import normalize_status
from relay_types import (
    HealthStatus,
    ProviderTransaction,
    RelayerInfo,
    RelayHandle,
    RelayRequest,
    check_relay_request,
    check_relay_request_id,
)


def to_handle(tx: ProviderTransaction) -> RelayHandle:
    return RelayHandle(
        relay_request_id=tx.transaction_id,
        transaction_hash=tx.hash,
        status=normalize_status(tx.status),
        native_status=tx.status,
    )


class RelayProvider(ABC):
    """
    relay provider 的统一接口。

    submit / get_status 在这里做完校验和状态归一化，
    子类只需要实现 _send_transaction / _get_transaction / get_relayer。
    """

    name = "relay"

    async def submit(self, request: RelayRequest) -> RelayHandle:
        # 先校验，格式不对就不碰账本 / 网络
        check_relay_request(request)
        tx = await self._send_transaction(request)
        return to_handle(tx)

    async def get_status(self, relay_request_id: str) -> RelayHandle:
        check_relay_request_id(relay_request_id)
        tx = await self._get_transaction(relay_request_id)
        return to_handle(tx)

    async def check_health(self) -> HealthStatus:
        """
        健康检查：只是查一下 relayer 信息。
        失败时返回 healthy=False，不抛异常。
        """
        try:
            relayer = await self.get_relayer()
        except (RelayError, ProviderError) as e:
            logger.error(f"[{self.name}] relayer health check failed: {e}")
            return HealthStatus(healthy=False, message=f"Relayer connection failed: {e}")
        return HealthStatus(healthy=True, message=f"Relayer reachable: {relayer.address}")

    def close(self) -> None:
        pass

    @abstractmethod
    async def _send_transaction(self, request: RelayRequest) -> ProviderTransaction:
        ...

    @abstractmethod
    async def _get_transaction(self, relay_request_id: str) -> ProviderTransaction:
        ...

    @abstractmethod
    async def get_relayer(self) -> RelayerInfo:
        ...

    @abstractmethod
    def get_relayer_address(self) -> str:
        ...
