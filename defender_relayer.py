# defender_relayer.py
"""
远端 relay 服务（OZ Defender 风格的 HTTP API）。

本地不存任何状态，所有交易状态都在远端。
requests 是同步的，每次调用都丢到 asyncio.to_thread 里跑；
不做自动重试，重试与否交给调用方决定。
"""
import asyncio
from urllib.parse import quote

import requests
from loguru import logger

from chain_utils import is_address, to_checksum_address
from relay_errors import ConfigurationError, NotFoundError, ProviderError, TransientError
from relay_provider import RelayProvider
from relay_types import ProviderTransaction, RelayerInfo, RelayRequest, Speed

DEFAULT_API_URL = "https://api.defender.openzeppelin.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
# 没配 relayer 地址时用的占位值
PLACEHOLDER_RELAYER_ADDRESS = "0x0"

# Defender 的慢速档叫 safeLow
_SPEED_NAMES = {
    Speed.SLOW: "safeLow",
    Speed.AVERAGE: "average",
    Speed.FAST: "fast",
    Speed.FASTEST: "fastest",
}


class DefenderRelayProvider(RelayProvider):
    name = "DefenderRelayer"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        relayer_address: str | None = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        if not api_key or not api_secret:
            raise ConfigurationError("Relay API credentials (api_key, api_secret) are required")
        if not api_url:
            raise ConfigurationError("api_url is required")

        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        if is_address(relayer_address):
            relayer_address = to_checksum_address(relayer_address)
        self.relayer_address = relayer_address or PLACEHOLDER_RELAYER_ADDRESS

        # 多个 to_thread 线程共用这个 session：headers 只在这里写一次，之后只读；
        # 连接池由 urllib3 管，本身带锁
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "X-Api-Key": api_key,
                "X-Api-Secret": api_secret,
                "Content-Type": "application/json",
            }
        )

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, body: dict | None = None) -> dict:
        url = f"{self.api_url}{path}"
        try:
            resp = self._session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransientError(f"Relay service unreachable: {e}") from e

        if resp.status_code == 404:
            raise NotFoundError(f"Relay request not found: {path}")
        if resp.status_code >= 400:
            # 原始错误交给 orchestrator 去分类
            raise ProviderError(f"HTTP {resp.status_code}: {resp.text}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise TransientError(f"Non-JSON response from relay service: {resp.text!r}") from e
        if not isinstance(payload, dict):
            raise TransientError(f"Unexpected response shape from relay service: {payload!r}")
        return payload

    async def _call(self, method: str, path: str, body: dict | None = None) -> dict:
        return await asyncio.to_thread(self._request, method, path, body)

    @staticmethod
    def _parse_transaction(payload: dict) -> ProviderTransaction:
        tx_id = payload.get("transactionId")
        if not tx_id:
            raise TransientError(f"Relay service response missing transactionId: {payload!r}")
        return ProviderTransaction(
            transaction_id=str(tx_id),
            hash=payload.get("hash"),
            status=payload.get("status"),
        )

    async def _send_transaction(self, request: RelayRequest) -> ProviderTransaction:
        body = request.to_dict()
        body["speed"] = _SPEED_NAMES[request.speed]
        payload = await self._call("POST", "/relayer/txs", body)
        tx = self._parse_transaction(payload)
        logger.info(f"[{self.name}] relay tx submitted: txId={tx.transaction_id}, status={tx.status}")
        return tx

    async def _get_transaction(self, relay_request_id: str) -> ProviderTransaction:
        payload = await self._call("GET", f"/relayer/txs/{quote(relay_request_id, safe='')}")
        return self._parse_transaction(payload)

    async def get_relayer(self) -> RelayerInfo:
        payload = await self._call("GET", "/relayer")
        # 单个 relayer 返回 address；relayer 组返回 relayers 列表
        address = payload.get("address")
        if not address:
            relayers = payload.get("relayers") or []
            first = relayers[0] if isinstance(relayers, list) and relayers else None
            address = first.get("address") if isinstance(first, dict) else None
        return RelayerInfo(address=address or "unknown")

    def get_relayer_address(self) -> str:
        return self.relayer_address
