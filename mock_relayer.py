# mock_relayer.py
"""
本地开发 / 测试用的模拟 relayer。

不连网络：交易存在进程内的账本里，状态停在 sent，
需要的话用 set_status() 手动推进（mined / confirmed / failed）。
"""
import secrets
import threading
import time

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chain_utils import get_relayer_account, is_address, random_tx_hash
from relay_errors import ConfigurationError, NotFoundError, ValidationError
from relay_provider import RelayProvider
from relay_status import is_allowed_transition, normalize_status
from relay_types import (
    ProviderTransaction,
    RelayerInfo,
    RelayRequest,
    StoredTransaction,
    check_relay_request_id,
)

INITIAL_STATUS = "sent"


class MockRelayConfig(BaseModel):
    forwarder_address: str
    relayer_private_key: str
    rpc_url: str
    chain_id: int

    def __init__(self, **data):
        # 字段类型不对也统一报 ConfigurationError，并带上字段名
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            err = e.errors()[0]
            field = ".".join(str(part) for part in err["loc"])
            raise ConfigurationError(f"Invalid {field}: {err['msg']}") from e


class TransactionLedger:
    """按 relay_request_id 存交易，一把锁管住所有读写"""

    def __init__(self):
        self._lock = threading.Lock()
        self._transactions: dict[str, StoredTransaction] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    def insert(self, tx: StoredTransaction) -> bool:
        # id 已存在就返回 False，不覆盖
        with self._lock:
            if tx.relay_request_id in self._transactions:
                return False
            self._transactions[tx.relay_request_id] = tx
            return True

    def get(self, relay_request_id: str) -> StoredTransaction:
        with self._lock:
            tx = self._transactions.get(relay_request_id)
        if tx is None:
            raise NotFoundError(f"Transaction not found: {relay_request_id}")
        return tx.model_copy()

    def update_status(self, relay_request_id: str, native_status: str) -> StoredTransaction:
        with self._lock:
            tx = self._transactions.get(relay_request_id)
            if tx is None:
                raise NotFoundError(f"Transaction not found: {relay_request_id}")
            current = normalize_status(tx.status)
            new = normalize_status(native_status)
            if not is_allowed_transition(current, new):
                raise ValidationError(
                    f"Illegal status transition for {relay_request_id}: "
                    f"{current.value} -> {new.value}"
                )
            # 哈希不动，只改状态
            updated = tx.model_copy(update={"status": native_status})
            self._transactions[relay_request_id] = updated
            return updated.model_copy()


def _validate_config(config: MockRelayConfig) -> None:
    if not config.forwarder_address:
        raise ConfigurationError("forwarder_address is required")
    if not is_address(config.forwarder_address):
        raise ConfigurationError(
            f"Invalid forwarder_address format: {config.forwarder_address!r}"
        )
    if not config.relayer_private_key:
        raise ConfigurationError("relayer_private_key is required")
    if not config.rpc_url.strip():
        raise ConfigurationError("rpc_url is required")
    if config.chain_id <= 0:
        raise ConfigurationError("chain_id must be positive")


class MockRelayProvider(RelayProvider):
    name = "MockRelayer"

    def __init__(self, config: MockRelayConfig):
        _validate_config(config)
        self.config = config
        # 私钥只用来推地址，格式不对在这里直接报错
        self._relayer_account = get_relayer_account(config.relayer_private_key)
        self._ledger = TransactionLedger()

    @property
    def ledger(self) -> TransactionLedger:
        return self._ledger

    def _new_transaction_id(self) -> str:
        return f"mock_tx_{time.monotonic_ns()}_{secrets.token_hex(6)}"

    async def _send_transaction(self, request: RelayRequest) -> ProviderTransaction:
        tx_hash = random_tx_hash()
        while True:
            stored = StoredTransaction(
                relay_request_id=self._new_transaction_id(),
                to=request.to,
                data=request.data,
                value=request.value,
                gas_limit=request.gas_limit,
                speed=request.speed,
                status=INITIAL_STATUS,
                submitted_at_epoch_millis=int(time.time() * 1000),
                transaction_hash=tx_hash,
            )
            if self._ledger.insert(stored):
                break

        logger.info(
            f"[{self.name}] stored tx {stored.relay_request_id} -> {request.to} "
            f"(gasLimit={request.gas_limit}, speed={request.speed.value})"
        )
        return ProviderTransaction(
            transaction_id=stored.relay_request_id,
            hash=stored.transaction_hash,
            status=stored.status,
        )

    async def _get_transaction(self, relay_request_id: str) -> ProviderTransaction:
        stored = self._ledger.get(relay_request_id)
        return ProviderTransaction(
            transaction_id=stored.relay_request_id,
            hash=stored.transaction_hash,
            status=stored.status,
        )

    def set_status(self, relay_request_id: str, native_status: str) -> StoredTransaction:
        """手动推进模拟交易的状态（开发 / 测试用）"""
        check_relay_request_id(relay_request_id)
        updated = self._ledger.update_status(relay_request_id, native_status)
        logger.info(f"[{self.name}] tx {relay_request_id} status -> {native_status}")
        return updated

    async def get_relayer(self) -> RelayerInfo:
        return RelayerInfo(address=self._relayer_account.address)

    def get_relayer_address(self) -> str:
        return self._relayer_account.address
