# relay_types.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chain_utils import is_address, is_hex_data, is_uint_string
from relay_errors import ValidationError
from relay_status import RelayStatus

DEFAULT_VALUE = "0"
DEFAULT_GAS_LIMIT = "200000"


class Speed(str, Enum):
    SLOW = "slow"
    AVERAGE = "average"
    FAST = "fast"
    FASTEST = "fastest"


def int_to_str(v):
    # 数量一律用十进制字符串传，int 进来就转一下
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


class RelayRequest(BaseModel):
    """
    调用方要我们代发的一笔交易（地址 / data / value / gas 都是字符串）
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    to: str
    data: str
    value: str = DEFAULT_VALUE
    gas_limit: str = Field(default=DEFAULT_GAS_LIMIT, alias="gasLimit")
    speed: Speed = Speed.AVERAGE

    @field_validator("value", "gas_limit", mode="before")
    @classmethod
    def _quantities_as_str(cls, v):
        return int_to_str(v)

    def to_dict(self) -> dict:
        return {
            "to": self.to,
            "data": self.data,
            "value": self.value,
            "gasLimit": self.gas_limit,
            "speed": self.speed.value,
        }


def check_relay_request(request: RelayRequest) -> None:
    """
    提交前的格式校验，所有 provider 都要先过这一关。
    """
    if not isinstance(request, RelayRequest):
        raise ValidationError("request must be a RelayRequest")
    if not is_address(request.to):
        raise ValidationError(f"Invalid address format: {request.to!r}")
    if not is_hex_data(request.data):
        raise ValidationError(
            f"Invalid data: must be 0x-prefixed hex with even length, got {request.data!r}"
        )
    if not is_uint_string(request.value):
        raise ValidationError(f"Invalid value: {request.value!r}")
    if not is_uint_string(request.gas_limit) or int(request.gas_limit) <= 0:
        raise ValidationError(f"Invalid gasLimit: {request.gas_limit!r}")


def check_relay_request_id(relay_request_id) -> None:
    if not isinstance(relay_request_id, str) or not relay_request_id:
        raise ValidationError("relay_request_id is required")


class RelayHandle(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    relay_request_id: str = Field(alias="relayRequestId")
    transaction_hash: Optional[str] = Field(default=None, alias="transactionHash")
    status: RelayStatus
    # provider 自己的状态词，只用来排查问题
    native_status: Optional[str] = Field(default=None, alias="nativeStatus")

    def to_dict(self) -> dict:
        return {
            "relayRequestId": self.relay_request_id,
            "transactionHash": self.transaction_hash,
            "status": self.status.value,
            "nativeStatus": self.native_status,
        }


class ProviderTransaction(BaseModel):
    """provider 原样返回的交易（状态还没归一化）"""

    transaction_id: str
    hash: Optional[str] = None
    status: Optional[str] = None


class StoredTransaction(BaseModel):
    """模拟 provider 账本里的一条记录"""

    relay_request_id: str
    to: str
    data: str
    value: str
    gas_limit: str
    speed: Speed
    status: str
    submitted_at_epoch_millis: int
    transaction_hash: Optional[str] = None


class RelayerInfo(BaseModel):
    address: str


class HealthStatus(BaseModel):
    healthy: bool
    message: str
