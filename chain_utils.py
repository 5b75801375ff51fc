# chain_utils.py
import os
import re
import secrets

from dotenv import load_dotenv
from eth_account import Account
from web3 import Web3

from relay_errors import ConfigurationError

load_dotenv("properties.env")

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
# 0x 后面必须是偶数个 hex 字符，"0x" 本身（空 payload）是合法的
HEX_DATA_PATTERN = re.compile(r"^0x(?:[0-9a-fA-F]{2})*$")
PRIVATE_KEY_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
UINT_PATTERN = re.compile(r"^[0-9]+$")

TRUE_VALUES = ("1", "true", "yes")


def is_address(value) -> bool:
    return isinstance(value, str) and ADDRESS_PATTERN.match(value) is not None


def is_hex_data(value) -> bool:
    return isinstance(value, str) and HEX_DATA_PATTERN.match(value) is not None


def is_uint_string(value) -> bool:
    return isinstance(value, str) and UINT_PATTERN.match(value) is not None


def get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def require_env(name: str) -> str:
    value = get_env(name)
    if not value:
        raise ConfigurationError(f"{name} not set in properties.env")
    return value


def get_env_flag(name: str) -> bool:
    return (get_env(name, "") or "").lower() in TRUE_VALUES


def get_relayer_account(private_key: str):
    """
    用 relayer 私钥推出账户（只用来拿地址，私钥不会被发出去）
    """
    if not isinstance(private_key, str) or not PRIVATE_KEY_PATTERN.match(private_key):
        raise ConfigurationError(
            "relayer_private_key must be 32 bytes hex (66 chars with 0x)"
        )
    try:
        return Account.from_key(private_key)
    except Exception as e:  # eth_keys 对越界私钥抛的异常类型不统一
        raise ConfigurationError(f"Invalid relayer_private_key: {e}") from e


def to_checksum_address(address: str) -> str:
    return Web3.to_checksum_address(address)


def random_tx_hash() -> str:
    # 32 字节随机数，模拟交易哈希
    return Web3.to_hex(secrets.token_bytes(32))


def gwei_to_wei(amount_gwei: int) -> int:
    return Web3.to_wei(amount_gwei, "gwei")
