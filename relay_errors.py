# relay_errors.py
"""
relay 层对外的错误类型。

调用方只会看到 RelayError 的子类。
远端 relay 服务返回的原始错误先由 provider 包成 ProviderError，
再由 classify_provider_error() 统一翻译成下面几种类型，
调用方不需要自己去匹配供应商的错误字符串。
"""

from __future__ import annotations


class RelayError(Exception):
    """relay 层所有错误的基类"""


class ValidationError(RelayError, ValueError):
    """请求字段格式错误（在任何 I/O 之前抛出）"""


class ConfigurationError(RelayError):
    """构造时凭证 / 配置缺失或格式错误"""


class NotFoundError(RelayError):
    """provider 不认识这个 relay request id"""


class InsufficientFundsError(RelayError):
    """relayer 钱包余额不足"""


class NonceConflictError(RelayError):
    """relayer nonce 冲突，稍后可以重试"""


class AuthenticationError(RelayError):
    """relay 服务拒绝了我们的凭证"""


class TransientError(RelayError):
    """relay 服务连不上，或者返回了无法识别的错误"""


class RelayTimeoutError(RelayError, TimeoutError):
    """wait_for_terminal 超时，带上最后一次看到的状态"""

    def __init__(self, relay_request_id: str, last_status, timeout_ms: int):
        self.relay_request_id = relay_request_id
        self.last_status = last_status
        self.timeout_ms = timeout_ms
        status_text = getattr(last_status, "value", last_status)
        super().__init__(
            f"Relay request {relay_request_id} not terminal after {timeout_ms} ms "
            f"(last status: {status_text})"
        )


class ProviderError(Exception):
    """供应商返回的原始错误文本，尚未分类"""


# ==== 供应商错误文本 -> RelayError ====

# 表有改动就 +1
CLASSIFIER_VERSION = 1

# 按顺序匹配，第一个命中的生效（忽略大小写）
ERROR_SIGNATURES: tuple[tuple[str, type[RelayError]], ...] = (
    ("not found", NotFoundError),
    ("insufficient funds", InsufficientFundsError),
    ("nonce", NonceConflictError),
    ("unauthorized", AuthenticationError),
    ("401", AuthenticationError),
)

_DEFAULT_MESSAGES: dict[type[RelayError], str] = {
    NotFoundError: "Relay request not found",
    InsufficientFundsError: "Relayer balance is insufficient",
    NonceConflictError: "Relayer nonce conflict, try again shortly",
    AuthenticationError: "Relay service authentication failed",
    TransientError: "Relay service failed",
}


def classify_failure_text(text: str | None) -> type[RelayError]:
    """
    根据供应商的错误文本找到对应的错误类型。
    空文本或不认识的文本一律算 TransientError，不去猜。
    """
    if not text:
        return TransientError
    lowered = text.lower()
    for signature, error_cls in ERROR_SIGNATURES:
        if signature in lowered:
            return error_cls
    return TransientError


def classify_provider_error(exc: ProviderError, context: str = "") -> RelayError:
    """
    把 ProviderError 翻译成对外的错误。
    原始文本保留在 message 末尾，调用方用 raise ... from exc 串起来。
    """
    error_cls = classify_failure_text(str(exc))
    message = _DEFAULT_MESSAGES[error_cls]
    if context:
        message = f"{message} ({context})"
    return error_cls(f"{message}: {exc}")
