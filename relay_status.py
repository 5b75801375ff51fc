# relay_status.py
from enum import Enum


class RelayStatus(str, Enum):
    PENDING = "pending"
    MINED = "mined"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RelayStatus.PENDING


# 原生状态 -> 统一状态
NATIVE_STATUS_MAP: dict[str, RelayStatus] = {
    "pending": RelayStatus.PENDING,
    "sent": RelayStatus.PENDING,
    "submitted": RelayStatus.PENDING,
    "inmempool": RelayStatus.PENDING,
    "mined": RelayStatus.MINED,
    "confirmed": RelayStatus.CONFIRMED,
    "failed": RelayStatus.FAILED,
}

# 进度顺序；FAILED 不在里面，任何状态都可以转到 FAILED
_PROGRESS = {
    RelayStatus.PENDING: 0,
    RelayStatus.MINED: 1,
    RelayStatus.CONFIRMED: 2,
}


def normalize_status(native_status: str | None) -> RelayStatus:
    """
    把 relay 服务返回的原生状态映射到统一的四种状态。
    不认识的状态一律当 pending，绝不误报终态。
    """
    if not native_status:
        return RelayStatus.PENDING
    key = str(native_status).strip().lower()
    return NATIVE_STATUS_MAP.get(key, RelayStatus.PENDING)


def is_allowed_transition(current: RelayStatus, new: RelayStatus) -> bool:
    """状态只能往前走（或者转到 failed）"""
    if current is new:
        return True
    if current is RelayStatus.FAILED:
        return False
    if new is RelayStatus.FAILED:
        return True
    return _PROGRESS[new] > _PROGRESS[current]
