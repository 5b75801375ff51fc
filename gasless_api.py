# gasless_api.py
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from relay_errors import (
    AuthenticationError,
    ConfigurationError,
    InsufficientFundsError,
    NonceConflictError,
    NotFoundError,
    RelayError,
    RelayTimeoutError,
    TransientError,
    ValidationError,
)
from relay_factory import create_relay_orchestrator
from relay_service_core import DEFAULT_POLL_INTERVAL_MS, DEFAULT_TIMEOUT_MS, RelayOrchestrator
from relay_types import RelayRequest, Speed, int_to_str

# 错误类型 -> (HTTP 状态码, error 字段)
ERROR_RESPONSES: dict[type[RelayError], tuple[int, str]] = {
    ValidationError: (400, "validation_error"),
    NotFoundError: (404, "not_found"),
    NonceConflictError: (409, "nonce_conflict"),
    ConfigurationError: (500, "configuration_error"),
    AuthenticationError: (502, "authentication_error"),
    InsufficientFundsError: (503, "insufficient_funds"),
    TransientError: (503, "transient_error"),
    RelayTimeoutError: (504, "timeout"),
}


class RelayBody(BaseModel):
    to: str
    data: str
    value: str = "0"
    gasLimit: str = "200000"
    speed: Speed = Speed.AVERAGE
    paymentId: Optional[str] = None

    @field_validator("value", "gasLimit", mode="before")
    @classmethod
    def _coerce_quantity(cls, v):
        return int_to_str(v)

    def to_relay_request(self) -> RelayRequest:
        return RelayRequest(
            to=self.to,
            data=self.data,
            value=self.value,
            gas_limit=self.gasLimit,
            speed=self.speed,
        )


class CancelResult(BaseModel):
    relayRequestId: str
    cancelled: bool = Field(description="False 表示已上链或暂不支持取消")


def _ok(data) -> dict:
    return {"code": 0, "data": data}


def create_app(orchestrator: RelayOrchestrator | None = None) -> FastAPI:
    """
    orchestrator 不传就在启动时按环境变量创建，关闭时释放。
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = orchestrator is None
        app.state.orchestrator = orchestrator or create_relay_orchestrator()
        try:
            yield
        finally:
            if owned:
                app.state.orchestrator.close()

    app = FastAPI(title="Gasless Relay Server", lifespan=lifespan)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        status_code, kind = 500, "relay_error"
        for error_cls, response in ERROR_RESPONSES.items():
            if isinstance(exc, error_cls):
                status_code, kind = response
                break
        content = {"code": 1, "error": kind, "msg": str(exc)}
        if isinstance(exc, RelayTimeoutError):
            content["lastStatus"] = exc.last_status.value
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # 请求体 / 参数不合法也走 validation_error，而不是 FastAPI 默认的 422
        problems = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0])
            problems.append(f"{field}: {err['msg']}")
        status_code, kind = ERROR_RESPONSES[ValidationError]
        return JSONResponse(
            status_code=status_code,
            content={"code": 1, "error": kind, "msg": "; ".join(problems)},
        )

    def get_orchestrator(request: Request) -> RelayOrchestrator:
        return request.app.state.orchestrator

    @app.get("/")
    def root():
        return {"msg": "gasless relay server running"}

    @app.get("/health")
    async def health(request: Request):
        result = await get_orchestrator(request).check_relayer_health()
        return _ok(result.model_dump())

    @app.post("/relay")
    async def submit_relay(body: RelayBody, request: Request):
        """
        代发一笔交易，返回 relayRequestId，之后用 /relay/{id} 查状态。
        """
        handle = await get_orchestrator(request).submit(
            body.to_relay_request(), payment_id=body.paymentId
        )
        return _ok(handle.to_dict())

    @app.get("/relay/{relay_request_id}")
    async def relay_status(relay_request_id: str, request: Request):
        handle = await get_orchestrator(request).get_status(relay_request_id)
        return _ok(handle.to_dict())

    @app.post("/relay/{relay_request_id}/cancel")
    async def cancel_relay(relay_request_id: str, request: Request):
        cancelled = await get_orchestrator(request).cancel(relay_request_id)
        return _ok(CancelResult(relayRequestId=relay_request_id, cancelled=cancelled).model_dump())

    @app.post("/relay/{relay_request_id}/wait")
    async def wait_relay(
        relay_request_id: str,
        request: Request,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ):
        handle = await get_orchestrator(request).wait_for_terminal(
            relay_request_id, timeout_ms=timeout_ms, poll_interval_ms=poll_interval_ms
        )
        return _ok(handle.to_dict())

    return app


app = create_app()


if __name__ == "__main__":
    print("🚀 Gasless relay server 正在启动 (Port: 8000)...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
