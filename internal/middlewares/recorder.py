import time
import uuid
from dataclasses import dataclass, field

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pkg.logger import logger
from pkg.toolkit import context


@dataclass
class _RequestContext:
    """请求上下文，封装中间件处理过程中的状态变量"""

    path: str
    method: str
    client_host: str
    headers: Headers
    start_time: float = field(default_factory=time.perf_counter)
    trace_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status_code: int | None = None

    def __post_init__(self):
        # trace_id 优先使用请求头 X-Trace-ID
        header_trace_id = self.headers.get("X-Trace-ID")
        if header_trace_id:
            self.trace_id = header_trace_id

    @property
    def process_time(self) -> float:
        return time.perf_counter() - self.start_time

    def create_send_wrapper(self, send: Send):
        """在响应头中注入 X-Trace-ID / X-Process-Time"""

        async def send_wrapper(message: Message):
            if message["type"] == "http.response.start":
                self.status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers["X-Process-Time"] = f"{self.process_time:.6f}"
                headers["X-Trace-ID"] = self.trace_id
            await send(message)

        return send_wrapper


class ASGIRecordMiddleware:
    """记录访问日志，并为每个请求初始化 trace_id 上下文"""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        req_ctx = _RequestContext(
            path=scope["path"],
            method=scope["method"],
            client_host=(scope.get("client") or ["unknown"])[0],
            headers=Headers(scope=scope),
        )
        context.init(req_ctx.trace_id)

        try:
            await self.app(scope, receive, req_ctx.create_send_wrapper(send))
        finally:
            # query string 中带有 code / token，不记录
            logger.info(
                f"{req_ctx.client_host} {req_ctx.method} {req_ctx.path} "
                f"status={req_ctx.status_code} cost={req_ctx.process_time:.3f}s"
            )
            context.clear()
