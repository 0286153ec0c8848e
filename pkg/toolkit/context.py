"""请求上下文（trace_id 等），基于 contextvars，跨 await 安全"""

from contextvars import ContextVar
from typing import Any

_request_ctx_var: ContextVar[dict[str, Any] | None] = ContextVar("request_ctx", default=None)

KEY_TRACE_ID = "trace_id"


def init(trace_id: str) -> None:
    """
    初始化当前请求的上下文

    :param trace_id: 链路追踪 ID，不能为空
    """
    if not trace_id or not isinstance(trace_id, str):
        raise ValueError("trace_id is mandatory and must be a non-empty string")

    _request_ctx_var.set({KEY_TRACE_ID: trace_id})


def get_val(key: str, default: Any = None) -> Any:
    ctx = _request_ctx_var.get()
    if ctx is None:
        return default
    return ctx.get(key, default)


def set_val(key: str, value: Any) -> None:
    ctx = _request_ctx_var.get()
    if ctx is None:
        ctx = {}
        _request_ctx_var.set(ctx)
    ctx[key] = value


def get_trace_id() -> str:
    """获取 trace_id，未设置时返回 "-" """
    return get_val(KEY_TRACE_ID) or "-"


def clear() -> None:
    _request_ctx_var.set(None)
