"""orjson 序列化封装，第三方平台响应、会话数据与接口响应共用"""

from pathlib import Path
from typing import Any, TypeAlias

import orjson

# 会话与响应中的 datetime 统一按 UTC 输出，字典键允许为非字符串（QQ 等平台返回数字键）
DEFAULT_ORJSON_OPTIONS = orjson.OPT_NAIVE_UTC | orjson.OPT_UTC_Z | orjson.OPT_NON_STR_KEYS

JsonInputType: TypeAlias = str | bytes | bytearray | memoryview


def _default(obj: Any) -> Any:
    """orjson 无法直接序列化的类型"""
    # User / TokenResponse / AccessToken 等值对象
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()

    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).decode("utf-8", "replace")

    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)

    if isinstance(obj, Path):
        return obj.as_posix()

    raise TypeError(f"Type {type(obj)} is not JSON serializable")


def orjson_dumps_bytes(obj: Any, *, default: Any = None, option: int | None = None) -> bytes:
    """序列化为 bytes（HTTP 响应）"""
    try:
        return orjson.dumps(
            obj,
            default=default or _default,
            option=DEFAULT_ORJSON_OPTIONS if option is None else option,
        )
    except TypeError as e:
        raise ValueError(f"JSON Serialization Failed: {e} - Type: {type(obj)}") from e


def orjson_dumps(obj: Any, *, default: Any = None, option: int | None = None) -> str:
    """序列化为 str（日志、Redis、异常信息）"""
    return orjson_dumps_bytes(obj, default=default, option=option).decode("utf-8")


def orjson_loads(obj: JsonInputType) -> Any:
    """
    反序列化

    Raises:
        ValueError: 不是合法的 JSON（orjson.JSONDecodeError 是 ValueError 的子类）
    """
    return orjson.loads(obj)
