"""统一响应：状态码定义与 {code, message, data} 错误信封"""

from dataclasses import dataclass
from typing import Any

from fastapi.responses import Response

from pkg.toolkit.json import orjson_dumps_bytes


@dataclass(frozen=True)
class AppStatus:
    """状态码 + HTTP 状态 + 多语言文案"""

    code: int
    message: dict[str, str]
    http_status: int = 200

    def get_msg(self, lang: str = "zh") -> str:
        return self.message.get(lang) or self.message.get("zh", "")


@dataclass(frozen=True)
class AppError(AppStatus):
    """错误状态"""


class BaseCodes:
    """状态码集合基类，子类以类属性声明 AppError"""


class CustomORJSONResponse(Response):
    """orjson 渲染的 JSON 响应，User 等值对象经 to_dict 输出"""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson_dumps_bytes(content)


def error_response(error: AppError, *, message: str = "", data: Any = None, lang: str = "zh") -> CustomORJSONResponse:
    """
    构造错误响应

    :param error: 状态码对象，决定 code 与 HTTP 状态
    :param message: 详细信息，拼接在默认文案之后
    :param data: 附加数据
    :param lang: 文案语言
    """
    base_msg = error.get_msg(lang)
    return CustomORJSONResponse(
        status_code=error.http_status,
        content={
            "code": error.code,
            "message": f"{base_msg}: {message}" if message else base_msg,
            "data": data,
        },
    )
