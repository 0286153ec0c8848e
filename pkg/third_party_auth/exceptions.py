"""第三方认证异常定义"""

from typing import Any


class ThirdPartyAuthError(Exception):
    """第三方认证异常基类

    Attributes:
        message: 错误描述
        body: 第三方平台原始响应（可选，便于排查）
    """

    def __init__(self, message: str, body: Any = None):
        super().__init__(message)
        self.message = message
        self.body = body

    def __str__(self) -> str:
        return self.message


class ConfigError(ThirdPartyAuthError):
    """静态配置缺失或非法（appid/secret/私钥/回调地址等）"""


class InvalidArgumentError(ThirdPartyAuthError):
    """调用参数缺失（code、token 为空等）"""


class UnsupportedOperationError(InvalidArgumentError):
    """平台不支持的调用入口（如钉钉的 code 换 token）"""


class AuthorizeFailedError(ThirdPartyAuthError):
    """第三方平台拒绝授权，或返回了无法识别的数据"""


class TransportError(ThirdPartyAuthError):
    """网络错误或非 2xx 的 HTTP 响应"""

    def __init__(self, message: str, body: Any = None, status_code: int | None = None):
        super().__init__(message, body)
        self.status_code = status_code
