from pkg.response import AppError, BaseCodes
from pkg.third_party_auth import (
    AuthorizeFailedError,
    ConfigError,
    InvalidArgumentError,
    ThirdPartyAuthError,
    TransportError,
)


class GlobalCodes(BaseCodes):
    """
    全局状态码定义
    """

    # 客户端错误 (40000 - 49999)
    BadRequest = AppError(40000, {"zh": "请求参数错误", "en": "Bad Request"}, 400)
    Unauthorized = AppError(40001, {"zh": "第三方授权失败", "en": "Unauthorized"}, 401)
    NotFound = AppError(40004, {"zh": "资源不存在", "en": "Not Found"}, 404)

    # 服务端错误 (50000 - 59999)
    InternalServerError = AppError(50000, {"zh": "服务器内部错误", "en": "Internal Server Error"}, 500)
    BadGateway = AppError(50002, {"zh": "第三方平台请求失败", "en": "Bad Gateway"}, 502)


global_codes = GlobalCodes()


class AppException(Exception):
    def __init__(self, error: AppError, message: str = ""):
        """
        业务异常，由全局异常处理器转换为统一响应。

        :param error: GlobalCodes 中定义的错误对象
        :param message: 详细信息
        """
        self.error = error
        self.message = message

    def __str__(self):
        return f"AppException: code={self.error.code}, message={self.message}"


def third_party_error_code(exc: ThirdPartyAuthError) -> AppError:
    """第三方认证异常 -> 状态码"""
    if isinstance(exc, (ConfigError, InvalidArgumentError)):
        return global_codes.BadRequest
    if isinstance(exc, AuthorizeFailedError):
        return global_codes.Unauthorized
    if isinstance(exc, TransportError):
        return global_codes.BadGateway
    return global_codes.InternalServerError
