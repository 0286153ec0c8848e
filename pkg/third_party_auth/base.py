"""第三方认证策略抽象基类 - 无业务依赖的通用接口"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any, ClassVar, Self
from urllib.parse import quote, quote_plus, urlencode

from pkg.logger import logger
from pkg.toolkit.http_cli import AsyncHttpClient, RequestResult

from .config import ProviderConfig
from .exceptions import AuthorizeFailedError, ConfigError, InvalidArgumentError, TransportError
from .models import AccessToken, TokenResponse, User
from .normalizer import TokenResponseNormalizer


class QueryEncoding(str, Enum):
    """查询串中空格的编码方式，需与平台后端保持一致"""

    RFC1738 = "rfc1738"  # 空格 -> +
    RFC3986 = "rfc3986"  # 空格 -> %20


def build_query(params: Mapping[str, Any], encoding: QueryEncoding = QueryEncoding.RFC1738) -> str:
    """按插入顺序构建查询串，值为 None 的字段不输出"""
    quote_via = quote_plus if encoding == QueryEncoding.RFC1738 else quote
    items = [(k, v) for k, v in params.items() if v is not None]
    return urlencode(items, quote_via=quote_via)


def extract_code(params: Mapping[str, Any]) -> str | None:
    """从回调参数中读取授权码，code 优先，其次 auth_code（支付宝）"""
    return params.get("code") or params.get("auth_code") or None


class BaseThirdPartyAuthStrategy(ABC):
    """第三方认证策略抽象基类

    一个实例只服务一次授权流程（一个请求），不在请求之间共享可变状态。
    子类通过类属性声明各平台的地址、scope 分隔符、token 字段名等，
    并实现四个钩子：授权参数、token 参数、获取用户、用户字段映射。

    使用示例:
        ```python
        async with GiteeAuthStrategy(ProviderConfig(app_id="id", secret="s")) as strategy:
            url = strategy.with_state("csrf").build_authorization_url("https://example.com/cb")
            ...
            user = await strategy.authenticate_with_code(code)
        ```
    """

    platform: ClassVar[str] = ""

    AUTHORIZE_URL: ClassVar[str] = ""
    TOKEN_URL: ClassVar[str] = ""

    default_scopes: ClassVar[tuple[str, ...]] = ()
    scope_separator: ClassVar[str] = " "
    query_encoding: ClassVar[QueryEncoding] = QueryEncoding.RFC1738

    access_token_key: ClassVar[str] = "access_token"
    refresh_token_key: ClassVar[str] = "refresh_token"
    expires_in_key: ClassVar[str] = "expires_in"
    open_id_key: ClassVar[str | None] = None
    union_id_key: ClassVar[str | None] = None

    # 是否支持标准的 code 换 token 流程（钉钉不支持）
    supports_token_exchange: ClassVar[bool] = True

    def __init__(self, config: ProviderConfig, *, http_client: AsyncHttpClient | None = None):
        """
        Args:
            config: 平台配置（通过依赖注入）
            http_client: 可选的 HTTP 客户端，不传时自行创建并在 close() 时关闭
        """
        self.config = config
        self._redirect_url = config.redirect_url
        self._scopes = list(config.scopes) if config.scopes else list(self.default_scopes)
        self._parameters = dict(config.extra_parameters)
        self._state: str | None = None

        self._owns_http_client = http_client is None
        self._http_client = http_client or AsyncHttpClient(
            timeout=config.timeout,
            headers={"Accept": "application/json"},
        )
        self.normalizer = TokenResponseNormalizer(
            access_token_key=self.access_token_key,
            refresh_token_key=self.refresh_token_key,
            expires_in_key=self.expires_in_key,
            open_id_key=self.open_id_key,
            union_id_key=self.union_id_key,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # 配置
    # ------------------------------------------------------------------

    @property
    def app_id(self) -> str:
        return self.config.app_id

    @property
    def secret(self) -> str:
        return self.config.secret

    @property
    def redirect_url(self) -> str | None:
        return self._redirect_url

    @property
    def scopes(self) -> list[str]:
        return list(self._scopes)

    @property
    def state(self) -> str | None:
        return self._state

    def with_state(self, state: str) -> Self:
        """设置 state（由调用方生成，用于 CSRF 防护）"""
        self._state = state
        return self

    def with_scopes(self, scopes: list[str]) -> Self:
        self._scopes = list(scopes)
        return self

    def with_parameters(self, parameters: Mapping[str, str]) -> Self:
        """设置附加到授权地址上的自定义参数"""
        self._parameters = dict(parameters)
        return self

    def with_redirect_url(self, redirect_url: str) -> Self:
        self._redirect_url = redirect_url
        return self

    def get_platform_name(self) -> str:
        """获取平台名称"""
        return self.platform

    # ------------------------------------------------------------------
    # 授权地址
    # ------------------------------------------------------------------

    def build_authorization_url(self, redirect_url: str | None = None) -> str:
        """
        构建授权地址

        Args:
            redirect_url: 覆盖配置中的回调地址

        Raises:
            ConfigError: 平台要求的配置缺失
        """
        if redirect_url:
            self.with_redirect_url(redirect_url)
        return self._build_auth_url_base(self.AUTHORIZE_URL)

    def format_scopes(self, scopes: list[str] | None = None) -> str:
        return self.scope_separator.join(self._scopes if scopes is None else scopes)

    def get_code_fields(self) -> dict[str, Any]:
        """授权地址的查询参数（state 由 _build_auth_url_base 统一追加在末尾）"""
        return {
            "client_id": self.app_id,
            "redirect_uri": self._redirect_url,
            "scope": self.format_scopes(),
            "response_type": "code",
            **self._parameters,
        }

    def _build_auth_url_base(self, url: str) -> str:
        query = self.get_code_fields()
        if self._state:
            query["state"] = self._state
        return f"{url}?{build_query(query, self.query_encoding)}"

    def build_callback_url(self, url: str, token_response: TokenResponse) -> str:
        """把 token 信息拼接到前端回调地址上"""
        params = {
            "token": token_response.access_token,
            "refresh_token": token_response.refresh_token,
            "expires_in": token_response.expires_in,
            "type": token_response.token_type,
        }
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{build_query(params, self.query_encoding)}"

    # ------------------------------------------------------------------
    # code -> token
    # ------------------------------------------------------------------

    def get_token_fields(self, code: str) -> dict[str, Any]:
        """换取 token 的请求参数"""
        return {
            "client_id": self.app_id,
            "client_secret": self.secret,
            "code": code,
            "redirect_uri": self._redirect_url,
        }

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        """
        通过授权码获取 access_token

        Args:
            code: 授权码

        Raises:
            InvalidArgumentError: code 为空
            AuthorizeFailedError: 平台返回错误或缺少 access_token
            TransportError: 网络错误或非 2xx 响应
        """
        self._ensure_code(code)
        result = await self._send(
            "POST",
            self.TOKEN_URL,
            data=self.get_token_fields(code),
            headers={"Accept": "application/json"},
        )
        return self.normalizer.normalize(result.content)

    # ------------------------------------------------------------------
    # token -> user
    # ------------------------------------------------------------------

    @abstractmethod
    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        """
        获取第三方平台的原始用户信息

        Args:
            token: 访问令牌
            token_response: code 换 token 的结果，部分平台需要其中的 open_id
        """

    @abstractmethod
    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        """原始用户信息 -> User，纯字段映射，不做 I/O"""

    async def build_user_from_token(self, token: str, token_response: TokenResponse | None = None) -> User:
        raw = await self.fetch_user_by_token(token, token_response)
        user = self.map_user_to_canonical(raw, token_response)
        return user.with_driver(self).with_raw(raw).with_token(token)

    async def authenticate_with_code(self, code: str | None) -> User:
        """
        授权码登录：code 换 token，获取用户，附加 token 信息

        Args:
            code: 授权码（由调用方从回调请求中读取，见 extract_code）
        """
        self._ensure_code(code)
        token_response = await self.exchange_code_for_token(code)
        user = await self.build_user_from_token(token_response.access_token, token_response)

        logger.info(f"Third-party user resolved by code, platform={self.platform}, id={user.id}")
        return (
            user.with_refresh_token(token_response.refresh_token)
            .with_expires_in(token_response.expires_in)
            .with_token_response(token_response)
        )

    async def authenticate_with_token(
        self,
        token: str | AccessToken | None,
        refresh_token: str | None = None,
        expires_in: int | str | None = None,
    ) -> User:
        """
        已持有 token 时直接获取用户（如移动端 SDK 授权）

        Args:
            token: 访问令牌
            refresh_token: 回调请求中携带的刷新令牌
            expires_in: 回调请求中携带的有效期
        """
        if not token:
            raise InvalidArgumentError("Token parameter cannot be empty.")

        user = await self.build_user_from_token(str(token))

        logger.info(f"Third-party user resolved by token, platform={self.platform}, id={user.id}")
        return user.with_refresh_token(refresh_token or None).with_expires_in(expires_in)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _send(self, method: str, url: str, **kwargs: Any) -> RequestResult:
        """发送请求，网络错误和非 2xx 响应统一抛出 TransportError"""
        if method.upper() == "GET":
            result = await self._http_client.get(url, **kwargs)
        else:
            result = await self._http_client.post(url, **kwargs)

        if not result.success:
            path = url.split("?", 1)[0]
            logger.error(
                f"{self.platform} request failed: {method} {path} | status={result.status_code} | {result.error}"
            )
            raise TransportError(
                f"{self.platform} request failed: {result.error}",
                result.text or None,
                status_code=result.status_code,
            )
        return result

    def _decode_json(self, result: RequestResult) -> dict[str, Any]:
        """解析平台返回的 JSON 对象，无法解析时视为授权失败"""
        try:
            data = result.json()
        except RuntimeError as e:
            logger.error(f"{self.platform} returned invalid JSON: {e}")
            raise AuthorizeFailedError(f"Invalid {self.platform} response", result.text) from e

        if not isinstance(data, Mapping):
            raise AuthorizeFailedError(f"Invalid {self.platform} response", data)
        return dict(data)

    @staticmethod
    def _ensure_code(code: str | None) -> None:
        if not code:
            raise InvalidArgumentError("Code parameter cannot be empty.")

    @staticmethod
    def _ensure_redirect_url(redirect_url: str | None, message: str) -> str:
        if not redirect_url:
            raise ConfigError(message)
        return redirect_url

    async def close(self) -> None:
        """关闭自行创建的 HTTP 客户端，注入的客户端由调用方管理"""
        if self._owns_http_client:
            await self._http_client.close()
