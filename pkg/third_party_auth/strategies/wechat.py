"""微信登录策略实现 - 配置通过参数注入"""

import secrets
from collections.abc import Callable, Mapping
from typing import Any, Self

from pkg.logger import logger
from pkg.toolkit.http_cli import AsyncHttpClient

from ..base import BaseThirdPartyAuthStrategy, build_query
from ..config import ProviderConfig
from ..exceptions import AuthorizeFailedError, ConfigError, InvalidArgumentError
from ..models import TokenResponse, User

# with_component() 可识别的键名
_COMPONENT_ID_KEYS = frozenset({"id", "app_id", "component_app_id"})
_COMPONENT_TOKEN_KEYS = frozenset({"token", "access_token", "component_access_token"})


class WeChatAuthStrategy(BaseThirdPartyAuthStrategy):
    """微信 OAuth2.0 认证策略

    - scope 包含 snsapi_login 时走网站应用扫码登录（qrconnect），否则走公众号网页授权
    - 授权地址总是带 state（未设置时随机生成）
    - 以 snsapi_base 授权时，直接用 token 响应中的 openid 构建用户，不再请求 userinfo

    使用示例:
        ```python
        strategy = WeChatAuthStrategy(
            config=ProviderConfig(
                app_id="your_app_id",
                secret="your_app_secret",
                redirect_url="https://example.com/callback",
            )
        )

        url = strategy.build_authorization_url()
        ...
        user = await strategy.authenticate_with_code(code)
        ```
    """

    platform = "wechat"

    AUTHORIZE_URL = "https://open.weixin.qq.com/connect/oauth2/authorize"
    QRCONNECT_URL = "https://open.weixin.qq.com/connect/qrconnect"

    # 微信 API 端点
    BASE_URL = "https://api.weixin.qq.com/sns"
    TOKEN_URL = f"{BASE_URL}/oauth2/access_token"
    COMPONENT_TOKEN_URL = f"{BASE_URL}/oauth2/component/access_token"
    USER_INFO_URL = f"{BASE_URL}/userinfo"

    default_scopes = ("snsapi_login",)

    open_id_key = "openid"
    union_id_key = "unionid"

    def __init__(self, config: ProviderConfig, *, http_client: AsyncHttpClient | None = None):
        super().__init__(config, http_client=http_client)
        self._openid: str | None = None
        self._with_country_code = False
        self._component: dict[str, str] | None = None

    # ------------------------------------------------------------------
    # 配置
    # ------------------------------------------------------------------

    def with_openid(self, openid: str) -> Self:
        """已持有 token 时（authenticate_with_token）需要同时提供 openid"""
        self._openid = openid
        return self

    def with_country_code(self) -> Self:
        """userinfo 不传 lang，返回国家地区编码而不是中文名称"""
        self._with_country_code = True
        return self

    def with_component(self, component: Mapping[str, Any | Callable[[Self], Any]]) -> Self:
        """
        代公众号发起网页授权（第三方平台）

        Args:
            component: 第三方平台配置，appid 键可为 id / app_id / component_app_id，
                token 键可为 token / access_token / component_access_token；
                值为可调用对象时以当前策略为参数求值

        Raises:
            ConfigError: 缺少 appid 或 access_token
        """
        resolved: dict[str, str] = {}
        for key, value in component.items():
            if callable(value):
                value = value(self)
            if key in _COMPONENT_ID_KEYS:
                resolved["id"] = str(value)
            elif key in _COMPONENT_TOKEN_KEYS:
                resolved["token"] = str(value)

        if not resolved.get("id") or not resolved.get("token"):
            raise ConfigError("Please check your config arguments is available.")

        # 第三方平台代授权不支持 snsapi_login
        if self._scopes == ["snsapi_login"]:
            self._scopes = ["snsapi_base"]

        self._component = resolved
        return self

    @property
    def component(self) -> dict[str, str] | None:
        return dict(self._component) if self._component else None

    # ------------------------------------------------------------------
    # 授权地址
    # ------------------------------------------------------------------

    def build_authorization_url(self, redirect_url: str | None = None) -> str:
        if redirect_url:
            self.with_redirect_url(redirect_url)
        url = self.QRCONNECT_URL if "snsapi_login" in self._scopes else self.AUTHORIZE_URL
        return self._build_auth_url_base(url)

    def get_code_fields(self) -> dict[str, Any]:
        fields = {
            "appid": self.app_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": self.format_scopes(),
            "state": self._state or secrets.token_hex(16),
            "connect_redirect": 1,
            **self._parameters,
        }
        if self._component:
            fields["component_appid"] = self._component["id"]
        return fields

    def _build_auth_url_base(self, url: str) -> str:
        return f"{url}?{build_query(self.get_code_fields(), self.query_encoding)}#wechat_redirect"

    # ------------------------------------------------------------------
    # code -> token -> user
    # ------------------------------------------------------------------

    def get_token_fields(self, code: str) -> dict[str, Any]:
        if self._component:
            return {
                "appid": self.app_id,
                "component_appid": self._component["id"],
                "component_access_token": self._component["token"],
                "code": code,
                "grant_type": "authorization_code",
            }
        return {
            "appid": self.app_id,
            "secret": self.secret,
            "code": code,
            "grant_type": "authorization_code",
        }

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        """
        通过授权码获取 access_token

        Returns:
            TokenResponse，open_id / union_id 为微信返回的 openid / unionid

        Raises:
            AuthorizeFailedError: 微信返回 errcode
        """
        self._ensure_code(code)
        token_url = self.COMPONENT_TOKEN_URL if self._component else self.TOKEN_URL
        result = await self._send("GET", token_url, params=self.get_token_fields(code))
        data = self._decode_json(result)
        self._check_errcode(data)
        return self.normalizer.normalize(data)

    async def authenticate_with_code(self, code: str | None) -> User:
        if "snsapi_base" not in self._scopes:
            return await super().authenticate_with_code(code)

        # 静默授权只能拿到 openid，不请求 userinfo
        self._ensure_code(code)
        token_response = await self.exchange_code_for_token(code)
        user = self.map_user_to_canonical(token_response.raw, token_response)

        logger.info(f"WeChat snsapi_base user resolved, id={user.id}")
        return (
            user.with_driver(self)
            .with_raw(token_response.raw)
            .with_token(token_response.access_token)
            .with_refresh_token(token_response.refresh_token)
            .with_expires_in(token_response.expires_in)
            .with_token_response(token_response)
        )

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        """
        获取微信用户信息

        Args:
            token: 微信 access_token
            token_response: code 换 token 的结果，提供 openid；为空时使用 with_openid() 设置的值

        Raises:
            InvalidArgumentError: 没有可用的 openid
            AuthorizeFailedError: 微信返回 errcode
        """
        openid = (token_response.open_id if token_response else None) or self._openid
        if not openid:
            raise InvalidArgumentError("Openid cannot be empty, call with_openid() first.")

        if self._with_country_code:
            language = None
        else:
            language = self._parameters.get("lang", "zh_CN")

        params = {"access_token": token, "openid": openid}
        if language:
            params["lang"] = language

        result = await self._send("GET", self.USER_INFO_URL, params=params)
        data = self._decode_json(result)
        self._check_errcode(data)
        return data

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        extra = {"unionid": raw["unionid"]} if raw.get("unionid") else {}
        return User(
            id=raw.get("openid"),
            name=raw.get("nickname"),
            nickname=raw.get("nickname"),
            avatar=raw.get("headimgurl"),
            extra=extra,
        )

    @staticmethod
    def _check_errcode(data: Mapping[str, Any]) -> None:
        # 检查微信返回的错误
        if "errcode" in data and data["errcode"] != 0:
            logger.error(f"WeChat API error: {data.get('errmsg', 'unknown error')}")
            raise AuthorizeFailedError(f"WeChat API error: {data.get('errmsg', 'unknown error')}", dict(data))
