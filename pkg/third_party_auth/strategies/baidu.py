"""百度登录策略"""

from collections.abc import Mapping
from typing import Any, Self

from ..base import BaseThirdPartyAuthStrategy
from ..models import TokenResponse, User


class BaiduAuthStrategy(BaseThirdPartyAuthStrategy):
    """百度 OAuth2.0 认证策略

    @see https://developer.baidu.com/wiki/index.php?title=docs/oauth
    """

    platform = "baidu"

    BASE_URL = "https://openapi.baidu.com"
    VERSION = "2.0"
    AUTHORIZE_URL = f"{BASE_URL}/oauth/{VERSION}/authorize"
    TOKEN_URL = f"{BASE_URL}/oauth/{VERSION}/token"
    USER_INFO_URL = f"{BASE_URL}/rest/{VERSION}/passport/users/getInfo"
    PORTRAIT_URL = "http://tb.himg.baidu.com/sys/portraitn/item/"

    default_scopes = ("basic",)

    display: str = "popup"

    def with_display(self, display: str) -> Self:
        """授权页展示样式：page / popup / dialog / mobile 等"""
        self.display = display
        return self

    def get_code_fields(self) -> dict[str, Any]:
        return {
            "client_id": self.app_id,
            "redirect_uri": self.redirect_url,
            "scope": self.format_scopes(),
            "response_type": "code",
            "display": self.display,
            **self._parameters,
        }

    def get_token_fields(self, code: str) -> dict[str, Any]:
        return {**super().get_token_fields(code), "grant_type": "authorization_code"}

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        result = await self._send("GET", self.USER_INFO_URL, params={"access_token": token})
        return self._decode_json(result)

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        portrait = raw.get("portrait")
        return User(
            id=raw.get("openid"),
            nickname=raw.get("username"),
            name=raw.get("username"),
            avatar=f"{self.PORTRAIT_URL}{portrait}" if portrait else None,
        )
