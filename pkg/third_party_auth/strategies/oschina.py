"""开源中国（OSChina）登录策略"""

from collections.abc import Mapping
from typing import Any

from ..base import BaseThirdPartyAuthStrategy
from ..models import TokenResponse, User


class OschinaAuthStrategy(BaseThirdPartyAuthStrategy):
    """OSChina OAuth2.0 认证策略，token 与用户信息接口都是 GET"""

    platform = "oschina"

    BASE_URL = "https://www.oschina.net/action"
    AUTHORIZE_URL = f"{BASE_URL}/oauth2/authorize"
    TOKEN_URL = f"{BASE_URL}/openapi/token"
    USER_INFO_URL = f"{BASE_URL}/openapi/user"

    def get_token_fields(self, code: str) -> dict[str, Any]:
        return {
            **super().get_token_fields(code),
            "grant_type": "authorization_code",
        }

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        self._ensure_code(code)
        result = await self._send("GET", self.TOKEN_URL, params=self.get_token_fields(code))
        return self.normalizer.normalize(result.content)

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        result = await self._send(
            "GET",
            self.USER_INFO_URL,
            params={"access_token": token, "dataType": "json"},
        )
        return self._decode_json(result)

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        return User(
            id=raw.get("id"),
            nickname=raw.get("name"),
            name=raw.get("name"),
            email=raw.get("email"),
            avatar=raw.get("avatar"),
        )
