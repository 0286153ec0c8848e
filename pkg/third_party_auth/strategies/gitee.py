"""码云（Gitee）登录策略"""

from collections.abc import Mapping
from typing import Any

from pkg.logger import logger

from ..base import BaseThirdPartyAuthStrategy
from ..exceptions import AuthorizeFailedError
from ..models import TokenResponse, User


class GiteeAuthStrategy(BaseThirdPartyAuthStrategy):
    """Gitee OAuth2.0 认证策略

    @see https://gitee.com/api/v5/oauth_doc
    """

    platform = "gitee"

    BASE_URL = "https://gitee.com"
    AUTHORIZE_URL = f"{BASE_URL}/oauth/authorize"
    TOKEN_URL = f"{BASE_URL}/oauth/token"
    USER_INFO_URL = f"{BASE_URL}/api/v5/user"

    def get_token_fields(self, code: str) -> dict[str, Any]:
        return {**super().get_token_fields(code), "grant_type": "authorization_code"}

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        result = await self._send("GET", self.USER_INFO_URL, params={"access_token": token})
        data = self._decode_json(result)

        # 出错时返回 {"message": "..."}
        if data.get("message"):
            logger.error(f"Gitee user info error: {data['message']}")
            raise AuthorizeFailedError(str(data["message"]), data)

        return data

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        return User(
            id=raw.get("id"),
            nickname=raw.get("name"),
            name=raw.get("login"),
            email=raw.get("email"),
            avatar=raw.get("avatar_url"),
        )
