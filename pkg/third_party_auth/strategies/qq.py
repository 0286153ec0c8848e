"""QQ 登录策略"""

import re
from collections.abc import Mapping
from typing import Any, Self
from urllib.parse import parse_qsl

from pkg.logger import logger
from pkg.toolkit.json import orjson_dumps, orjson_loads

from ..base import BaseThirdPartyAuthStrategy
from ..exceptions import AuthorizeFailedError
from ..models import TokenResponse, User

_JSONP_PATTERN = re.compile(r"callback\(\s*(.*?)\s*\)\s*;?\s*$", re.IGNORECASE | re.DOTALL)


def unwrap_jsonp(text: str) -> str | None:
    """callback( {...} ); -> {...}，不是 JSONP 时返回 None"""
    match = _JSONP_PATTERN.search(text)
    return match.group(1) if match else None


class QQAuthStrategy(BaseThirdPartyAuthStrategy):
    """QQ 互联 OAuth2.0 认证策略

    token 接口返回 url 编码的 access_token=...&expires_in=...，
    出错时返回 JSONP：callback( {"error": 100019, "error_description": "..."} );

    @see https://wiki.connect.qq.com/开发攻略_server-side
    """

    platform = "qq"

    BASE_URL = "https://graph.qq.com"
    AUTHORIZE_URL = f"{BASE_URL}/oauth2.0/authorize"
    TOKEN_URL = f"{BASE_URL}/oauth2.0/token"
    ME_URL = f"{BASE_URL}/oauth2.0/me"
    USER_INFO_URL = f"{BASE_URL}/user/get_user_info"

    default_scopes = ("get_user_info",)

    _with_union_id: bool = False

    def with_union_id(self) -> Self:
        """/me 接口同时返回 unionid（需要在 QQ 互联申请权限）"""
        self._with_union_id = True
        return self

    def get_token_fields(self, code: str) -> dict[str, Any]:
        return {**super().get_token_fields(code), "grant_type": "authorization_code"}

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        self._ensure_code(code)
        result = await self._send("GET", self.TOKEN_URL, params=self.get_token_fields(code))
        text = result.text

        jsonp = unwrap_jsonp(text) if text else None
        if jsonp is not None:
            body = self._loads_or_text(jsonp)
            logger.error(f"QQ token error: {jsonp}")
            raise AuthorizeFailedError(f"Authorize Failed: {orjson_dumps(body)}", body)

        return self.normalizer.normalize(dict(parse_qsl(text)))

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        me_params = {"access_token": token}
        if self._with_union_id:
            me_params["unionid"] = "1"

        result = await self._send("GET", self.ME_URL, params=me_params)
        me = self._parse_me(result.text)

        result = await self._send(
            "GET",
            self.USER_INFO_URL,
            params={
                "access_token": token,
                "fmt": "json",
                "openid": me["openid"],
                "oauth_consumer_key": self.app_id,
            },
        )
        user = self._decode_json(result)
        return {**user, "unionid": me.get("unionid"), "openid": me.get("openid")}

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        return User(
            id=raw.get("openid"),
            name=raw.get("nickname"),
            nickname=raw.get("nickname"),
            email=raw.get("email"),
            avatar=raw.get("figureurl_qq_2"),
            extra={"unionid": raw["unionid"]} if raw.get("unionid") else {},
        )

    def _parse_me(self, text: str) -> dict[str, Any]:
        """/me 默认以 JSONP 返回 openid"""
        body = self._loads_or_text(unwrap_jsonp(text) or text)
        if not isinstance(body, dict) or not body.get("openid"):
            logger.error(f"QQ openid lookup failed: {text}")
            raise AuthorizeFailedError(f"Authorize Failed: {orjson_dumps(body)}", body)
        return body

    @staticmethod
    def _loads_or_text(text: str) -> Any:
        try:
            return orjson_loads(text)
        except ValueError:
            return text
