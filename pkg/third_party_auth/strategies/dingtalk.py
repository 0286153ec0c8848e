"""钉钉扫码登录策略（第三方个人应用）

钉钉不走标准的 code -> token -> user 流程，
而是用临时授权码直接换取用户信息，见 user_from_code()。

@see https://open.dingtalk.com/document/orgapp/scan-qr-code-to-log-on-to-third-party-websites
"""

from collections.abc import Mapping
from typing import Any

from pkg.logger import logger
from pkg.toolkit.json import orjson_dumps
from pkg.toolkit.timer import utc_timestamp_ms

from ..base import BaseThirdPartyAuthStrategy
from ..exceptions import AuthorizeFailedError, UnsupportedOperationError
from ..models import TokenResponse, User
from ..signer import dingtalk_sign


class DingTalkAuthStrategy(BaseThirdPartyAuthStrategy):
    """钉钉认证策略"""

    platform = "dingtalk"

    AUTHORIZE_URL = "https://oapi.dingtalk.com/connect/qrconnect"
    USER_BY_CODE_URL = "https://oapi.dingtalk.com/sns/getuserinfo_bycode"

    default_scopes = ("snsapi_login",)
    scope_separator = ""

    supports_token_exchange = False

    def get_code_fields(self) -> dict[str, Any]:
        return {
            "appid": self.app_id,
            "response_type": "code",
            "scope": self.format_scopes(),
            "redirect_uri": self.redirect_url,
            **self._parameters,
        }

    def get_token_fields(self, code: str) -> dict[str, Any]:
        raise UnsupportedOperationError("not supported to get access token.")

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        raise UnsupportedOperationError("not supported to get access token.")

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        raise UnsupportedOperationError("Unable to use token get User.")

    async def authenticate_with_code(self, code: str | None) -> User:
        raise UnsupportedOperationError("not supported to get access token, use user_from_code() instead.")

    async def authenticate_with_token(self, token, refresh_token=None, expires_in=None) -> User:
        raise UnsupportedOperationError("Unable to use token get User.")

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        return User(
            id=raw.get("openid"),
            name=raw.get("nick"),
            nickname=raw.get("nick"),
            extra={"unionid": raw["unionid"]} if raw.get("unionid") else {},
        )

    async def user_from_code(self, code: str | None) -> User:
        """
        用临时授权码获取用户信息

        Args:
            code: 扫码回调中的临时授权码

        Raises:
            InvalidArgumentError: code 为空
            AuthorizeFailedError: 钉钉返回 errcode != 0
        """
        self._ensure_code(code)

        timestamp = utc_timestamp_ms()
        params = {
            "accessKey": self.app_id,
            "timestamp": timestamp,
            "signature": dingtalk_sign(timestamp, self.secret),
        }
        result = await self._send(
            "POST",
            self.USER_BY_CODE_URL,
            params=params,
            json={"tmp_auth_code": code},
        )
        data = self._decode_json(result)

        if data.get("errcode", 1) != 0 or not isinstance(data.get("user_info"), Mapping):
            logger.error(f"DingTalk user info error: errcode={data.get('errcode')}, errmsg={data.get('errmsg')}")
            raise AuthorizeFailedError(f"You get error: {orjson_dumps(data)}", data)

        raw = dict(data["user_info"])
        user = self.map_user_to_canonical(raw).with_driver(self).with_raw(raw)

        logger.info(f"Third-party user resolved by code, platform={self.platform}, id={user.id}")
        return user
