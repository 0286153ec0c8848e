"""支付宝登录策略

网关接口统一为 POST https://openapi.alipay.com/gateway.do，
method 区分业务（alipay.system.oauth.token / alipay.user.info.share），
每次请求按 RSA2 签名。

@see https://opendocs.alipay.com/open/284/web
"""

from collections.abc import Mapping
from typing import Any

from pkg.logger import logger
from pkg.toolkit.json import orjson_dumps
from pkg.toolkit.timer import cst_now_string

from ..base import BaseThirdPartyAuthStrategy
from ..exceptions import AuthorizeFailedError
from ..models import TokenResponse, User
from ..signer import alipay_sign


class AlipayAuthStrategy(BaseThirdPartyAuthStrategy):
    """支付宝 OAuth2.0 认证策略

    secret 默认作为应用 RSA 私钥（裸 base64 或 PEM），也可以单独配置 private_key。
    """

    platform = "alipay"

    AUTHORIZE_URL = "https://openauth.alipay.com/oauth2/publicAppAuthorize.htm"
    GATEWAY_URL = "https://openapi.alipay.com/gateway.do"
    TOKEN_URL = GATEWAY_URL

    TOKEN_METHOD = "alipay.system.oauth.token"
    USER_INFO_METHOD = "alipay.user.info.share"
    SUCCESS_CODE = "10000"

    FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded;charset=utf-8"}

    default_scopes = ("auth_user",)
    scope_separator = ","

    api_version = "1.0"
    sign_type = "RSA2"
    charset = "UTF-8"
    format = "json"

    @property
    def private_key(self) -> str:
        return self.config.private_key or self.secret

    def get_code_fields(self) -> dict[str, Any]:
        """
        Raises:
            ConfigError: 未设置回调地址（必须与支付宝开放平台配置的一致）
        """
        redirect_url = self._ensure_redirect_url(
            self.redirect_url,
            "Please set same redirect URL like your Alipay Official Admin",
        )
        return {
            "app_id": self.app_id,
            "scope": self.format_scopes(),
            "redirect_uri": redirect_url,
            **self._parameters,
        }

    def get_public_fields(self, method: str) -> dict[str, Any]:
        """网关公共请求参数"""
        return {
            "app_id": self.app_id,
            "format": self.format,
            "charset": self.charset,
            "sign_type": self.sign_type,
            "method": method,
            "timestamp": cst_now_string(),
            "version": self.api_version,
        }

    def sign_params(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """返回附带 sign 的请求参数"""
        signed = dict(params)
        signed["sign"] = alipay_sign(signed, self.private_key)
        return signed

    def get_token_fields(self, code: str) -> dict[str, Any]:
        return self.sign_params(
            {
                **self.get_public_fields(self.TOKEN_METHOD),
                "code": code,
                "grant_type": "authorization_code",
            }
        )

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        """
        Raises:
            ConfigError: 私钥缺失或无法解析
            AuthorizeFailedError: 网关返回 error_response
        """
        self._ensure_code(code)
        result = await self._send(
            "POST",
            self.GATEWAY_URL,
            data=self.get_token_fields(code),
            headers=self.FORM_HEADERS,
        )
        data = self._decode_json(result)
        self._check_error_response(data)

        key = self._response_key(self.TOKEN_METHOD)
        return self.normalizer.normalize(data.get(key) or {})

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        params = self.sign_params({**self.get_public_fields(self.USER_INFO_METHOD), "auth_token": token})
        result = await self._send("POST", self.GATEWAY_URL, data=params, headers=self.FORM_HEADERS)
        data = self._decode_json(result)
        self._check_error_response(data)

        user = data.get(self._response_key(self.USER_INFO_METHOD))
        if not user:
            logger.error(f"Alipay user info missing: {orjson_dumps(data)}")
            raise AuthorizeFailedError(f"Authorize Failed: {orjson_dumps(data)}", data)

        if str(user.get("code", self.SUCCESS_CODE)) != self.SUCCESS_CODE:
            msg = user.get("sub_msg") or user.get("msg")
            logger.error(f"Alipay user info error: code={user.get('code')}, msg={msg}")
            raise AuthorizeFailedError(f"Authorize Failed: {orjson_dumps(user)}", data)

        return user

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        return User(
            id=raw.get("user_id"),
            name=raw.get("nick_name"),
            nickname=raw.get("nick_name"),
            avatar=raw.get("avatar"),
            email=raw.get("email"),
        )

    @staticmethod
    def _response_key(method: str) -> str:
        """alipay.user.info.share -> alipay_user_info_share_response"""
        return f"{method.replace('.', '_')}_response"

    @staticmethod
    def _check_error_response(data: Mapping[str, Any]) -> None:
        if data.get("error_response"):
            logger.error(f"Alipay gateway error: {orjson_dumps(data['error_response'])}")
            raise AuthorizeFailedError(f"Authorize Failed: {orjson_dumps(data)}", dict(data))
