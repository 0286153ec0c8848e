"""腾讯云登录策略

接口调用流程：
1. GetUserAccessToken：用授权码换取 UserAccessToken 与 UserOpenId
2. GetThirdPartyFederationToken：用 UserAccessToken 换取临时密钥（SecretId 签名）
3. GetUserBaseInfo：用临时密钥签名并带上 X-TC-Token 获取用户昵称

所有请求都是 TC3-HMAC-SHA256 签名的 GET 请求。

@see https://cloud.tencent.com/document/product/1312
"""

from collections.abc import Mapping
from typing import Any

from pkg.logger import logger
from pkg.toolkit.http_cli import AsyncHttpClient
from pkg.toolkit.json import orjson_dumps
from pkg.toolkit.timer import utc_timestamp

from ..base import BaseThirdPartyAuthStrategy
from ..config import ProviderConfig
from ..exceptions import AuthorizeFailedError, ConfigError
from ..models import TokenResponse, User
from ..signer import SignedRequestContext


class QCloudAuthStrategy(BaseThirdPartyAuthStrategy):
    """腾讯云 OAuth 认证策略

    ProviderConfig.secret 为 SecretId，ProviderConfig.secret_key 为 SecretKey。
    """

    platform = "qcloud"

    AUTHORIZE_URL = "https://cloud.tencent.com/open/authorize"

    OPEN_HOST = "open.tencentcloudapi.com"
    OPEN_VERSION = "2018-12-25"
    STS_HOST = "sts.tencentcloudapi.com"
    STS_VERSION = "2018-08-13"
    STS_REGION = "ap-guangzhou"
    FEDERATION_DURATION = 7200
    CREDENTIAL_KEYS = ("Token", "TmpSecretId", "TmpSecretKey")

    default_scopes = ("login",)

    access_token_key = "UserAccessToken"
    refresh_token_key = "UserRefreshToken"
    expires_in_key = "ExpiresAt"
    open_id_key = "UserOpenId"
    union_id_key = "UserUnionId"

    def __init__(self, config: ProviderConfig, *, http_client: AsyncHttpClient | None = None):
        if not config.secret_key:
            raise ConfigError("Tencent Cloud secret_key config cannot be empty.")
        super().__init__(config, http_client=http_client)

    @property
    def secret_key(self) -> str:
        return self.config.secret_key or ""

    def get_code_fields(self) -> dict[str, Any]:
        return {
            "app_id": self.app_id,
            "redirect_url": self.redirect_url,
            "scope": self.format_scopes(),
            "response_type": "code",
            **self._parameters,
        }

    def get_token_fields(self, code: str) -> dict[str, Any]:
        return {"UserAuthCode": code}

    async def perform_request(
        self,
        host: str,
        action: str,
        version: str,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        secret_id: str | None = None,
        secret_key: str | None = None,
    ) -> dict[str, Any]:
        """
        发起一次签名请求并返回 Response 节点

        Args:
            host: 接口域名，第一段为服务名
            action: 接口名
            version: 接口版本
            query: 查询参数
            headers: 额外请求头（X-TC-Region / X-TC-Token 等）
            secret_id: 签名用 SecretId，默认为应用配置
            secret_key: 签名用 SecretKey，默认为应用配置

        Raises:
            AuthorizeFailedError: 返回 Response.Error
        """
        context = SignedRequestContext.build(
            method="GET",
            host=host,
            action=action,
            version=version,
            secret_id=secret_id or self.secret,
            secret_key=secret_key or self.secret_key,
            timestamp=utc_timestamp(),
            query=query,
            extra_headers=headers,
        )
        result = await self._send("GET", context.url, headers=context.headers())
        data = self._decode_json(result)

        response = data.get("Response")
        if not isinstance(response, Mapping):
            logger.error(f"Tencent Cloud {action} returned no Response object")
            raise AuthorizeFailedError(f"Invalid {self.platform} response", data)

        error = response.get("Error")
        if error:
            message = f"{error.get('Code')}: {error.get('Message')}"
            logger.error(f"Tencent Cloud {action} error: {message}")
            raise AuthorizeFailedError(message, data)

        return dict(response)

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        """
        Returns:
            TokenResponse，open_id / union_id 为 UserOpenId / UserUnionId

        Raises:
            AuthorizeFailedError: 未返回 UserOpenId 或 UserAccessToken
        """
        self._ensure_code(code)
        response = await self.perform_request(
            self.OPEN_HOST,
            "GetUserAccessToken",
            self.OPEN_VERSION,
            query=self.get_token_fields(code),
        )

        if not response.get("UserOpenId"):
            logger.error("Tencent Cloud GetUserAccessToken returned no UserOpenId")
            raise AuthorizeFailedError(f"Authorize Failed: {orjson_dumps(response)}", response)

        return self.normalizer.normalize(response)

    async def get_federation_token(self, access_token: str) -> dict[str, Any]:
        """用 UserAccessToken 换取临时密钥 Credentials{Token, TmpSecretId, TmpSecretKey}"""
        response = await self.perform_request(
            self.STS_HOST,
            "GetThirdPartyFederationToken",
            self.STS_VERSION,
            query={
                "UserAccessToken": access_token,
                "Duration": self.FEDERATION_DURATION,
                "ApiAppId": 0,
            },
            headers={"X-TC-Region": self.STS_REGION},
        )

        credentials = response.get("Credentials")
        if not isinstance(credentials, Mapping) or not all(credentials.get(k) for k in self.CREDENTIAL_KEYS):
            logger.error("Tencent Cloud federation token missing Credentials")
            raise AuthorizeFailedError("Get Federation Token failed.", response)
        return dict(credentials)

    async def fetch_user_by_token(self, token: str, token_response: TokenResponse | None = None) -> dict[str, Any]:
        credentials = await self.get_federation_token(token)
        return await self.perform_request(
            self.OPEN_HOST,
            "GetUserBaseInfo",
            self.OPEN_VERSION,
            headers={"X-TC-Token": credentials["Token"]},
            secret_id=credentials["TmpSecretId"],
            secret_key=credentials["TmpSecretKey"],
        )

    def map_user_to_canonical(self, raw: Mapping[str, Any], token_response: TokenResponse | None = None) -> User:
        open_id = token_response.open_id if token_response else raw.get("UserOpenId")
        extra = {"unionid": token_response.union_id} if token_response and token_response.union_id else {}
        return User(
            id=open_id,
            name=raw.get("Nickname"),
            nickname=raw.get("Nickname"),
            extra=extra,
        )
