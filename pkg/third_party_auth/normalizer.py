"""token 响应标准化"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pkg.logger import logger
from pkg.toolkit.json import orjson_dumps, orjson_loads

from .exceptions import AuthorizeFailedError
from .models import TokenResponse


@dataclass(frozen=True)
class TokenResponseNormalizer:
    """把各平台的 token 响应转换为 TokenResponse

    不同平台的字段名不同（如腾讯云为 UserAccessToken / UserRefreshToken / ExpiresAt），
    字段名由各策略注入，这里不做硬编码。
    """

    access_token_key: str = "access_token"
    refresh_token_key: str = "refresh_token"
    expires_in_key: str = "expires_in"
    open_id_key: str | None = None
    union_id_key: str | None = None

    def normalize(self, payload: bytes | str | Mapping[str, Any]) -> TokenResponse:
        """
        标准化 token 响应

        Args:
            payload: 原始响应体（bytes / str 会按 JSON 解码）或已解码的字典

        Returns:
            TokenResponse

        Raises:
            AuthorizeFailedError: 无法解码、不是字典，或缺少 access_token 字段
        """
        data = self.decode(payload)

        access_token = data.get(self.access_token_key)
        if not access_token:
            logger.error(f"Authorize failed, token field '{self.access_token_key}' missing")
            raise AuthorizeFailedError(f"Authorize Failed: {orjson_dumps(data)}", data)

        refresh_token = data.get(self.refresh_token_key)

        return TokenResponse(
            access_token=str(access_token),
            refresh_token=str(refresh_token) if refresh_token else None,
            expires_in=self._parse_expires_in(data.get(self.expires_in_key)),
            token_type=str(data.get("token_type") or "bearer"),
            open_id=self._optional_str(data, self.open_id_key),
            union_id=self._optional_str(data, self.union_id_key),
            raw=dict(data),
        )

    @staticmethod
    def decode(payload: bytes | str | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(payload, (bytes, bytearray, str)):
            try:
                payload = orjson_loads(payload)
            except ValueError as e:
                raise AuthorizeFailedError("Invalid token response", [payload]) from e

        if not isinstance(payload, Mapping):
            raise AuthorizeFailedError("Invalid token response", [payload])

        return dict(payload)

    @staticmethod
    def _parse_expires_in(value: Any) -> int:
        if value is None or isinstance(value, bool):
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def _optional_str(data: Mapping[str, Any], key: str | None) -> str | None:
        if not key:
            return None
        value = data.get(key)
        return str(value) if value else None
