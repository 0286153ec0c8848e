"""第三方认证值对象：AccessToken、TokenResponse、User"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import TYPE_CHECKING, Any

from .exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from .base import BaseThirdPartyAuthStrategy


@dataclass(frozen=True, eq=False)
class AccessToken:
    """访问令牌值对象

    相等比较与字符串转换都落到 token 字符串本身：
        AccessToken("abc") == "abc"  # True
    """

    token: str

    def __post_init__(self) -> None:
        if not self.token:
            raise InvalidArgumentError('The key "access_token" could not be empty.')

    def __str__(self) -> str:
        return self.token

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AccessToken):
            return self.token == other.token
        if isinstance(other, str):
            return self.token == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.token)

    def to_dict(self) -> dict[str, str]:
        return {"access_token": self.token}


@dataclass(frozen=True)
class TokenResponse:
    """code 换取 token 后的标准化结果

    Attributes:
        access_token: 访问令牌（必填，非空）
        refresh_token: 刷新令牌
        expires_in: 有效期（秒），缺失或无法解析时为 0
        token_type: 令牌类型
        open_id: 平台用户标识（微信 openid、腾讯云 UserOpenId）
        union_id: 跨应用统一标识
        raw: 平台原始响应
    """

    access_token: str
    refresh_token: str | None = None
    expires_in: int = 0
    token_type: str = "bearer"
    open_id: str | None = None
    union_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.access_token:
            raise InvalidArgumentError('The key "access_token" could not be empty.', self.raw)

    def get_access_token(self) -> AccessToken:
        return AccessToken(self.access_token)

    def to_dict(self) -> dict[str, Any]:
        """原始字段 + 标准字段（access_token / refresh_token / expires_in）"""
        return {
            **self.raw,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
        }


# 参与序列化的 User 字段（driver 为运行期引用，不序列化）
_USER_SERIALIZED_FIELDS = (
    "id",
    "username",
    "nickname",
    "name",
    "email",
    "avatar",
    "token",
    "refresh_token",
    "expires_in",
    "raw",
    "extra",
)


@dataclass(frozen=True)
class User:
    """第三方用户信息统一结构

    由各平台的 map_user_to_canonical 构建，随后依次附加
    driver / raw / token、refresh_token、expires_in、token_response，返回后不再变化。
    """

    id: str | None = None
    username: str | None = None
    nickname: str | None = None
    name: str | None = None
    email: str | None = None
    avatar: str | None = None
    token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None
    token_response: TokenResponse | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    driver: "BaseThirdPartyAuthStrategy | None" = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.id is not None and not isinstance(self.id, str):
            object.__setattr__(self, "id", str(self.id))
        if self.username is None and self.id is not None:
            object.__setattr__(self, "username", self.id)

    @property
    def access_token(self) -> AccessToken | None:
        return AccessToken(self.token) if self.token else None

    @property
    def platform(self) -> str | None:
        return self.driver.get_platform_name() if self.driver else None

    def with_token(self, token: str) -> "User":
        return replace(self, token=token)

    def with_refresh_token(self, refresh_token: str | None) -> "User":
        return replace(self, refresh_token=refresh_token)

    def with_expires_in(self, expires_in: int | str | None) -> "User":
        return replace(self, expires_in=_to_int_or_none(expires_in))

    def with_token_response(self, token_response: TokenResponse) -> "User":
        return replace(self, token_response=token_response)

    def with_driver(self, driver: "BaseThirdPartyAuthStrategy") -> "User":
        return replace(self, driver=driver)

    def with_raw(self, raw: Mapping[str, Any]) -> "User":
        return replace(self, raw=dict(raw))

    def to_dict(self) -> dict[str, Any]:
        data = {name: getattr(self, name) for name in _USER_SERIALIZED_FIELDS}
        data["token_response"] = self.token_response.to_dict() if self.token_response else None
        data["platform"] = self.platform
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        """从 to_dict() 的结果还原（driver 引用无法还原）"""
        known = {f.name for f in fields(cls)} - {"driver", "token_response"}
        kwargs = {k: v for k, v in data.items() if k in known}

        token_data = data.get("token_response")
        if token_data and token_data.get("access_token"):
            kwargs["token_response"] = TokenResponse(
                access_token=token_data["access_token"],
                refresh_token=token_data.get("refresh_token"),
                expires_in=_to_int_or_none(token_data.get("expires_in")) or 0,
                raw=dict(token_data),
            )
        return cls(**kwargs)


def _to_int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
