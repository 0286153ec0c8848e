"""第三方认证配置数据类 - 类型安全的配置容器"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConfigError


@dataclass
class ProviderConfig:
    """第三方开放平台应用配置

    Attributes:
        app_id: 应用 AppID / client_id
        secret: 应用密钥（腾讯云为 SecretId，支付宝默认作为 RSA 私钥）
        secret_key: 腾讯云 SecretKey
        private_key: 支付宝应用私钥，未配置时使用 secret
        redirect_url: 授权回调地址
        scopes: 授权范围，None 表示使用平台默认值
        extra_parameters: 附加到授权地址上的自定义参数
        type: 平台类型，用于同一平台配置多个应用
        timeout: HTTP 请求超时（秒）
    """

    app_id: str
    secret: str
    secret_key: str | None = None
    private_key: str | None = None
    redirect_url: str | None = None
    scopes: list[str] | None = None
    extra_parameters: dict[str, str] = field(default_factory=dict)
    type: str | None = None
    timeout: float = 30

    def __post_init__(self) -> None:
        """验证配置有效性"""
        if not self.app_id or not self.secret:
            raise ConfigError("Appid and secret config cannot be empty.")
        if isinstance(self.scopes, str):
            self.scopes = [self.scopes]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProviderConfig":
        """
        从配置字典构建，兼容常见的配置键名

        支持的键：appid/app_id、secret、secret_key、private_key、
        redirect_url/redirect、scopes（列表或字符串）/scope（空格分隔）、
        parameters、type、timeout
        """
        scopes = data.get("scopes")
        if not scopes and data.get("scope"):
            scopes = str(data["scope"]).split()

        return cls(
            app_id=str(data.get("appid") or data.get("app_id") or ""),
            secret=str(data.get("secret") or ""),
            secret_key=data.get("secret_key") or None,
            private_key=data.get("private_key") or None,
            redirect_url=data.get("redirect_url") or data.get("redirect") or None,
            scopes=scopes or None,
            extra_parameters={str(k): str(v) for k, v in (data.get("parameters") or {}).items()},
            type=data.get("type") or None,
            timeout=float(data.get("timeout") or 30),
        )
