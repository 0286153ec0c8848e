"""第三方认证模块 - 可复用的策略模式实现

使用策略模式 + 工厂模式设计，支持以下第三方登录方式：
- 支付宝、百度、钉钉、码云、开源中国、QQ、微信、腾讯云

架构设计:
    - base: 抽象基类（授权地址、code 换 token、获取用户的通用流程）
    - strategies: 具体平台策略实现（配置通过参数注入）
    - signer: 支付宝 RSA2 / 腾讯云 TC3 / 钉钉 HMAC 签名
    - normalizer: token 响应标准化
    - models: AccessToken / TokenResponse / User 值对象
    - factory: 策略工厂和平台枚举
    - session: 当前第三方用户的会话存取协议

使用示例:
    ```python
    from pkg.third_party_auth import ProviderConfig, ThirdPartyAuthFactory

    config = ProviderConfig(
        app_id="your_app_id",
        secret="your_app_secret",
        redirect_url="https://example.com/callback",
    )

    async with ThirdPartyAuthFactory.get_strategy("gitee", config) as strategy:
        url = strategy.with_state(state).build_authorization_url()
        ...
        user = await strategy.authenticate_with_code(code)
    ```
"""

from .base import BaseThirdPartyAuthStrategy, QueryEncoding, extract_code
from .config import ProviderConfig
from .exceptions import (
    AuthorizeFailedError,
    ConfigError,
    InvalidArgumentError,
    ThirdPartyAuthError,
    TransportError,
    UnsupportedOperationError,
)
from .factory import ThirdPartyAuthFactory, ThirdPartyPlatform
from .models import AccessToken, TokenResponse, User
from .normalizer import TokenResponseNormalizer
from .session import SESSION_USER_KEY, UserSessionStore, get_current_user, set_current_user
from .strategies import (
    AlipayAuthStrategy,
    BaiduAuthStrategy,
    DingTalkAuthStrategy,
    GiteeAuthStrategy,
    OschinaAuthStrategy,
    QCloudAuthStrategy,
    QQAuthStrategy,
    WeChatAuthStrategy,
)

__all__ = [
    # 基础接口
    "BaseThirdPartyAuthStrategy",
    "QueryEncoding",
    "extract_code",
    "ProviderConfig",
    "TokenResponseNormalizer",

    # 值对象
    "AccessToken",
    "TokenResponse",
    "User",

    # 异常
    "ThirdPartyAuthError",
    "ConfigError",
    "InvalidArgumentError",
    "UnsupportedOperationError",
    "AuthorizeFailedError",
    "TransportError",

    # 工厂和枚举
    "ThirdPartyPlatform",
    "ThirdPartyAuthFactory",

    # 会话
    "SESSION_USER_KEY",
    "UserSessionStore",
    "get_current_user",
    "set_current_user",

    # 具体策略
    "AlipayAuthStrategy",
    "BaiduAuthStrategy",
    "DingTalkAuthStrategy",
    "GiteeAuthStrategy",
    "OschinaAuthStrategy",
    "QCloudAuthStrategy",
    "QQAuthStrategy",
    "WeChatAuthStrategy",
]
