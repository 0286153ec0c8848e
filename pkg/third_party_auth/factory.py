"""第三方认证策略工厂 - 可复用的策略注册表"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pkg.logger import logger
from pkg.toolkit.http_cli import AsyncHttpClient

from .base import BaseThirdPartyAuthStrategy
from .config import ProviderConfig
from .exceptions import ConfigError, InvalidArgumentError
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


class ThirdPartyPlatform(str, Enum):
    """第三方平台枚举"""

    ALIPAY = "alipay"
    BAIDU = "baidu"
    DINGTALK = "dingtalk"
    GITEE = "gitee"
    OSCHINA = "oschina"
    QCLOUD = "qcloud"
    QQ = "qq"
    WECHAT = "wechat"


class ThirdPartyAuthFactory:
    """第三方认证策略工厂

    使用工厂模式创建策略实例，支持动态注册新的认证策略。
    每次调用都返回新的实例，一个实例只用于一次授权流程。

    使用示例:
        ```python
        # 按平台创建
        strategy = ThirdPartyAuthFactory.get_strategy(
            ThirdPartyPlatform.GITEE,
            ProviderConfig(app_id="id", secret="secret"),
        )

        # 按应用名创建（配置中的 type 指定平台，同一平台可配置多个应用）
        strategy = ThirdPartyAuthFactory.create_from_apps("wechat_mp", apps)
        ```
    """

    # 策略注册表
    _strategies: dict[ThirdPartyPlatform, type[BaseThirdPartyAuthStrategy]] = {
        ThirdPartyPlatform.ALIPAY: AlipayAuthStrategy,
        ThirdPartyPlatform.BAIDU: BaiduAuthStrategy,
        ThirdPartyPlatform.DINGTALK: DingTalkAuthStrategy,
        ThirdPartyPlatform.GITEE: GiteeAuthStrategy,
        ThirdPartyPlatform.OSCHINA: OschinaAuthStrategy,
        ThirdPartyPlatform.QCLOUD: QCloudAuthStrategy,
        ThirdPartyPlatform.QQ: QQAuthStrategy,
        ThirdPartyPlatform.WECHAT: WeChatAuthStrategy,
    }

    @classmethod
    def register_strategy(
        cls,
        platform: ThirdPartyPlatform,
        strategy_class: type[BaseThirdPartyAuthStrategy],
    ) -> None:
        """
        注册（或替换）认证策略

        Args:
            platform: 平台标识
            strategy_class: 策略类
        """
        cls._strategies[platform] = strategy_class
        logger.info(f"Registered third-party auth strategy for {platform.value}")

    @classmethod
    def resolve_platform(cls, platform: ThirdPartyPlatform | str) -> ThirdPartyPlatform:
        """
        Raises:
            InvalidArgumentError: 不支持的平台
        """
        if isinstance(platform, ThirdPartyPlatform):
            return platform
        try:
            return ThirdPartyPlatform(str(platform).lower())
        except ValueError as e:
            raise InvalidArgumentError(f"Unsupported third-party platform: {platform}") from e

    @classmethod
    def get_strategy(
        cls,
        platform: ThirdPartyPlatform | str,
        config: ProviderConfig,
        *,
        http_client: AsyncHttpClient | None = None,
    ) -> BaseThirdPartyAuthStrategy:
        """
        获取对应平台的认证策略实例

        Args:
            platform: 平台标识（字符串或枚举值）
            config: 平台配置
            http_client: 可选的共享 HTTP 客户端

        Returns:
            BaseThirdPartyAuthStrategy: 策略实例

        Raises:
            InvalidArgumentError: 当平台未注册时
        """
        platform = cls.resolve_platform(platform)

        # 从注册表获取策略类
        strategy_class = cls._strategies.get(platform)
        if not strategy_class:
            raise InvalidArgumentError(
                f"Third-party platform '{platform.value}' not supported. "
                f"Available platforms: {cls.get_available_platforms()}"
            )

        return strategy_class(config, http_client=http_client)

    @classmethod
    def create_from_apps(
        cls,
        name: str,
        apps: Mapping[str, Mapping[str, Any]],
        *,
        http_client: AsyncHttpClient | None = None,
    ) -> BaseThirdPartyAuthStrategy:
        """
        按应用名创建策略

        Args:
            name: 应用名（apps 的键）；配置中有 type 时以 type 作为平台，否则应用名即平台名
            apps: 应用配置集合，形如 {"wechat_mp": {"type": "wechat", "appid": ..., "secret": ...}}
            http_client: 可选的共享 HTTP 客户端

        Raises:
            ConfigError: 应用未配置
            InvalidArgumentError: 平台不支持
        """
        app_config = apps.get(name)
        if not app_config:
            raise ConfigError(f"Third-party app [{name}] not configured.")

        config = ProviderConfig.from_mapping(app_config)
        return cls.get_strategy(config.type or name, config, http_client=http_client)

    @classmethod
    def get_available_platforms(cls) -> list[str]:
        """
        获取所有可用的平台列表

        Returns:
            平台名称列表
        """
        return [platform.value for platform in cls._strategies.keys()]
