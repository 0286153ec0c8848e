"""配置加载入口"""

from functools import lru_cache
from typing import Any

from internal.config.settings import Settings
from pkg.logger import logger
from pkg.toolkit.config import ConfigLoader


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_third_party_apps() -> dict[str, dict[str, Any]]:
    """
    读取第三方应用配置文件中的 apps 节点

    文件格式（YAML 示例）:
        apps:
          gitee:
            appid: xxx
            secret: xxx
          wechat_mp:
            type: wechat
            appid: xxx
            secret: xxx
    """
    path = get_settings().THIRD_PARTY_CONFIG_FILE
    data = ConfigLoader.load(path)

    apps = data.get("apps") or {}
    if not isinstance(apps, dict):
        raise ValueError(f"'apps' must be a mapping in {path}")

    logger.info(f"Loaded {len(apps)} third-party apps from {path}")
    return apps


def reset_settings() -> None:
    """清空缓存（测试用）"""
    get_settings.cache_clear()
    get_third_party_apps.cache_clear()


__all__ = ["Settings", "get_settings", "get_third_party_apps", "reset_settings"]
