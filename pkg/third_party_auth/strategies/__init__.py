"""第三方认证策略实现模块"""

from .alipay import AlipayAuthStrategy
from .baidu import BaiduAuthStrategy
from .dingtalk import DingTalkAuthStrategy
from .gitee import GiteeAuthStrategy
from .oschina import OschinaAuthStrategy
from .qcloud import QCloudAuthStrategy
from .qq import QQAuthStrategy
from .wechat import WeChatAuthStrategy

__all__ = [
    "AlipayAuthStrategy",
    "BaiduAuthStrategy",
    "DingTalkAuthStrategy",
    "GiteeAuthStrategy",
    "OschinaAuthStrategy",
    "QCloudAuthStrategy",
    "QQAuthStrategy",
    "WeChatAuthStrategy",
]
