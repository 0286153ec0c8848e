"""当前第三方用户的会话存取

核心模块不关心会话如何存储，由调用方注入实现了 UserSessionStore 协议的对象
（应用层为基于 Redis 的实现）。
"""

from typing import Any, Protocol, runtime_checkable

from .models import User

SESSION_USER_KEY = "third_user"


@runtime_checkable
class UserSessionStore(Protocol):
    """会话存储协议：按键读写一个 JSON 可序列化的字典"""

    async def get(self, key: str) -> dict[str, Any] | None: ...

    async def set(self, key: str, value: dict[str, Any]) -> None: ...


async def set_current_user(store: UserSessionStore, user: User) -> None:
    await store.set(SESSION_USER_KEY, user.to_dict())


async def get_current_user(store: UserSessionStore) -> User | None:
    """读取当前第三方用户，未登录时返回 None"""
    data = await store.get(SESSION_USER_KEY)
    if not data:
        return None
    return User.from_dict(data)
