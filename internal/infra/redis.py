from typing import Any

from redis.asyncio import ConnectionPool, Redis

from pkg.logger import logger
from pkg.toolkit.json import orjson_dumps, orjson_loads

# 1. 定义全局变量，初始为 None
_redis_pool: ConnectionPool | None = None
_redis_client: Redis | None = None

SESSION_KEY_PREFIX = "third:session"


def init_redis(redis_url: str, max_connections: int = 20) -> None:
    """
    初始化 Redis 连接池。
    应在 FastAPI lifespan 中调用。
    """
    global _redis_pool, _redis_client

    logger.info("Initializing Redis connection...")

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=max_connections,
        )

    if _redis_client is None:
        _redis_client = Redis(connection_pool=_redis_pool)

    logger.success("Redis initialized successfully.")


async def close_redis() -> None:
    """关闭 Redis 连接"""
    global _redis_client, _redis_pool

    if _redis_client:
        await _redis_client.aclose()
        logger.warning("Redis connection closed.")
    if _redis_pool:
        await _redis_pool.disconnect()

    _redis_client = None
    _redis_pool = None


def reset_redis() -> None:
    global _redis_client, _redis_pool

    _redis_client = None
    _redis_pool = None


def get_redis() -> Redis:
    if _redis_client is None:
        raise RuntimeError("Redis is not initialized. Call init_redis() first.")
    return _redis_client


class RedisUserSessionStore:
    """
    基于 Redis 的会话存储，实现 UserSessionStore 协议。

    读取即删除（flash），与一次性登录回调的使用方式一致；
    写入时设置过期时间，未被读取的会话自动失效。
    """

    def __init__(self, redis: Redis, session_id: str, ttl: int = 600):
        self._redis = redis
        self._session_id = session_id
        self._ttl = ttl

    def make_key(self, key: str) -> str:
        return f"{SESSION_KEY_PREFIX}:{self._session_id}:{key}"

    async def get(self, key: str) -> dict[str, Any] | None:
        value = await self._redis.getdel(self.make_key(key))
        if value is None:
            return None
        return orjson_loads(value)

    async def set(self, key: str, value: dict[str, Any]) -> None:
        await self._redis.set(self.make_key(key), orjson_dumps(value), ex=self._ttl)
