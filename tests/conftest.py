"""
Pytest 配置文件 (conftest.py)

提供测试运行所需的共享 fixtures、hooks 和配置。

主要功能：
1. 自动为异步测试添加 asyncio marker
2. 基于 httpx.MockTransport 的第三方接口 Mock
3. RSA 私钥（支付宝签名）
4. Redis Mock 与内存会话
"""

import asyncio
import base64
import sys
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from redis.asyncio import Redis

# ==========================================
# 1. 路径配置
# ==========================================

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pkg.toolkit.http_cli import AsyncHttpClient  # noqa: E402

# ==========================================
# 2. pytest 配置 hooks
# ==========================================


def pytest_configure(config: pytest.Config):
    """注册自定义 markers"""
    config.addinivalue_line("markers", "unit: 单元测试，不依赖外部服务")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]):
    """为所有 async 测试函数自动添加 asyncio marker"""
    for item in items:
        if isinstance(item, pytest.Function) and asyncio.iscoroutinefunction(item.function):
            item.add_marker(pytest.mark.asyncio)


# ==========================================
# 3. 第三方接口 Mock
# ==========================================


@dataclass
class MockRoute:
    method: str
    url: str
    status_code: int = 200
    json: Any = None
    text: str | None = None
    match_headers: dict[str, str] = field(default_factory=dict)

    def matches(self, request: httpx.Request) -> bool:
        if request.method != self.method:
            return False
        if not str(request.url).startswith(self.url):
            return False
        return all(request.headers.get(k) == v for k, v in self.match_headers.items())

    def build_response(self, request: httpx.Request) -> httpx.Response:
        if callable(self.json):
            return httpx.Response(self.status_code, json=self.json(request))
        if self.json is not None:
            return httpx.Response(self.status_code, json=self.json)
        return httpx.Response(self.status_code, text=self.text or "")


class MockRoutes:
    """
    按 方法 + URL 前缀（+ 请求头）匹配的 Mock 路由表，记录所有请求。

    未匹配的请求返回 404，便于在断言中发现遗漏的 Mock。
    """

    def __init__(self):
        self.routes: list[MockRoute] = []
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        text: str | None = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> "MockRoutes":
        self.routes.append(
            MockRoute(
                method=method.upper(),
                url=url,
                status_code=status_code,
                json=json,
                text=text,
                match_headers=headers or {},
            )
        )
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for route in self.routes:
            if route.matches(request):
                return route.build_response(request)
        return httpx.Response(404, text=f"not mocked: {request.method} {request.url}")

    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def http_routes() -> MockRoutes:
    return MockRoutes()


@pytest_asyncio.fixture
async def http_client(http_routes: MockRoutes) -> AsyncGenerator[AsyncHttpClient, None]:
    """注入到策略中的 HTTP 客户端，所有请求都走 http_routes"""
    client = AsyncHttpClient(
        timeout=5,
        headers={"Accept": "application/json"},
        transport=httpx.MockTransport(http_routes),
    )
    yield client
    await client.close()


@pytest.fixture
def raise_transport() -> Callable[[httpx.Request], httpx.Response]:
    """模拟网络错误的 handler"""

    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return _handler


# ==========================================
# 4. RSA 私钥 Fixtures
# ==========================================


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def rsa_private_key_raw(rsa_private_key: rsa.RSAPrivateKey) -> str:
    """支付宝开放平台导出的格式：PKCS#1 DER 的裸 base64，不带头尾"""
    der = rsa_private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(der).decode("ascii")


# ==========================================
# 5. Redis / 会话 Fixtures
# ==========================================


@pytest_asyncio.fixture(scope="function")
async def mock_redis() -> AsyncGenerator[MagicMock, None]:
    """
    提供 Mock Redis 客户端。

    适用于不需要真实 Redis 的单元测试。
    """
    mock = MagicMock(spec=Redis)
    mock.get = AsyncMock(return_value=None)
    mock.getdel = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.ping = AsyncMock(return_value=True)
    mock.aclose = AsyncMock()

    yield mock


class InMemorySessionStore:
    """实现 UserSessionStore 协议的内存会话，读取即删除"""

    def __init__(self):
        self.data: dict[str, dict[str, Any]] = {}

    async def get(self, key: str) -> dict[str, Any] | None:
        return self.data.pop(key, None)

    async def set(self, key: str, value: dict[str, Any]) -> None:
        self.data[key] = value


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


# ==========================================
# 6. Clean Up
# ==========================================


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """每个测试后清理配置缓存与 Redis 全局状态"""
    yield

    from internal.config import reset_settings
    from internal.infra.redis import reset_redis

    reset_settings()
    reset_redis()
