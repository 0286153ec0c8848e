"""
第三方平台调用使用的异步 HTTP 客户端

网络错误与非 2xx 响应都不抛异常，收敛到 RequestResult.error，
由调用方（第三方登录策略）决定转换成哪种业务异常。
"""

from dataclasses import dataclass, field
from typing import Any

import httpx

from pkg.logger import logger
from pkg.toolkit.json import orjson_loads


def _without_query(url: str) -> str:
    # 查询串里常带 access_token、签名等
    return url.split("?", 1)[0]


@dataclass
class RequestResult:
    """一次请求的结果"""

    status_code: int | None = None
    response: httpx.Response | None = None
    error: str | None = None
    _json: Any = field(init=False, default=None, repr=False)

    @property
    def success(self) -> bool:
        if self.error is not None or self.status_code is None:
            return False
        return 200 <= self.status_code < 300

    @property
    def content(self) -> bytes:
        return self.response.content if self.response is not None else b""

    @property
    def text(self) -> str:
        return self.response.text if self.response is not None else ""

    def json(self) -> Any:
        """解析响应体，结果会被缓存；没有响应时返回空字典"""
        if self._json is None:
            if not self.response:
                return {}
            try:
                self._json = orjson_loads(self.response.content)
            except ValueError as e:
                raise RuntimeError(f"Failed to parse JSON: {e}") from e
        return self._json


class AsyncHttpClient:
    """httpx.AsyncClient 的薄封装，复用连接"""

    def __init__(
        self,
        base_url: str = "",
        timeout: int | float = 60,
        headers: dict[str, str] | None = None,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.default_headers = {"Accept": "application/json"} if headers is None else headers
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=self.default_headers,
            verify=verify,
            transport=transport,
        )

    async def __aenter__(self) -> "AsyncHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self.client.aclose()

    @staticmethod
    def _get_error_message(response: httpx.Response) -> str:
        try:
            return response.text
        except Exception as e:
            return f"Failed to get response.text: {e}, status_code={response.status_code}"

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | float | None = None,
    ) -> RequestResult:
        method = method.upper()
        url = url.strip()
        logger.info(f"Req: {method} {_without_query(url)}")

        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                data=data,
                json=json,
                headers=headers,
                timeout=timeout or self.timeout,
            )
        except httpx.RequestError as exc:
            logger.error(f"RequestError to {_without_query(url)}: {exc!r}")
            return RequestResult(status_code=0, error=f"RequestError: {exc!r}")

        error = self._get_error_message(response) if response.is_error else None
        return RequestResult(status_code=response.status_code, response=response, error=error)

    async def get(self, url: str, **kwargs) -> RequestResult:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> RequestResult:
        return await self.request("POST", url, **kwargs)
