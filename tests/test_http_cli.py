from unittest.mock import MagicMock

import httpx
import pytest

from pkg.toolkit.http_cli import AsyncHttpClient, RequestResult


def make_response(content: bytes) -> MagicMock:
    response = MagicMock()
    response.content = content
    return response


class TestRequestResult:
    @pytest.mark.parametrize(
        ("status_code", "error", "expected"),
        [
            (200, None, True),
            (204, None, True),
            (299, None, True),
            (200, "upstream error", False),
            (302, None, False),
            (400, "Bad Request", False),
            (502, "Bad Gateway", False),
            (None, None, False),
        ],
    )
    def test_success(self, status_code, error, expected):
        assert RequestResult(status_code=status_code, error=error).success is expected

    def test_json_is_cached(self):
        """解析结果缓存，之后响应内容变化也不影响"""
        response = make_response(b'{"openid": "o-1"}')
        result = RequestResult(status_code=200, response=response)

        assert result.json() == {"openid": "o-1"}
        response.content = b"changed"
        assert result.json() == {"openid": "o-1"}

    def test_empty_result(self):
        result = RequestResult(status_code=0, error="RequestError")

        assert result.json() == {}
        assert result.content == b""
        assert result.text == ""

    def test_invalid_json(self):
        result = RequestResult(status_code=200, response=make_response(b"callback( {} );"))

        with pytest.raises(RuntimeError, match="Failed to parse JSON"):
            result.json()


class TestAsyncHttpClient:
    async def test_custom_options(self):
        async with AsyncHttpClient(
            base_url="https://openapi.example.com",
            timeout=3,
            headers={"User-Agent": "third-party-auth"},
            verify=False,
        ) as client:
            assert client.timeout == 3
            assert client.default_headers == {"User-Agent": "third-party-auth"}
            assert client.client.base_url == "https://openapi.example.com"

        assert client.client.is_closed is True

    def test_unreadable_error_body(self):
        """响应体无法解码时返回带状态码的说明"""
        response = MagicMock()
        response.status_code = 503
        type(response).text = property(lambda self: (_ for _ in ()).throw(ValueError("undecodable body")))

        message = AsyncHttpClient._get_error_message(response)

        assert message.startswith("Failed to get response.text")
        assert message.endswith("status_code=503")

    @pytest.mark.parametrize("method", ["get", "post"])
    async def test_http_methods(self, http_client, http_routes, method):
        """测试 HTTP 方法与查询参数"""
        http_routes.add(method, "https://api.example.com/test", json={"ok": True})

        result = await getattr(http_client, method)("https://api.example.com/test", params={"key": "value"})

        assert result.success is True
        assert result.json() == {"ok": True}
        request = http_routes.last()
        assert request.method == method.upper()
        assert request.url.params["key"] == "value"

    async def test_post_form_data(self, http_client, http_routes):
        """测试表单请求体"""
        http_routes.add("POST", "https://api.example.com/form", json={})

        await http_client.post("https://api.example.com/form", data={"a": "1", "b": "x y"})

        request = http_routes.last()
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.content == b"a=1&b=x+y"

    async def test_request_with_error_response(self, http_client, http_routes):
        """测试请求返回错误响应"""
        http_routes.add("GET", "https://api.example.com/not-found", status_code=404, text="Not Found")

        result = await http_client.get("https://api.example.com/not-found")

        assert result.status_code == 404
        assert result.success is False
        assert result.error == "Not Found"

    async def test_request_with_request_error(self, raise_transport):
        """测试请求抛出 RequestError（网络错误）"""
        async with AsyncHttpClient(transport=httpx.MockTransport(raise_transport)) as client:
            result = await client.get("https://api.example.com/timeout")

        assert result.status_code == 0
        assert result.success is False
        assert "RequestError" in result.error

    async def test_default_accept_header(self, http_routes):
        """测试未指定请求头时默认接受 JSON"""
        http_routes.add("GET", "https://api.example.com/me", json={})

        async with AsyncHttpClient(transport=httpx.MockTransport(http_routes)) as client:
            result = await client.request("get", "  https://api.example.com/me  ")

        assert result.success is True
        assert http_routes.last().headers["Accept"] == "application/json"
