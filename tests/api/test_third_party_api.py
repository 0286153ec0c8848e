"""第三方登录 API 测试"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.asyncio import Redis

from internal.app import create_app
from internal.controllers.api import third_party
from internal.controllers.api.third_party import new_session_store, new_third_party_service
from internal.services.third_party import ThirdPartyAuthService
from pkg.third_party_auth import SESSION_USER_KEY
from pkg.toolkit.http_cli import AsyncHttpClient

APPS = {
    "gitee": {"appid": "a", "secret": "s", "redirect": "https://cb"},
    "dingtalk": {"appid": "dingoa", "secret": "ds", "redirect": "https://cb"},
    "wechat_mp": {"type": "wechat", "appid": "wxa", "secret": "wxs", "redirect": "https://cb"},
}
CALLBACK_URL = "https://front.example.com/cb"

GITEE_TOKEN_URL = "https://gitee.com/oauth/token"
GITEE_USER_URL = "https://gitee.com/api/v5/user"
GITEE_USER = {"id": 1, "login": "octo", "name": "Octo", "avatar_url": "https://gitee.com/a.png"}


@pytest.fixture
def app(http_routes, session_store) -> FastAPI:
    http_client = AsyncHttpClient(headers={"Accept": "application/json"}, transport=httpx.MockTransport(http_routes))
    service = ThirdPartyAuthService(APPS, callback_url=CALLBACK_URL, http_client=http_client)

    app = create_app()
    app.dependency_overrides[new_third_party_service] = lambda: service
    app.dependency_overrides[new_session_store] = lambda: session_store
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _mock_gitee(http_routes):
    http_routes.add("POST", GITEE_TOKEN_URL, json={"access_token": "X", "expires_in": 3600})
    http_routes.add("GET", GITEE_USER_URL, json=GITEE_USER)


class TestAuthorize:
    """测试跳转授权页"""

    def test_redirect(self, client):
        response = client.get("/v1/third/gitee/authorize", params={"state": "abc"}, follow_redirects=False)

        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith("https://gitee.com/oauth/authorize?client_id=a&")
        assert location.endswith("&state=abc")

    def test_wechat_app_type(self, client):
        response = client.get("/v1/third/wechat_mp/authorize", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"].startswith("https://open.weixin.qq.com/connect/qrconnect?appid=wxa&")

    def test_unknown_app(self, client):
        response = client.get("/v1/third/weibo/authorize", follow_redirects=False)

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == 40000
        assert "Third-party app [weibo] not configured." in body["message"]
        assert body["data"] is None


class TestCallback:
    """测试授权回调"""

    def test_login_with_code(self, client, http_routes, session_store):
        _mock_gitee(http_routes)

        response = client.get("/v1/third/gitee/callback", params={"code": "c"})

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "1"
        assert data["name"] == "octo"
        assert data["platform"] == "gitee"
        assert data["token"] == "X"
        assert data["expires_in"] == 3600
        assert data["token_response"]["access_token"] == "X"
        assert session_store.data[SESSION_USER_KEY]["id"] == "1"

    def test_auth_code_parameter(self, client, http_routes):
        """测试支付宝风格的 auth_code 参数"""
        _mock_gitee(http_routes)

        response = client.get("/v1/third/gitee/callback", params={"auth_code": "c"})

        assert response.status_code == 200
        assert "code=c" in http_routes.requests[0].content.decode()

    def test_dingtalk_user_from_code(self, client, http_routes):
        http_routes.add(
            "POST",
            "https://oapi.dingtalk.com/sns/getuserinfo_bycode",
            json={"errcode": 0, "user_info": {"nick": "ding", "openid": "doid"}},
        )

        response = client.get("/v1/third/dingtalk/callback", params={"code": "tmp"})

        assert response.status_code == 200
        assert response.json()["id"] == "doid"
        assert response.json()["platform"] == "dingtalk"

    def test_missing_code(self, client, http_routes):
        response = client.get("/v1/third/gitee/callback")

        assert response.status_code == 400
        assert response.json()["code"] == 40000
        assert "Code parameter cannot be empty." in response.json()["message"]
        assert http_routes.requests == []

    def test_authorize_failed(self, client, http_routes):
        http_routes.add("POST", GITEE_TOKEN_URL, json={"error": "invalid_grant"})

        response = client.get("/v1/third/gitee/callback", params={"code": "c"})

        assert response.status_code == 401
        assert response.json()["code"] == 40001

    def test_transport_error(self, client, http_routes):
        http_routes.add("POST", GITEE_TOKEN_URL, status_code=500, text="server error")

        response = client.get("/v1/third/gitee/callback", params={"code": "c"})

        assert response.status_code == 502
        assert response.json()["code"] == 50002

    def test_trace_id_header(self, client, http_routes):
        _mock_gitee(http_routes)

        response = client.get("/v1/third/gitee/callback", params={"code": "c"}, headers={"X-Trace-ID": "t-1"})

        assert response.headers["X-Trace-ID"] == "t-1"
        assert "X-Process-Time" in response.headers


class TestTokenLogin:
    def test_login_with_token(self, client, http_routes, session_store):
        http_routes.add("GET", GITEE_USER_URL, json=GITEE_USER)

        response = client.get("/v1/third/gitee/token", params={"token": "X", "refresh_token": "R", "expires_in": "60"})

        assert response.status_code == 200
        data = response.json()
        assert data["token"] == "X"
        assert data["refresh_token"] == "R"
        assert data["expires_in"] == 60
        assert SESSION_USER_KEY in session_store.data

    def test_dingtalk_token_unsupported(self, client):
        response = client.get("/v1/third/dingtalk/token", params={"token": "X"})
        assert response.status_code == 400


class TestRedirectCallback:
    def test_redirect_with_token(self, client, http_routes):
        http_routes.add("POST", GITEE_TOKEN_URL, json={"access_token": "X", "refresh_token": "R", "expires_in": 60})

        response = client.get("/v1/third/gitee/redirect-callback", params={"code": "c"}, follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == f"{CALLBACK_URL}?token=X&refresh_token=R&expires_in=60&type=bearer"

    def test_callback_url_not_configured(self, app, client, http_routes):
        service = ThirdPartyAuthService(APPS)
        app.dependency_overrides[new_third_party_service] = lambda: service

        response = client.get("/v1/third/gitee/redirect-callback", params={"code": "c"}, follow_redirects=False)

        assert response.status_code == 400
        assert http_routes.requests == []


class TestCurrentUser:
    """测试读取会话中的第三方用户"""

    def test_read_once(self, client, http_routes):
        _mock_gitee(http_routes)
        client.get("/v1/third/gitee/callback", params={"code": "c"})

        first = client.get("/v1/third/user")
        assert first.status_code == 200
        assert first.json()["id"] == "1"
        assert first.json()["token"] == "X"

        second = client.get("/v1/third/user")
        assert second.status_code == 404
        assert second.json()["code"] == 40004


class TestSessionCookie:
    """测试基于 Cookie + Redis 的会话"""

    @pytest.fixture
    def redis_client(self, monkeypatch) -> MagicMock:
        mock = MagicMock(spec=Redis)
        mock.set = AsyncMock(return_value=True)
        mock.getdel = AsyncMock(return_value=None)
        monkeypatch.setattr(third_party, "get_redis", lambda: mock)
        return mock

    def test_cookie_set_and_reused(self, app, http_routes, redis_client):
        del app.dependency_overrides[new_session_store]
        _mock_gitee(http_routes)
        client = TestClient(app)

        response = client.get("/v1/third/gitee/callback", params={"code": "c"})

        assert response.status_code == 200
        session_id = response.cookies["third_session"]
        assert session_id

        redis_client.set.assert_awaited_once()
        key = redis_client.set.await_args.args[0]
        assert key == f"third:session:{session_id}:{SESSION_USER_KEY}"
        assert redis_client.set.await_args.kwargs["ex"] == 600

        # 已有会话 Cookie 时不再下发
        response = client.get("/v1/third/user")
        assert response.status_code == 404
        assert "third_session" not in response.cookies
        redis_client.getdel.assert_awaited_once_with(key)
