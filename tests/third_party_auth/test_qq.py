"""QQ 登录测试"""

import pytest

from pkg.third_party_auth import AuthorizeFailedError, ProviderConfig, QQAuthStrategy
from pkg.third_party_auth.strategies.qq import unwrap_jsonp

TOKEN_URL = "https://graph.qq.com/oauth2.0/token"
ME_URL = "https://graph.qq.com/oauth2.0/me"
USER_INFO_URL = "https://graph.qq.com/user/get_user_info"


@pytest.fixture
def qq(http_client) -> QQAuthStrategy:
    config = ProviderConfig(app_id="101", secret="qs", redirect_url="https://cb")
    return QQAuthStrategy(config, http_client=http_client)


def _mock_user(http_routes, me: str = 'callback( {"client_id":"101","openid":"oid"} );\n'):
    http_routes.add("GET", ME_URL, text=me)
    http_routes.add(
        "GET",
        USER_INFO_URL,
        json={"ret": 0, "msg": "", "nickname": "qqnick", "figureurl_qq_2": "https://qq/f.png"},
    )


class TestUnwrapJsonp:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ('callback( {"openid":"oid"} );', '{"openid":"oid"}'),
            ('callback({"error":100019});\n', '{"error":100019}'),
            ("access_token=at&expires_in=1", None),
        ],
    )
    def test_unwrap(self, text, expected):
        assert unwrap_jsonp(text) == expected


class TestQQLogin:
    """测试 QQ code 登录"""

    async def test_authenticate_with_code(self, qq, http_routes):
        http_routes.add("GET", TOKEN_URL, text="access_token=at&expires_in=7776000&refresh_token=rt")
        _mock_user(http_routes)

        user = await qq.authenticate_with_code("c")

        assert user.id == "oid"
        assert user.name == "qqnick"
        assert user.avatar == "https://qq/f.png"
        assert user.token == "at"
        assert user.refresh_token == "rt"
        assert user.expires_in == 7776000
        assert user.extra == {}

        token_request, me_request, info_request = http_routes.requests
        assert token_request.url.params["grant_type"] == "authorization_code"
        assert token_request.url.params["client_secret"] == "qs"
        assert dict(me_request.url.params) == {"access_token": "at"}
        assert dict(info_request.url.params) == {
            "access_token": "at",
            "fmt": "json",
            "openid": "oid",
            "oauth_consumer_key": "101",
        }

    async def test_token_jsonp_error(self, qq, http_routes):
        http_routes.add(
            "GET",
            TOKEN_URL,
            text='callback( {"error":100019,"error_description":"code to access token error"} );',
        )

        with pytest.raises(AuthorizeFailedError) as exc_info:
            await qq.exchange_code_for_token("c")
        assert exc_info.value.body["error"] == 100019

    async def test_token_missing_access_token(self, qq, http_routes):
        http_routes.add("GET", TOKEN_URL, text="expires_in=1")

        with pytest.raises(AuthorizeFailedError):
            await qq.exchange_code_for_token("c")

    async def test_union_id(self, qq, http_routes):
        _mock_user(http_routes, me='callback( {"client_id":"101","openid":"oid","unionid":"uid"} );')

        user = await qq.with_union_id().authenticate_with_token("at")

        assert user.extra == {"unionid": "uid"}
        assert http_routes.requests[0].url.params["unionid"] == "1"

    async def test_me_without_openid(self, qq, http_routes):
        _mock_user(http_routes, me='callback( {"error":100016,"error_description":"access token check failed"} );')

        with pytest.raises(AuthorizeFailedError):
            await qq.authenticate_with_token("at")
        assert len(http_routes.requests) == 1
