from collections.abc import Mapping
from typing import Any

from pkg.logger import logger
from pkg.third_party_auth import (
    BaseThirdPartyAuthStrategy,
    ConfigError,
    ThirdPartyAuthFactory,
    User,
    UserSessionStore,
    get_current_user,
    set_current_user,
)
from pkg.toolkit.http_cli import AsyncHttpClient


class ThirdPartyAuthService:
    """第三方登录业务编排：创建策略、完成授权、写入会话"""

    def __init__(
        self,
        apps: Mapping[str, Mapping[str, Any]],
        *,
        callback_url: str = "",
        http_client: AsyncHttpClient | None = None,
    ):
        self._apps = apps
        self._callback_url = callback_url
        self._http_client = http_client

    def create_strategy(self, app: str) -> BaseThirdPartyAuthStrategy:
        return ThirdPartyAuthFactory.create_from_apps(app, self._apps, http_client=self._http_client)

    async def authorize_url(self, app: str, state: str | None = None) -> str:
        async with self.create_strategy(app) as strategy:
            if state:
                strategy.with_state(state)
            return strategy.build_authorization_url()

    async def login_with_code(self, app: str, code: str | None, store: UserSessionStore) -> User:
        async with self.create_strategy(app) as strategy:
            if strategy.supports_token_exchange:
                user = await strategy.authenticate_with_code(code)
            else:
                # 钉钉只能用临时授权码直接获取用户
                user = await strategy.user_from_code(code)  # type: ignore[attr-defined]

        await set_current_user(store, user)
        return user

    async def login_with_token(
        self,
        app: str,
        token: str | None,
        store: UserSessionStore,
        *,
        refresh_token: str | None = None,
        expires_in: str | None = None,
    ) -> User:
        async with self.create_strategy(app) as strategy:
            user = await strategy.authenticate_with_token(token, refresh_token, expires_in)

        await set_current_user(store, user)
        return user

    async def callback_redirect_url(self, app: str, code: str | None) -> str:
        """用授权码换取 token，并拼接到前端回调地址上"""
        if not self._callback_url:
            raise ConfigError("THIRD_PARTY_CALLBACK_URL is not configured.")

        async with self.create_strategy(app) as strategy:
            token_response = await strategy.exchange_code_for_token(code)
            url = strategy.build_callback_url(self._callback_url, token_response)

        logger.info(f"Third-party token exchanged, app={app}")
        return url

    @staticmethod
    async def current_user(store: UserSessionStore) -> User | None:
        return await get_current_user(store)
