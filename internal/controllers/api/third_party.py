"""第三方登录相关 API 接口"""

import secrets
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from internal.config import get_settings, get_third_party_apps
from internal.core.exception import AppException, global_codes
from internal.infra.redis import RedisUserSessionStore, get_redis
from internal.services.third_party import ThirdPartyAuthService
from pkg.logger import logger
from pkg.third_party_auth import UserSessionStore, extract_code

router = APIRouter(prefix="/third", tags=["Third Party Auth"])


def new_third_party_service() -> ThirdPartyAuthService:
    settings = get_settings()
    return ThirdPartyAuthService(get_third_party_apps(), callback_url=settings.THIRD_PARTY_CALLBACK_URL)


def new_session_store(request: Request, response: Response) -> UserSessionStore:
    """
    按 Cookie 中的会话 ID 获取会话存储，没有时生成新的会话 ID 并写回 Cookie
    """
    settings = get_settings()
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not session_id:
        session_id = secrets.token_hex(16)
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            session_id,
            max_age=settings.SESSION_TTL_SECONDS,
            httponly=True,
            samesite="lax",
        )
    return RedisUserSessionStore(get_redis(), session_id, ttl=settings.SESSION_TTL_SECONDS)


# 依赖注入类型注解
ThirdPartyServiceDep = Annotated[ThirdPartyAuthService, Depends(new_third_party_service)]
SessionStoreDep = Annotated[UserSessionStore, Depends(new_session_store)]


@router.get("/user", summary="获取当前第三方用户")
async def current_user(service: ThirdPartyServiceDep, store: SessionStoreDep) -> dict[str, Any]:
    """
    读取会话中的第三方用户（读取后即失效）
    """
    user = await service.current_user(store)
    if user is None:
        raise AppException(global_codes.NotFound, message="third-party user not found")
    return user.to_dict()


@router.get("/{app}/authorize", summary="跳转到第三方授权页")
async def authorize(app: str, service: ThirdPartyServiceDep, state: str | None = Query(None)):
    url = await service.authorize_url(app, state)
    logger.info(f"Redirect to third-party authorize page, app={app}")
    return RedirectResponse(url, status_code=307)


@router.get("/{app}/callback", summary="授权回调：code 登录")
async def callback(app: str, request: Request, service: ThirdPartyServiceDep, store: SessionStoreDep) -> dict[str, Any]:
    """
    - 读取 code（支付宝为 auth_code）
    - 换取 token 并获取用户信息
    - 写入会话
    """
    code = extract_code(request.query_params)
    user = await service.login_with_code(app, code, store)
    return user.to_dict()


@router.get("/{app}/token", summary="已有 token 登录")
async def token_login(
    app: str,
    service: ThirdPartyServiceDep,
    store: SessionStoreDep,
    token: str | None = Query(None),
    refresh_token: str | None = Query(None),
    expires_in: str | None = Query(None),
) -> dict[str, Any]:
    user = await service.login_with_token(
        app,
        token,
        store,
        refresh_token=refresh_token,
        expires_in=expires_in,
    )
    return user.to_dict()


@router.get("/{app}/redirect-callback", summary="授权回调：换取 token 后跳转前端")
async def redirect_callback(app: str, request: Request, service: ThirdPartyServiceDep):
    code = extract_code(request.query_params)
    url = await service.callback_redirect_url(app, code)
    return RedirectResponse(url, status_code=307)
