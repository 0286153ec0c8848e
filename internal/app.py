import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from internal.config import get_settings
from internal.core.exception import AppException, global_codes, third_party_error_code
from internal.infra.redis import close_redis, init_redis
from pkg.logger import init_logger, logger
from pkg.response import CustomORJSONResponse, error_response
from pkg.third_party_auth import ThirdPartyAuthError


def create_app() -> FastAPI:
    debug = get_settings().DEBUG
    app = FastAPI(
        debug=debug,
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
        default_response_class=CustomORJSONResponse,
        lifespan=lifespan,
    )

    register_router(app)
    register_exception(app)
    register_middleware(app)

    return app


def register_router(app: FastAPI):
    from internal.controllers import api

    app.include_router(api.router)


def register_exception(app: FastAPI):
    @app.exception_handler(AppException)
    async def app_exception_handler(_: Request, exc: AppException):
        logger.warning(f"Business exception: {exc}")
        return error_response(exc.error, message=exc.message)

    @app.exception_handler(ThirdPartyAuthError)
    async def third_party_exception_handler(_: Request, exc: ThirdPartyAuthError):
        logger.warning(f"Third-party auth failed: {type(exc).__name__}: {exc.message}")
        return error_response(third_party_error_code(exc), message=exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_: Request, exc: RequestValidationError):
        logger.warning(f"Validation Error: {exc!r}")
        return error_response(global_codes.BadRequest, message=f"Validation Error: {exc}")


def register_middleware(app: FastAPI):
    # 日志中间件：记录请求日志，初始化 trace_id
    from internal.middlewares.recorder import ASGIRecordMiddleware

    app.add_middleware(ASGIRecordMiddleware)


# 定义 lifespan 事件处理器
@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()

    # 初始化日志
    init_logger(
        level=settings.LOG_LEVEL,
        base_log_dir=settings.LOG_DIR,
        log_format=settings.LOG_FORMAT,
        write_to_file=settings.LOG_TO_FILE,
    )
    logger.info(f"Init lifespan, env={settings.APP_ENV}, pid={os.getpid()}")

    # 初始化 Redis
    init_redis(settings.REDIS_URL)

    logger.info("Application will start.")

    yield

    # 关闭时的清理逻辑
    await close_redis()
    logger.warning("Application is about to close.")
