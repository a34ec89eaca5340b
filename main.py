#!/usr/bin/env python3

"""
Main application entry point for the VideoTube accounts service.

Architecture: FastAPI application over an async SQLAlchemy credential store,
with a JWT token issuer and a Cloudinary media relay built from one Settings
object at startup.
"""

import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.responses import error_response
from app.api.users import router as users_router
from app.config import Settings
from app.db import check_db_connection, close_db, init_db, init_engine
from app.schemas import ApiResponse
from app.services.account_service import AccountService
from app.services.media_relay import MediaRelay
from app.services.token_issuer import TokenIssuer
from app.utils.logger import setup_logger

logger = setup_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Application startup...")
    try:
        init_engine(settings)
        await init_db()
        await check_db_connection()
        logger.info("Database connectivity confirmed.")
    except Exception as e:
        logger.critical(f"Startup error: {e}")
        raise SystemExit(f"Startup failed: {e}") from e

    logger.info("VideoTube accounts API startup successful.")
    yield

    logger.info("VideoTube accounts API shutdown...")
    await close_db()
    logger.info("Shutdown complete.")


def create_app(
    settings: Settings | None = None, *, media_relay: MediaRelay | None = None
) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="VideoTube Accounts API", lifespan=lifespan)

    token_issuer = TokenIssuer(settings)
    media_relay = media_relay or MediaRelay(settings)
    app.state.settings = settings
    app.state.token_issuer = token_issuer
    app.state.media_relay = media_relay
    app.state.account_service = AccountService(
        token_issuer,
        media_relay,
        login_require_all_identifiers=settings.login_require_all_identifiers,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Invalid request",
            errors=jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(
            exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        # Multipart uploads are streamed to disk; everything else is capped
        content_type = request.headers.get("content-type", "")
        content_length = request.headers.get("content-length")
        if (
            content_length
            and content_length.isdigit()
            and not content_type.startswith("multipart/")
            and int(content_length) > settings.max_json_body_bytes
        ):
            return error_response(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "Request body too large"
            )
        return await call_next(request)

    @app.get(f"{settings.api_prefix}/healthcheck")
    async def healthcheck():
        return ApiResponse(status_code=200, data="OK", message="Healthy").dump()

    app.include_router(users_router, prefix=settings.api_prefix)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


def main():
    settings: Settings = app.state.settings
    logger.info(
        f"Starting VideoTube accounts API on {settings.server_host}:{settings.server_port}"
    )
    # uvicorn can only fork workers from an import string
    target = "main:app" if settings.server_workers > 1 else app
    try:
        uvicorn.run(
            target,
            host=settings.server_host,
            port=settings.server_port,
            workers=settings.server_workers,
        )
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
