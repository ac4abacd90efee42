# FastAPI entrypoint for the login service

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import httpx
from fastapi import FastAPI
from loguru import logger

from login.config import LoginSettings, normalize_context_root
from login.facebook_login import FacebookLoginService
from login.login_routes import router as login_router
from login.provider_client import ProviderClient
from login.security_middleware import (
    AuditLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from login.security_token import JWTSecurityTokenMinter


def build_login_service(settings: LoginSettings, http_client: httpx.AsyncClient) -> FacebookLoginService:
    minter = JWTSecurityTokenMinter(
        settings.token_secret,
        issuer=settings.token_issuer,
        ttl=settings.token_ttl,
    )
    return FacebookLoginService(
        credentials=settings.credentials(),
        client=ProviderClient(http_client, timeout=settings.http_timeout),
        minter=minter,
        graph_host=settings.graph_host,
        dialog_url=settings.dialog_url,
    )


def create_app(settings: Optional[LoginSettings] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    settings = settings or LoginSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(transport=transport, timeout=settings.http_timeout) as http_client:
            app.state.settings = settings
            app.state.login_service = build_login_service(settings, http_client)
            logger.info(f"Login service started for origin {settings.origin}")
            yield
        logger.info("Login service stopped")

    app = FastAPI(
        title="Social Login API",
        description="Facebook login popup that mints local security tokens",
        version="1.0.0",
        lifespan=lifespan,
    )

    # ==================== SECURITY MIDDLEWARE STACK ====================

    app.add_middleware(AuditLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    # ==================== ROUTES ====================

    @app.get("/health")
    async def health_check():
        """basic liveness check"""
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "service": "social-login",
        }

    app.include_router(login_router, prefix=normalize_context_root(settings.context_root))
    return app


app = create_app()
