"""
FastAPI application entry point for the storefront API.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.catalog import Catalog
from storefront.config import Settings, get_settings
from storefront.credentials import CredentialService, PasswordHasher
from storefront.db import DbClient
from storefront.dependencies import build_db_client
from storefront.errors import StorefrontError, Unauthorized
from storefront.routes import router
from storefront.seed import load_seed_file

logger = logging.getLogger(__name__)


async def storefront_error_handler(request: Request, exc: StorefrontError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
        headers=headers,
    )


def create_app(
    settings: Optional[Settings] = None, db: Optional[DbClient] = None
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    db = db if db is not None else build_db_client(settings)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    if settings.seed_file:
        load_seed_file(db, hasher, settings.seed_file)

    app = FastAPI(title="Storefront Catalog API", version="0.1.0")
    app.state.db = db
    app.state.catalog = Catalog(db, hasher)
    app.state.credentials = CredentialService(
        db,
        hasher,
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        access_ttl=timedelta(seconds=settings.access_token_ttl_seconds),
        refresh_ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
    )
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
