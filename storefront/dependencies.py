"""
Dependency wiring for the FastAPI app.

Services are built once per application by ``create_app`` and kept on
``app.state``; request dependencies read them from there.
"""

from __future__ import annotations

import logging

from fastapi import Request

from storefront.catalog import Catalog
from storefront.config import Settings
from storefront.credentials import CredentialService
from storefront.db import DbClient, InMemoryDbClient, SqlDbClient

logger = logging.getLogger(__name__)


def build_db_client(settings: Settings) -> DbClient:
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory store")
        return InMemoryDbClient()
    logger.info("Using SQL store")
    return SqlDbClient(settings.database_url)


def get_db_client(request: Request) -> DbClient:
    return request.app.state.db


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credentials
