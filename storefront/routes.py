"""
HTTP routes for the storefront API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.catalog import Catalog, Page, ProductFilter
from storefront.credentials import CredentialService
from storefront.db import ProductRecord
from storefront.dependencies import get_catalog, get_credential_service
from storefront.schemas import (
    AuthPayload,
    BannerCreate,
    BannerResponse,
    BannerUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    EmailAvailabilityRequest,
    EmailAvailabilityResponse,
    HealthResponse,
    LoginRequest,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    RefreshRequest,
    UserCreate,
    UserResponse,
    UserUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


def _changes(payload) -> dict:
    return payload.model_dump(exclude_unset=True, exclude_none=True, mode="json")


def _product_response(catalog: Catalog, product: ProductRecord) -> ProductResponse:
    category = catalog.resolve_category(product)
    return ProductResponse(
        **product.as_dict(),
        category=CategoryResponse(**category.as_dict()) if category else None,
    )


@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(status="ok")


# Products


@router.get("/products", response_model=list[ProductResponse])
def list_products(
    title: Optional[str] = Query(None, description="Case-insensitive title search"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    price_min: Optional[str] = Query(None),
    price_max: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    catalog: Catalog = Depends(get_catalog),
):
    products = catalog.list_products(
        ProductFilter(
            title=title,
            category_id=category_id,
            price_min=price_min,
            price_max=price_max,
        ),
        Page.from_params(limit, offset),
    )
    return [_product_response(catalog, p) for p in products]


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
    product = catalog.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return _product_response(catalog, product)


@router.get(
    "/products/{product_id}/category", response_model=Optional[CategoryResponse]
)
def get_product_category(product_id: str, catalog: Catalog = Depends(get_catalog)):
    product = catalog.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    category = catalog.resolve_category(product)
    return CategoryResponse(**category.as_dict()) if category else None


@router.post("/products", response_model=ProductResponse, status_code=201)
def add_product(payload: ProductCreate, catalog: Catalog = Depends(get_catalog)):
    product = catalog.add_product(payload.model_dump(mode="json"))
    return _product_response(catalog, product)


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str, payload: ProductUpdate, catalog: Catalog = Depends(get_catalog)
):
    product = catalog.update_product(product_id, _changes(payload))
    return _product_response(catalog, product)


@router.delete("/products/{product_id}", response_model=bool)
def delete_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
    return catalog.delete_product(product_id)


# Categories


@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(catalog: Catalog = Depends(get_catalog)):
    return [CategoryResponse(**c.as_dict()) for c in catalog.list_categories()]


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(category_id: str, catalog: Catalog = Depends(get_catalog)):
    category = catalog.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return CategoryResponse(**category.as_dict())


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def add_category(payload: CategoryCreate, catalog: Catalog = Depends(get_catalog)):
    return CategoryResponse(**catalog.add_category(payload.model_dump()).as_dict())


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: str, payload: CategoryUpdate, catalog: Catalog = Depends(get_catalog)
):
    category = catalog.update_category(category_id, _changes(payload))
    return CategoryResponse(**category.as_dict())


@router.delete("/categories/{category_id}", response_model=bool)
def delete_category(category_id: str, catalog: Catalog = Depends(get_catalog)):
    return catalog.delete_category(category_id)


# Users


@router.get("/users", response_model=list[UserResponse])
def list_users(catalog: Catalog = Depends(get_catalog)):
    return [UserResponse(**u.as_dict()) for u in catalog.list_users()]


@router.post("/users/is-available", response_model=EmailAvailabilityResponse)
def is_email_available(
    payload: EmailAvailabilityRequest, catalog: Catalog = Depends(get_catalog)
):
    return EmailAvailabilityResponse(
        is_available=catalog.is_email_available(payload.email)
    )


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: str, catalog: Catalog = Depends(get_catalog)):
    user = catalog.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse(**user.as_dict())


@router.post("/users", response_model=UserResponse, status_code=201)
def add_user(payload: UserCreate, catalog: Catalog = Depends(get_catalog)):
    user = catalog.add_user(payload.model_dump(mode="json"))
    return UserResponse(**user.as_dict())


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str, payload: UserUpdate, catalog: Catalog = Depends(get_catalog)
):
    user = catalog.update_user(user_id, _changes(payload))
    return UserResponse(**user.as_dict())


@router.delete("/users/{user_id}", response_model=bool)
def delete_user(user_id: str, catalog: Catalog = Depends(get_catalog)):
    return catalog.delete_user(user_id)


# Banners


@router.get("/banners", response_model=list[BannerResponse])
def list_banners(catalog: Catalog = Depends(get_catalog)):
    return [BannerResponse(**b.as_dict()) for b in catalog.list_banners()]


@router.post("/banners", response_model=BannerResponse, status_code=201)
def add_banner(payload: BannerCreate, catalog: Catalog = Depends(get_catalog)):
    return BannerResponse(**catalog.add_banner(payload.model_dump()).as_dict())


@router.put("/banners/{banner_id}", response_model=BannerResponse)
def update_banner(
    banner_id: str, payload: BannerUpdate, catalog: Catalog = Depends(get_catalog)
):
    return BannerResponse(**catalog.update_banner(banner_id, _changes(payload)).as_dict())


@router.delete("/banners/{banner_id}", response_model=bool)
def delete_banner(banner_id: str, catalog: Catalog = Depends(get_catalog)):
    return catalog.delete_banner(banner_id)


# Auth


@router.post("/auth/login", response_model=AuthPayload)
def login(
    payload: LoginRequest,
    credentials: CredentialService = Depends(get_credential_service),
):
    tokens = credentials.login(payload.email, payload.password)
    return AuthPayload(
        access_token=tokens.access_token, refresh_token=tokens.refresh_token
    )


@router.post("/auth/refresh-token", response_model=AuthPayload)
def refresh_token(
    payload: RefreshRequest,
    credentials: CredentialService = Depends(get_credential_service),
):
    tokens = credentials.refresh(payload.refresh_token)
    return AuthPayload(
        access_token=tokens.access_token, refresh_token=tokens.refresh_token
    )


@router.get("/auth/profile", response_model=UserResponse)
def my_profile(
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    credentials: CredentialService = Depends(get_credential_service),
):
    if bearer is None:
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = credentials.current_user(bearer.credentials)
    return UserResponse(**user.as_dict())
