"""
Pydantic schemas for the storefront API.

Wire names follow the mobile app (``categoryId``, ``access_token``); Python
code uses the snake_case field names.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.ids import canonical_id


class Role(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


def _coerce_category_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    coerced = canonical_id(value)
    if coerced is None:
        raise ValueError("categoryId must be a number or a non-empty string")
    return coerced


class CategoryResponse(BaseModel):
    id: str
    name: str
    image: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    image: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    image: Optional[str] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    price: float
    description: str = ""
    images: list[str] = Field(default_factory=list)
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    category: Optional[CategoryResponse] = None


class ProductCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    description: str = ""
    images: list[str] = Field(default_factory=list)
    category_id: Optional[str] = Field(default=None, alias="categoryId")

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_category_id(cls, value: Any) -> Optional[str]:
        return _coerce_category_id(value)


class ProductUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    images: Optional[list[str]] = None
    category_id: Optional[str] = Field(default=None, alias="categoryId")

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_category_id(cls, value: Any) -> Optional[str]:
        return _coerce_category_id(value)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: Role = Role.CUSTOMER
    avatar: Optional[str] = None


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    role: Role = Role.CUSTOMER
    avatar: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3, max_length=320)
    password: Optional[str] = Field(default=None, min_length=1)
    role: Optional[Role] = None
    avatar: Optional[str] = None


class BannerResponse(BaseModel):
    id: str
    image: str
    title: Optional[str] = None


class BannerCreate(BaseModel):
    image: str = Field(..., min_length=1)
    title: Optional[str] = None


class BannerUpdate(BaseModel):
    image: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = None


class EmailAvailabilityRequest(BaseModel):
    email: str


class EmailAvailabilityResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_available: bool = Field(..., alias="isAvailable")


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., alias="refreshToken")


class AuthPayload(BaseModel):
    access_token: str
    refresh_token: str


class HealthResponse(BaseModel):
    status: str
