"""
Catalog query engine: filtered, paginated reads and record mutations.

Filtering is a linear scan over the store's insertion-ordered records. All
product predicates are conjunctive; values that cannot be coerced to the
stored field's type degrade to an empty result instead of failing the
request.
"""

from __future__ import annotations

import logging
from dataclasses import MISSING, dataclass, fields
from typing import Any, Optional

from storefront.credentials import PasswordHasher
from storefront.db import (
    BannerRecord,
    CategoryRecord,
    DbClient,
    ProductRecord,
    UserRecord,
)
from storefront.errors import InvalidInput, NotFound
from storefront.ids import canonical_id

logger = logging.getLogger(__name__)


@dataclass
class ProductFilter:
    title: Optional[str] = None
    category_id: Any = None
    price_min: Any = None
    price_max: Any = None


@dataclass
class Page:
    limit: int
    offset: int

    @classmethod
    def from_params(
        cls, limit: Optional[int], offset: Optional[int]
    ) -> Optional["Page"]:
        """Both values are required together; otherwise pagination is skipped."""
        if limit is None or offset is None:
            return None
        return cls(limit=limit, offset=offset)


def _norm(s: Optional[str]) -> str:
    return (s or "").lower()


def _coerce_price(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidInput(f"price bound must be numeric, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"price bound must be numeric, got {value!r}") from exc


def _coerce_category(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    category_id = canonical_id(value)
    if category_id is None:
        raise InvalidInput(f"categoryId cannot be coerced: {value!r}")
    return category_id


def apply_filter(
    products: list[ProductRecord], product_filter: ProductFilter
) -> list[ProductRecord]:
    """Return the products matching every predicate set on ``product_filter``.

    Raises ``InvalidInput`` when a filter value cannot be coerced.
    """
    category_id = _coerce_category(product_filter.category_id)
    price_min = _coerce_price(product_filter.price_min)
    price_max = _coerce_price(product_filter.price_max)
    title = _norm(product_filter.title)

    items = products
    if category_id is not None:
        items = [p for p in items if canonical_id(p.category_id) == category_id]
    if price_min is not None:
        items = [p for p in items if p.price >= price_min]
    if price_max is not None:
        items = [p for p in items if p.price <= price_max]
    if title:
        items = [p for p in items if p.title and title in p.title.lower()]
    return items


def paginate(items: list, page: Optional[Page]) -> list:
    if page is None:
        return items
    if page.limit <= 0 or page.offset < 0:
        return []
    # No upper bound on limit: callers may request the whole set.
    return items[page.offset : page.offset + page.limit]


class Catalog:
    """Reads and writes over products, categories, users and banners."""

    def __init__(self, db: DbClient, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    # Products

    def list_products(
        self,
        product_filter: Optional[ProductFilter] = None,
        page: Optional[Page] = None,
    ) -> list[ProductRecord]:
        products = self.db.list_records(ProductRecord)
        if product_filter is not None:
            try:
                products = apply_filter(products, product_filter)
            except InvalidInput as exc:
                logger.info("Degrading malformed product filter to empty result: %s", exc)
                return []
        return paginate(products, page)

    def get_product(self, product_id: Any) -> Optional[ProductRecord]:
        return self._get(ProductRecord, product_id)

    def resolve_category(self, product: ProductRecord) -> Optional[CategoryRecord]:
        if product.category_id is None:
            return None
        return self._get(CategoryRecord, product.category_id)

    def add_product(self, data: dict) -> ProductRecord:
        return self._create(ProductRecord, self._normalize_product(data))

    def update_product(self, product_id: Any, changes: dict) -> ProductRecord:
        return self._update(
            ProductRecord, "Product", product_id, self._normalize_product(changes)
        )

    def delete_product(self, product_id: Any) -> bool:
        return self._delete(ProductRecord, product_id)

    # Categories

    def list_categories(self) -> list[CategoryRecord]:
        return self.db.list_records(CategoryRecord)

    def get_category(self, category_id: Any) -> Optional[CategoryRecord]:
        return self._get(CategoryRecord, category_id)

    def add_category(self, data: dict) -> CategoryRecord:
        return self._create(CategoryRecord, data)

    def update_category(self, category_id: Any, changes: dict) -> CategoryRecord:
        return self._update(CategoryRecord, "Category", category_id, changes)

    def delete_category(self, category_id: Any) -> bool:
        return self._delete(CategoryRecord, category_id)

    # Users

    def list_users(self) -> list[UserRecord]:
        return self.db.list_records(UserRecord)

    def get_user(self, user_id: Any) -> Optional[UserRecord]:
        return self._get(UserRecord, user_id)

    def is_email_available(self, email: str) -> bool:
        return not self.db.find_users_by_email(email)

    def add_user(self, data: dict) -> UserRecord:
        return self._create(UserRecord, self._hash_password(data))

    def update_user(self, user_id: Any, changes: dict) -> UserRecord:
        return self._update(UserRecord, "User", user_id, self._hash_password(changes))

    def delete_user(self, user_id: Any) -> bool:
        return self._delete(UserRecord, user_id)

    # Banners

    def list_banners(self) -> list[BannerRecord]:
        return self.db.list_records(BannerRecord)

    def add_banner(self, data: dict) -> BannerRecord:
        return self._create(BannerRecord, data)

    def update_banner(self, banner_id: Any, changes: dict) -> BannerRecord:
        return self._update(BannerRecord, "Banner", banner_id, changes)

    def delete_banner(self, banner_id: Any) -> bool:
        return self._delete(BannerRecord, banner_id)

    # Helpers

    def _create(self, kind, data: dict):
        # Identifiers are always generated by the store.
        values = {k: v for k, v in data.items() if k != "id" and v is not None}
        missing = [
            "password" if f.name == "password_hash" else f.name
            for f in fields(kind)
            if f.name != "id"
            and f.default is MISSING
            and f.default_factory is MISSING
            and f.name not in values
        ]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")
        return self.db.create_record(kind, values)

    def _get(self, kind, record_id: Any):
        key = canonical_id(record_id)
        if key is None:
            return None
        return self.db.get_record(kind, key)

    def _update(self, kind, label: str, record_id: Any, changes: dict):
        key = canonical_id(record_id)
        updated = self.db.update_record(kind, key, changes) if key else None
        if updated is None:
            raise NotFound(label, str(record_id))
        return updated

    def _delete(self, kind, record_id: Any) -> bool:
        key = canonical_id(record_id)
        if key is not None:
            self.db.delete_record(kind, key)
        return True

    @staticmethod
    def _normalize_product(data: dict) -> dict:
        if "category_id" not in data or data["category_id"] is None:
            return data
        return {**data, "category_id": canonical_id(data["category_id"])}

    def _hash_password(self, data: dict) -> dict:
        values = dict(data)
        password = values.pop("password", None)
        if password is not None:
            values["password_hash"] = self.hasher.hash(password)
        return values
