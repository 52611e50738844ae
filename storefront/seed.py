"""
Load an initial data set into an empty store.

The seed file is a JSON document with optional ``products``, ``categories``,
``users`` and ``banners`` arrays, in the shape the mobile app's mock server
used (numeric ids, ``categoryId``, plaintext ``password``). Identifiers are
coerced to their canonical string form and passwords are hashed before they
reach the store. Entries that cannot be read are skipped with a warning.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from storefront.credentials import PasswordHasher
from storefront.db import (
    RECORD_KINDS,
    BannerRecord,
    CategoryRecord,
    DbClient,
    ProductRecord,
    UserRecord,
)
from storefront.ids import canonical_id
from storefront.schemas import Role

logger = logging.getLogger(__name__)


def _product_fields(entry: dict, hasher: PasswordHasher) -> dict:
    images = entry.get("images") or []
    return {
        "title": str(entry["title"]),
        "price": float(entry["price"]),
        "description": str(entry.get("description") or ""),
        "images": [str(i) for i in images] if isinstance(images, list) else [],
        "category_id": canonical_id(
            entry.get("categoryId", entry.get("category_id"))
        ),
    }


def _category_fields(entry: dict, hasher: PasswordHasher) -> dict:
    return {"name": str(entry["name"]), "image": entry.get("image")}


def _user_fields(entry: dict, hasher: PasswordHasher) -> dict:
    return {
        "name": str(entry.get("name") or ""),
        "email": str(entry["email"]),
        "password_hash": hasher.hash(str(entry["password"])),
        "role": Role(entry.get("role") or Role.CUSTOMER.value).value,
        "avatar": entry.get("avatar"),
    }


def _banner_fields(entry: dict, hasher: PasswordHasher) -> dict:
    return {"image": str(entry["image"]), "title": entry.get("title")}


SEED_SECTIONS = (
    ("categories", CategoryRecord, _category_fields),
    ("products", ProductRecord, _product_fields),
    ("users", UserRecord, _user_fields),
    ("banners", BannerRecord, _banner_fields),
)


def is_empty(db: DbClient) -> bool:
    return all(db.count_records(kind) == 0 for kind in RECORD_KINDS)


def load_seed(db: DbClient, hasher: PasswordHasher, data: dict) -> dict[str, int]:
    """Insert every readable entry of ``data`` and return per-section counts."""
    counts: dict[str, int] = {}
    for section, kind, to_fields in SEED_SECTIONS:
        loaded = 0
        for entry in data.get(section) or []:
            record_id = canonical_id(entry.get("id"))
            if record_id is not None and db.get_record(kind, record_id) is not None:
                logger.warning("Skipping duplicate %s seed id %s", section, record_id)
                continue
            try:
                values = to_fields(entry, hasher)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed %s seed entry: %r", section, exc)
                continue
            db.create_record(kind, values, record_id=record_id)
            loaded += 1
        counts[section] = loaded
    return counts


def load_seed_file(
    db: DbClient, hasher: PasswordHasher, path: str | Path
) -> Optional[dict[str, int]]:
    """Seed ``db`` from the JSON file at ``path`` unless the store already has data."""
    if not is_empty(db):
        logger.info("Store already populated; skipping seed file %s", path)
        return None
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    counts = load_seed(db, hasher, data)
    logger.info("Seeded store from %s: %s", path, counts)
    return counts
