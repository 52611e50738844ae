"""
Database abstraction for SQL backends and an in-memory test implementation.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Iterator, Optional, Protocol, Type, TypeVar

from sqlalchemy import JSON, Column, Float, Integer, String, create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.errors import StorageError
from storefront.ids import generate_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductRecord:
    id: str
    title: str
    price: float
    description: str = ""
    images: list[str] = field(default_factory=list)
    category_id: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "description": self.description,
            "images": list(self.images),
            "category_id": self.category_id,
        }


@dataclass(frozen=True)
class CategoryRecord:
    id: str
    name: str
    image: Optional[str] = None

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "image": self.image}


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: str
    email: str
    password_hash: str
    role: str = "customer"
    avatar: Optional[str] = None

    def as_dict(self) -> dict:
        # password_hash stays inside the store
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "avatar": self.avatar,
        }


@dataclass(frozen=True)
class BannerRecord:
    id: str
    image: str
    title: Optional[str] = None

    def as_dict(self) -> dict:
        return {"id": self.id, "image": self.image, "title": self.title}


Record = TypeVar(
    "Record", ProductRecord, CategoryRecord, UserRecord, BannerRecord
)

RECORD_KINDS: tuple[type, ...] = (
    ProductRecord,
    CategoryRecord,
    UserRecord,
    BannerRecord,
)


def _writable_fields(kind: type) -> set[str]:
    return {f.name for f in fields(kind) if f.name != "id"}


def merge_record(record: Record, changes: dict) -> Record:
    """Shallow-merge ``changes`` into ``record``; unknown keys and ``id`` are ignored."""
    allowed = _writable_fields(type(record))
    updates = {
        key: value
        for key, value in changes.items()
        if key in allowed and value is not None
    }
    return replace(record, **updates)


class DbClient(Protocol):
    """Interface for database access."""

    def list_records(self, kind: Type[Record]) -> list[Record]:
        ...

    def get_record(self, kind: Type[Record], record_id: str) -> Optional[Record]:
        ...

    def create_record(
        self, kind: Type[Record], data: dict, *, record_id: Optional[str] = None
    ) -> Record:
        ...

    def update_record(
        self, kind: Type[Record], record_id: str, changes: dict
    ) -> Optional[Record]:
        ...

    def delete_record(self, kind: Type[Record], record_id: str) -> bool:
        ...

    def find_users_by_email(self, email: str) -> list[UserRecord]:
        ...

    def count_records(self, kind: Type[Record]) -> int:
        ...


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.records: Dict[type, Dict[str, object]] = {
            kind: {} for kind in RECORD_KINDS
        }
        self._lock = threading.Lock()

    def list_records(self, kind: Type[Record]) -> list[Record]:
        with self._lock:
            return list(self.records[kind].values())

    def get_record(self, kind: Type[Record], record_id: str) -> Optional[Record]:
        return self.records[kind].get(record_id)

    def create_record(
        self, kind: Type[Record], data: dict, *, record_id: Optional[str] = None
    ) -> Record:
        with self._lock:
            table = self.records[kind]
            if record_id is None:
                record_id = generate_id(lambda c: c in table)
            elif record_id in table:
                raise ValueError(f"{kind.__name__} {record_id} already exists")
            values = {k: v for k, v in data.items() if k in _writable_fields(kind)}
            record = kind(id=record_id, **values)
            table[record_id] = record
            return record

    def update_record(
        self, kind: Type[Record], record_id: str, changes: dict
    ) -> Optional[Record]:
        with self._lock:
            table = self.records[kind]
            existing = table.get(record_id)
            if existing is None:
                return None
            merged = merge_record(existing, changes)
            table[record_id] = merged
            return merged

    def delete_record(self, kind: Type[Record], record_id: str) -> bool:
        with self._lock:
            return self.records[kind].pop(record_id, None) is not None

    def find_users_by_email(self, email: str) -> list[UserRecord]:
        with self._lock:
            users = list(self.records[UserRecord].values())
        return [u for u in users if u.email == email]

    def count_records(self, kind: Type[Record]) -> int:
        return len(self.records[kind])


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Storage operation failed")
            raise StorageError("Storage backend unavailable") from exc

    @staticmethod
    def _to_record(kind: Type[Record], row) -> Record:
        values = {f.name: getattr(row, f.name) for f in fields(kind)}
        if kind is ProductRecord:
            values["images"] = list(values["images"] or [])
        return kind(**values)

    def list_records(self, kind: Type[Record]) -> list[Record]:
        row_cls = ROW_CLASSES[kind]
        with self._session() as session:
            rows = session.execute(
                select(row_cls).order_by(row_cls.seq.asc(), row_cls.id.asc())
            ).scalars()
            return [self._to_record(kind, row) for row in rows]

    def get_record(self, kind: Type[Record], record_id: str) -> Optional[Record]:
        with self._session() as session:
            row = session.get(ROW_CLASSES[kind], record_id)
            if not row:
                return None
            return self._to_record(kind, row)

    def create_record(
        self, kind: Type[Record], data: dict, *, record_id: Optional[str] = None
    ) -> Record:
        row_cls = ROW_CLASSES[kind]
        with self._session() as session:
            if record_id is None:
                record_id = generate_id(
                    lambda c: session.get(row_cls, c) is not None
                )
            elif session.get(row_cls, record_id) is not None:
                raise ValueError(f"{kind.__name__} {record_id} already exists")
            values = {k: v for k, v in data.items() if k in _writable_fields(kind)}
            record = kind(id=record_id, **values)
            seq = session.execute(
                select(func.coalesce(func.max(row_cls.seq), 0))
            ).scalar_one()
            row = row_cls(
                seq=seq + 1, created_at=time.time(), **_row_values(record)
            )
            session.add(row)
            session.commit()
            return record

    def update_record(
        self, kind: Type[Record], record_id: str, changes: dict
    ) -> Optional[Record]:
        with self._session() as session:
            row = session.get(ROW_CLASSES[kind], record_id)
            if not row:
                return None
            merged = merge_record(self._to_record(kind, row), changes)
            for key, value in _row_values(merged).items():
                setattr(row, key, value)
            session.commit()
            return merged

    def delete_record(self, kind: Type[Record], record_id: str) -> bool:
        with self._session() as session:
            row = session.get(ROW_CLASSES[kind], record_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def find_users_by_email(self, email: str) -> list[UserRecord]:
        with self._session() as session:
            rows = session.execute(
                select(UserRow)
                .where(UserRow.email == email)
                .order_by(UserRow.seq.asc(), UserRow.id.asc())
            ).scalars()
            return [self._to_record(UserRecord, row) for row in rows]

    def count_records(self, kind: Type[Record]) -> int:
        with self._session() as session:
            return session.query(ROW_CLASSES[kind]).count()


def _row_values(record) -> dict:
    values = {f.name: getattr(record, f.name) for f in fields(record)}
    if isinstance(record, ProductRecord):
        values["images"] = list(record.images)
    return values


Base = declarative_base()


class ProductRow(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    description = Column(String, nullable=False, default="")
    images = Column(JSON, nullable=False, default=list)
    category_id = Column(String, nullable=True, index=True)
    seq = Column(Integer, nullable=False, index=True)
    created_at = Column(Float, nullable=False)


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    image = Column(String, nullable=True)
    seq = Column(Integer, nullable=False, index=True)
    created_at = Column(Float, nullable=False)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="customer")
    avatar = Column(String, nullable=True)
    seq = Column(Integer, nullable=False, index=True)
    created_at = Column(Float, nullable=False)


class BannerRow(Base):
    __tablename__ = "banners"

    id = Column(String, primary_key=True)
    image = Column(String, nullable=False)
    title = Column(String, nullable=True)
    seq = Column(Integer, nullable=False, index=True)
    created_at = Column(Float, nullable=False)


ROW_CLASSES: dict[type, type] = {
    ProductRecord: ProductRow,
    CategoryRecord: CategoryRow,
    UserRecord: UserRow,
    BannerRecord: BannerRow,
}
