"""Record collections and file buckets the reader and admin consoles talk to.

Everything here returns plain dicts; decoding into typed posts happens in
:mod:`glassblog.schemas`.
"""
import logging
import pathlib
import secrets
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, event, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import BackendError
from .models import Base, Post, Comment, PostLike

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "posts": Post,
    "comments": Comment,
    "post_likes": PostLike,
}


def make_engine(db_url: str):
    kwargs: Dict[str, Any] = {}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, or every session sees its own empty db
            kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, **kwargs)
    if db_url.startswith("sqlite"):
        # sqlite leaves foreign keys off unless asked per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    Base.metadata.create_all(engine)
    return engine


def to_record(obj) -> dict:
    return {c.key: getattr(obj, c.key) for c in obj.__table__.columns}


class Backend:
    def __init__(self, session_factory):
        self.SessionLocal = session_factory

    @classmethod
    def from_url(cls, db_url: str) -> "Backend":
        return cls(sessionmaker(make_engine(db_url), expire_on_commit=False))

    @contextmanager
    def _session(self, action: str):
        try:
            with self.SessionLocal() as s:
                yield s
        except SQLAlchemyError as e:
            raise BackendError(f"{action} failed: {e}") from e

    @staticmethod
    def _model(collection: str):
        model = COLLECTIONS.get(collection)
        if model is None:
            raise BackendError(f"Unknown collection: {collection}")
        return model

    @staticmethod
    def _column(model, name: str):
        if name not in model.__table__.columns:
            raise BackendError(f"Unknown field {model.__tablename__}.{name}")
        return getattr(model, name)

    def _where(self, model, stmt, where: Optional[dict]):
        for k, v in (where or {}).items():
            stmt = stmt.where(self._column(model, k) == v)
        return stmt

    def select(self, collection: str, where: Optional[dict] = None,
               order_by: Optional[str] = None, descending: bool = False) -> List[dict]:
        model = self._model(collection)
        stmt = self._where(model, select(model), where)
        if order_by:
            col = self._column(model, order_by)
            if descending:
                stmt = stmt.order_by(col.desc(), model.id.desc())
            else:
                stmt = stmt.order_by(col.asc(), model.id.asc())
        with self._session(f"select {collection}") as s:
            return [to_record(o) for o in s.execute(stmt).scalars().all()]

    def insert(self, collection: str, record: dict) -> dict:
        model = self._model(collection)
        for k in record:
            self._column(model, k)
        with self._session(f"insert {collection}") as s:
            obj = model(**record)
            s.add(obj); s.commit(); s.refresh(obj)
            return to_record(obj)

    def update(self, collection: str, key: int, changes: dict) -> dict:
        model = self._model(collection)
        for k in changes:
            self._column(model, k)
        with self._session(f"update {collection}") as s:
            obj = s.get(model, key)
            if obj is None:
                raise BackendError(f"{collection}/{key} not found")
            for k, v in changes.items(): setattr(obj, k, v)
            s.commit(); s.refresh(obj)
            return to_record(obj)

    def delete(self, collection: str, key: int) -> None:
        model = self._model(collection)
        with self._session(f"delete {collection}") as s:
            obj = s.get(model, key)
            if obj is None:
                raise BackendError(f"{collection}/{key} not found")
            s.delete(obj); s.commit()

    def count(self, collection: str, where: Optional[dict] = None) -> int:
        model = self._model(collection)
        stmt = self._where(model, select(func.count()).select_from(model), where)
        with self._session(f"count {collection}") as s:
            return s.execute(stmt).scalar_one()


class Storage:
    """Named buckets on local disk, served under ``<base_url>/<bucket>/``."""

    def __init__(self, root: pathlib.Path, base_url: str):
        self.root = pathlib.Path(root)
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def unique_name(filename: str) -> str:
        ext = pathlib.Path(filename).suffix.lower()
        return f"{int(time.time() * 1000)}_{secrets.token_hex(6)}{ext}"

    def upload(self, bucket: str, filename: str, data: bytes) -> str:
        name = self.unique_name(filename)
        path = self.root / bucket / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise BackendError(f"upload to {bucket} failed: {e}") from e
        logger.info("Stored %s (%d bytes) in bucket %s", name, len(data), bucket)
        return self.public_url(bucket, name)

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self.base_url}/{bucket}/{name}"
