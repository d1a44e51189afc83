"""
Backing store client.

DocumentStore exposes a small document-style API (scan, find_one, insert_one,
update_one, delete_one) over one SQLModel table. Filters are equality
predicates passed as keyword arguments, e.g. ``store.scan(owner_id=uid)``.
"""

import logging
from typing import Any, Generic, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.errors import ConflictError, InfrastructureError
from app.models import UpdateResult

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


class DocumentStore(Generic[ModelT]):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type[ModelT],
        order_by: Any = None,
    ):
        self._session_factory = session_factory
        self.model = model
        self._order_by = order_by

    def _select(self, filters: dict):
        query = select(self.model).filter_by(**filters)
        if self._order_by is not None:
            query = query.order_by(self._order_by)
        return query

    async def scan(self, **filters) -> list[ModelT]:
        try:
            async with self._session_factory() as session:
                result = await session.exec(self._select(filters))
                return list(result.all())
        except SQLAlchemyError as e:
            logger.error(f"Store scan on {self.model.__tablename__} failed: {e}")
            raise InfrastructureError("store scan failed") from e

    async def find_one(self, **filters) -> ModelT | None:
        try:
            async with self._session_factory() as session:
                result = await session.exec(self._select(filters).limit(1))
                return result.first()
        except SQLAlchemyError as e:
            logger.error(f"Store lookup on {self.model.__tablename__} failed: {e}")
            raise InfrastructureError("store lookup failed") from e

    async def insert_one(self, doc: ModelT) -> ModelT:
        try:
            async with self._session_factory() as session:
                session.add(doc)
                await session.commit()
                await session.refresh(doc)
                return doc
        except IntegrityError as e:
            raise ConflictError(f"{self.model.__name__} already exists") from e
        except SQLAlchemyError as e:
            logger.error(f"Store insert on {self.model.__tablename__} failed: {e}")
            raise InfrastructureError("store insert failed") from e

    async def update_one(self, filters: dict, fields: dict) -> UpdateResult:
        """Set ``fields`` on the first document matching ``filters``."""
        try:
            async with self._session_factory() as session:
                result = await session.exec(self._select(filters).limit(1))
                doc = result.first()
                if doc is None:
                    return UpdateResult(matched_count=0, modified_count=0)

                changed = {k: v for k, v in fields.items() if getattr(doc, k) != v}
                if not changed:
                    return UpdateResult(matched_count=1, modified_count=0)

                doc.sqlmodel_update(changed)
                session.add(doc)
                await session.commit()
                return UpdateResult(matched_count=1, modified_count=1)
        except SQLAlchemyError as e:
            logger.error(f"Store update on {self.model.__tablename__} failed: {e}")
            raise InfrastructureError("store update failed") from e

    async def delete_one(self, **filters) -> int:
        """Delete the first document matching ``filters``; returns the deleted count."""
        try:
            async with self._session_factory() as session:
                result = await session.exec(self._select(filters).limit(1))
                doc = result.first()
                if doc is None:
                    return 0
                await session.delete(doc)
                await session.commit()
                return 1
        except SQLAlchemyError as e:
            logger.error(f"Store delete on {self.model.__tablename__} failed: {e}")
            raise InfrastructureError("store delete failed") from e

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as session:
                conn = await session.connection()
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Store ping failed: {e}")
            return False
