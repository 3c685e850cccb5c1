"""
Entity Store

Purpose
-------
Thin generic data-access layer over the ORM models. Provides:
- find-by-filter with optional sort and limit
- find-one by primary key or by field values
- insert (returning the stored entity with its generated id)
- partial update by id, reporting matched/modified counts
- delete by id

Design
------
- Every method expects an active `AsyncSession` supplied by the caller.
- Business rules (lifecycle, authorization) live in the services; the
  repository only persists.
- Writes commit by default. Pass ``commit=False`` to stage several writes in
  one transaction and commit from the caller.
- Unique-constraint violations surface as `DuplicateKeyError`; other integrity
  errors (NOT NULL, foreign key) propagate unchanged. The session is
  rolled back first in both cases, which discards every write staged in the same
  transaction.

Usage
-----
.. code-block:: python

    from zapshift.app.db.repository import parcel_repository

    parcel = await parcel_repository.get(db, 42)
    outcome = await parcel_repository.update(db, 42, {"parcel_name": "Books"})
    print(outcome.matched_count, outcome.modified_count)
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zapshift.app.models.parcel import Parcel
from zapshift.app.models.payment import Payment
from zapshift.app.models.rider import Rider
from zapshift.app.models.user import User

ModelT = TypeVar("ModelT")


class DuplicateKeyError(Exception):
    """A write violated a unique constraint."""


UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    True for unique-constraint failures only.

    PostgreSQL drivers report SQLSTATE 23505; SQLite only says so in the message.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "unique constraint" in str(orig).lower()


@dataclass(frozen=True)
class UpdateOutcome:
    matched_count: int
    modified_count: int


class Repository(Generic[ModelT]):
    """Async persistence operations for one ORM model."""

    def __init__(self, model: Type[ModelT]):
        self.model = model

    def _column(self, name: str):
        try:
            return getattr(self.model, name)
        except AttributeError:
            raise ValueError(f"{self.model.__name__} has no field '{name}'")

    async def find(
        self,
        db: AsyncSession,
        filters: Optional[Dict[str, Any]] = None,
        *,
        where: Iterable[Any] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        """
        Return entities matching every non-None value in ``filters``.

        ``where`` takes extra SQLAlchemy clauses for conditions that are not
        plain equality (e.g. case-insensitive search).
        """
        query = select(self.model)
        for field, value in (filters or {}).items():
            if value is not None:
                query = query.where(self._column(field) == value)
        for clause in where:
            query = query.where(clause)
        if order_by:
            column = self._column(order_by)
            query = query.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            query = query.limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, entity_id: Any) -> Optional[ModelT]:
        return await db.get(self.model, entity_id)

    async def find_one(self, db: AsyncSession, **fields: Any) -> Optional[ModelT]:
        query = select(self.model)
        for field, value in fields.items():
            query = query.where(self._column(field) == value)
        result = await db.execute(query.limit(1))
        return result.scalars().first()

    async def insert(self, db: AsyncSession, values: Dict[str, Any], *, commit: bool = True) -> ModelT:
        """
        Insert a new entity.

        Raises:
            DuplicateKeyError: a unique constraint rejected the row
        """
        entity = self.model(**values)
        db.add(entity)
        try:
            await db.flush()
            if commit:
                await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if is_unique_violation(exc):
                raise DuplicateKeyError(str(exc.orig)) from exc
            raise
        return entity

    def apply(self, entity: ModelT, values: Dict[str, Any]) -> UpdateOutcome:
        """Set changed fields on an already loaded entity without flushing."""
        modified = False
        for field, value in values.items():
            self._column(field)
            if getattr(entity, field) != value:
                setattr(entity, field, value)
                modified = True
        return UpdateOutcome(matched_count=1, modified_count=1 if modified else 0)

    async def update(
        self,
        db: AsyncSession,
        entity_id: Any,
        values: Dict[str, Any],
        *,
        commit: bool = True,
    ) -> UpdateOutcome:
        entity = await self.get(db, entity_id)
        if entity is None:
            return UpdateOutcome(matched_count=0, modified_count=0)

        outcome = self.apply(entity, values)
        if commit:
            await self.commit(db)
        return outcome

    async def delete(self, db: AsyncSession, entity_id: Any, *, commit: bool = True) -> int:
        entity = await self.get(db, entity_id)
        if entity is None:
            return 0
        await db.delete(entity)
        if commit:
            await db.commit()
        return 1

    @staticmethod
    async def commit(db: AsyncSession) -> None:
        """Commit staged writes, translating unique violations."""
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if is_unique_violation(exc):
                raise DuplicateKeyError(str(exc.orig)) from exc
            raise


user_repository: Repository[User] = Repository(User)
rider_repository: Repository[Rider] = Repository(Rider)
parcel_repository: Repository[Parcel] = Repository(Parcel)
payment_repository: Repository[Payment] = Repository(Payment)
