from typing import Generic, TypeVar, Type, List, Optional, Any, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from sqlalchemy.exc import SQLAlchemyError
from notify_worker.db import Base

ModelType = TypeVar("ModelType", bound=Base)


class AsyncBaseRepository(Generic[ModelType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Get a record by id.
        """
        stmt = select(self.model).where(self.model.id == id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_where(
            self,
            db: AsyncSession,
            *,
            conditions: List[Any],
            values: Dict[str, Any],
    ) -> int:
        """
        Update every row matching all conditions in a single statement.

        Returns:
            Number of rows the database reports as updated
        """
        try:
            stmt = (
                update(self.model)
                .where(and_(*conditions))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return result.rowcount
        except SQLAlchemyError:
            await db.rollback()
            raise

    async def update_where_returning(
            self,
            db: AsyncSession,
            *,
            conditions: List[Any],
            values: Dict[str, Any],
    ) -> List[ModelType]:
        """
        Conditional update that returns the rows it changed.

        The WHERE clause is evaluated atomically with the write, so callers
        can use it as a compare-and-swap on a row's current state.
        """
        try:
            stmt = (
                update(self.model)
                .where(and_(*conditions))
                .values(**values)
                .returning(self.model)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError:
            await db.rollback()
            raise
