from typing import Generic, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..database import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    model: Type[T]

    def __init__(self, db: Session):
        self.db = db

    def _update_where(self, *criteria, **values) -> int:
        """Single UPDATE on ``model`` guarded by ``criteria``; returns the number of rows it changed.

        Racing callers are serialized by the database on the WHERE clause. The caller commits.
        """
        result = self.db.execute(
            update(self.model).where(*criteria).values(**values).execution_options(synchronize_session=False)
        )
        return result.rowcount
