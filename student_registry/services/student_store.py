from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from student_registry.db.models import Student
from student_registry.schemas.student_schemas import StudentPayload, StudentRecord
from student_registry.utils.errors import DuplicateKeyError

students_table = Student.__table__


class StudentStore(ABC):
    """
    Persistence contract for student records.

    Implementations give single-record atomicity only and never commit; the
    caller owns the transaction.
    """

    @abstractmethod
    async def find_all(self) -> List[StudentRecord]:
        ...

    @abstractmethod
    async def insert(self, record: StudentRecord) -> StudentRecord:
        """Store a new record. Raises DuplicateKeyError if the id is taken."""

    @abstractmethod
    async def find_one_and_update(
        self, student_id: int, patch: StudentPayload
    ) -> Optional[StudentRecord]:
        """Replace every field except the id. None if no such record."""

    @abstractmethod
    async def find_one_and_delete(self, student_id: int) -> Optional[StudentRecord]:
        """Remove a record and return it. None if no such record."""


def _to_record(row: Mapping[str, Any]) -> StudentRecord:
    return StudentRecord.model_validate(dict(row))


def _column_values(model: StudentPayload) -> Dict[str, Any]:
    # Raw python values; model_dump would render dates and enums as strings
    return {name: getattr(model, name) for name in type(model).model_fields}


class SqlStudentStore(StudentStore):
    """SQLAlchemy implementation over the ``students`` table"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def find_all(self) -> List[StudentRecord]:
        result = await self.db.execute(select(students_table).order_by(students_table.c.id))
        return [_to_record(row) for row in result.mappings()]

    async def insert(self, record: StudentRecord) -> StudentRecord:
        try:
            await self.db.execute(insert(students_table).values(**_column_values(record)))
        except IntegrityError as e:
            raise DuplicateKeyError(f"Student id {record.id} already exists") from e
        return record

    async def find_one_and_update(
        self, student_id: int, patch: StudentPayload
    ) -> Optional[StudentRecord]:
        # Write first: the statement is atomic and takes the write lock up front
        result = await self.db.execute(
            update(students_table)
            .where(students_table.c.id == student_id)
            .values(**_column_values(patch))
            .returning(*students_table.c)
        )
        row = result.mappings().first()
        return _to_record(row) if row is not None else None

    async def find_one_and_delete(self, student_id: int) -> Optional[StudentRecord]:
        result = await self.db.execute(
            delete(students_table)
            .where(students_table.c.id == student_id)
            .returning(*students_table.c)
        )
        row = result.mappings().first()
        return _to_record(row) if row is not None else None
