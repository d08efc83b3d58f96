from sqlalchemy import case, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from student_registry.db.models import RecordSequence, Student
from student_registry.utils.errors import DuplicateKeyError
from student_registry.utils.logging import get_logger

logger = get_logger()

STUDENT_SEQUENCE = "students"


class SequenceAllocator:
    """
    Hands out student ids from a counter row stored next to the records.

    ``next_value`` increments the counter inside the caller's open transaction.
    The increment is the first write of that transaction, so the row lock it
    takes orders concurrent creators; the value only becomes visible to others
    when the caller commits together with the record insert. If the caller
    rolls back, the increment is rolled back with it and the value is handed
    out again, so committed ids never have gaps or duplicates.
    """

    def __init__(self, db_session: AsyncSession, name: str = STUDENT_SEQUENCE):
        self.db = db_session
        self.name = name

    async def next_value(self) -> int:
        result = await self.db.execute(
            update(RecordSequence)
            .where(RecordSequence.name == self.name)
            .values(value=RecordSequence.value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return await self._seed()

        value = await self.db.scalar(
            select(RecordSequence.value).where(RecordSequence.name == self.name)
        )
        return int(value)

    async def resync(self) -> None:
        """Move the counter past the highest stored id if it has fallen behind"""
        highest_id = select(func.coalesce(func.max(Student.id), 0)).scalar_subquery()
        await self.db.execute(
            update(RecordSequence)
            .where(RecordSequence.name == self.name)
            .values(
                value=case(
                    (highest_id > RecordSequence.value, highest_id),
                    else_=RecordSequence.value,
                )
            )
            .execution_options(synchronize_session=False)
        )

    async def current_value(self) -> int:
        """Last value handed out, 0 before the first allocation"""
        value = await self.db.scalar(
            select(RecordSequence.value).where(RecordSequence.name == self.name)
        )
        return int(value or 0)

    async def _seed(self) -> int:
        """Create the counter row, continuing after any ids already stored"""
        highest_id = await self.db.scalar(select(func.coalesce(func.max(Student.id), 0)))
        value = int(highest_id) + 1

        try:
            await self.db.execute(
                insert(RecordSequence).values(name=self.name, value=value)
            )
        except IntegrityError as e:
            # Another creator seeded the row first
            raise DuplicateKeyError(f"Sequence '{self.name}' was seeded concurrently") from e

        logger.info(f"Seeded sequence '{self.name}' at {value}")
        return value
