from typing import Any, List, Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from student_registry.config.settings import settings
from student_registry.db.session import get_async_session
from student_registry.schemas.student_schemas import StudentPayload, StudentRecord
from student_registry.services.sequence_allocator import SequenceAllocator
from student_registry.services.student_store import SqlStudentStore, StudentStore
from student_registry.utils.errors import (
    DuplicateKeyError,
    NotFoundError,
    StoreError,
    StudentValidationError,
)
from student_registry.utils.logging import get_logger
from student_registry.validation.student_validator import Invalid, validate_student

logger = get_logger()


class StudentService:
    """Student record lifecycle: list, create, update and delete"""

    def __init__(
        self,
        db_session: AsyncSession,
        store: Optional[StudentStore] = None,
        allocator: Optional[SequenceAllocator] = None,
        max_attempts: int = settings.SEQUENCE_MAX_ATTEMPTS,
    ):
        self.db = db_session
        self.store = store or SqlStudentStore(db_session)
        self.allocator = allocator or SequenceAllocator(db_session)
        self.max_attempts = max_attempts

    @staticmethod
    def validate_payload(payload: Any) -> StudentPayload:
        """Validate a raw payload or raise with every field error found"""
        result = validate_student(payload)
        if isinstance(result, Invalid):
            raise StudentValidationError(result.errors)
        return result.record

    async def list_students(self) -> List[StudentRecord]:
        try:
            return await self.store.find_all()
        except SQLAlchemyError as e:
            logger.exception(f"Failed to fetch students: {e}")
            raise StoreError("Error fetching students", "STUDENTS_RETRIEVAL_FAILED") from e

    async def create_student(self, payload: Any) -> StudentRecord:
        """Validate, assign the next id and insert, as one transaction.

        A key conflict (a stale counter or a concurrent seed of the counter row)
        rolls back both the increment and the insert, moves the counter past
        the stored ids and tries again.
        """
        student_data = self.validate_payload(payload)

        for attempt in range(1, self.max_attempts + 1):
            try:
                student_id = await self.allocator.next_value()
                record = StudentRecord(id=student_id, **self._fields(student_data))
                stored = await self.store.insert(record)
                await self.db.commit()
            except DuplicateKeyError as e:
                logger.warning(
                    f"Student id conflict on attempt {attempt}/{self.max_attempts}: {e.message}"
                )
                await self._recover_from_conflict()
                continue
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.exception(f"Failed to add student: {e}")
                raise StoreError("Error adding student", "STUDENT_CREATION_FAILED") from e

            logger.info(f"Created student {stored.id}")
            return stored

        logger.error(f"Gave up assigning a student id after {self.max_attempts} attempts")
        raise StoreError("Error adding student", "STUDENT_CREATION_FAILED")

    async def update_student(self, student_id: int, payload: Any) -> StudentRecord:
        student_data = self.validate_payload(payload)

        try:
            updated = await self.store.find_one_and_update(student_id, student_data)
            if updated is None:
                await self.db.rollback()
                raise NotFoundError()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Failed to update student {student_id}: {e}")
            raise StoreError("Error updating student", "STUDENT_UPDATE_FAILED") from e

        logger.info(f"Updated student {student_id}")
        return updated

    async def delete_student(self, student_id: int) -> StudentRecord:
        try:
            deleted = await self.store.find_one_and_delete(student_id)
            if deleted is None:
                await self.db.rollback()
                raise NotFoundError()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Failed to delete student {student_id}: {e}")
            raise StoreError("Error deleting student", "STUDENT_DELETION_FAILED") from e

        logger.info(f"Deleted student {student_id}")
        return deleted

    async def _recover_from_conflict(self) -> None:
        try:
            await self.db.rollback()
            await self.allocator.resync()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Failed to resync the student id sequence: {e}")
            raise StoreError("Error adding student", "STUDENT_CREATION_FAILED") from e

    @staticmethod
    def _fields(student_data: StudentPayload) -> dict:
        return {name: getattr(student_data, name) for name in StudentPayload.model_fields}


def get_student_service(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> StudentService:
    """Dependency to provide StudentService instance"""
    config = getattr(request.app.state, "settings", settings)
    return StudentService(db, max_attempts=config.SEQUENCE_MAX_ATTEMPTS)
