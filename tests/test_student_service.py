import pytest
from sqlalchemy.exc import OperationalError

from student_registry.db.models import RecordSequence
from student_registry.services.sequence_allocator import STUDENT_SEQUENCE, SequenceAllocator
from student_registry.services.student_service import StudentService
from student_registry.services.student_store import SqlStudentStore
from student_registry.utils.errors import (
    DuplicateKeyError,
    NotFoundError,
    StoreError,
    StudentValidationError,
)


class ConflictingStore(SqlStudentStore):
    """Reports a key conflict for the first ``conflicts`` inserts."""

    def __init__(self, db_session, conflicts: int):
        super().__init__(db_session)
        self.conflicts = conflicts
        self.attempted_ids = []

    async def insert(self, record):
        self.attempted_ids.append(record.id)
        if self.conflicts > 0:
            self.conflicts -= 1
            raise DuplicateKeyError(f"Student id {record.id} already exists")
        return await super().insert(record)


class BrokenStore(SqlStudentStore):
    async def insert(self, record):
        raise OperationalError("INSERT INTO students", {}, Exception("disk I/O error"))


@pytest.mark.integration
class TestCreateStudent:
    @pytest.mark.asyncio
    async def test_assigns_increasing_ids(self, db_session, student_payload):
        service = StudentService(db_session)

        first = await service.create_student(student_payload)
        second = await service.create_student({**student_payload, "firstName": "Bo"})

        assert (first.id, second.id) == (1, 2)
        assert second.first_name == "Bo"

    @pytest.mark.asyncio
    async def test_invalid_payload_persists_nothing(self, db_session, student_payload):
        service = StudentService(db_session)
        student_payload["email"] = "not-an-email"
        del student_payload["program"]

        with pytest.raises(StudentValidationError) as exc_info:
            await service.create_student(student_payload)

        assert {error.field for error in exc_info.value.errors} == {"email", "program"}
        assert await service.list_students() == []
        assert await SequenceAllocator(db_session).current_value() == 0

    @pytest.mark.asyncio
    async def test_conflict_is_retried_without_a_gap(self, db_session, student_payload):
        store = ConflictingStore(db_session, conflicts=1)
        service = StudentService(db_session, store=store)

        created = await service.create_student(student_payload)
        following = await service.create_student(student_payload)

        # The failed attempt's id was rolled back and handed out again
        assert store.attempted_ids == [1, 1, 2]
        assert (created.id, following.id) == (1, 2)

    @pytest.mark.asyncio
    async def test_stale_counter_skips_ids_already_taken(self, db_session, student_payload):
        service = StudentService(db_session)
        await service.create_student(student_payload)
        await service.create_student(student_payload)
        # Counter lost its progress, e.g. restored from an old backup
        await db_session.merge(RecordSequence(name=STUDENT_SEQUENCE, value=0))
        await db_session.commit()

        created = await service.create_student(student_payload)

        assert created.id == 3
        assert [student.id for student in await service.list_students()] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, db_session, student_payload):
        store = ConflictingStore(db_session, conflicts=10)
        service = StudentService(db_session, store=store, max_attempts=3)

        with pytest.raises(StoreError) as exc_info:
            await service.create_student(student_payload)

        assert exc_info.value.message == "Error adding student"
        assert len(store.attempted_ids) == 3
        assert await service.list_students() == []

    @pytest.mark.asyncio
    async def test_store_failure_consumes_no_id(self, db_session, student_payload):
        broken = StudentService(db_session, store=BrokenStore(db_session))

        with pytest.raises(StoreError) as exc_info:
            await broken.create_student(student_payload)
        assert exc_info.value.message == "Error adding student"
        assert "disk I/O" not in exc_info.value.message

        created = await StudentService(db_session).create_student(student_payload)
        assert created.id == 1


@pytest.mark.integration
class TestUpdateAndDeleteStudent:
    @pytest.mark.asyncio
    async def test_update_replaces_fields_but_not_id(self, db_session, full_student_payload):
        service = StudentService(db_session)
        created = await service.create_student(full_student_payload)

        changed = {**full_student_payload, "program": "Math", "id": 99}
        del changed["voucher"]
        updated = await service.update_student(created.id, changed)

        assert updated.id == created.id
        assert updated.program == "Math"
        # Full replacement: an omitted optional field is cleared
        assert updated.voucher is None
        students = await service.list_students()
        assert [(s.id, s.program) for s in students] == [(created.id, "Math")]

    @pytest.mark.asyncio
    async def test_update_validates_before_touching_the_store(self, db_session, student_payload):
        service = StudentService(db_session)
        created = await service.create_student(student_payload)

        with pytest.raises(StudentValidationError):
            await service.update_student(
                created.id, {**student_payload, "freshmanOrTransfer": "Both"}
            )

        (stored,) = await service.list_students()
        assert stored.freshman_or_transfer.value == "Freshman"

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, db_session, student_payload):
        with pytest.raises(NotFoundError):
            await StudentService(db_session).update_student(404, student_payload)

    @pytest.mark.asyncio
    async def test_delete_then_update_or_delete_again(self, db_session, student_payload):
        service = StudentService(db_session)
        created = await service.create_student(student_payload)

        deleted = await service.delete_student(created.id)
        assert deleted.id == created.id

        with pytest.raises(NotFoundError):
            await service.update_student(created.id, student_payload)
        with pytest.raises(NotFoundError):
            await service.delete_student(created.id)

    @pytest.mark.asyncio
    async def test_ids_are_not_reused_after_delete(self, db_session, student_payload):
        service = StudentService(db_session)
        await service.create_student(student_payload)
        second = await service.create_student(student_payload)
        await service.delete_student(second.id)

        third = await service.create_student(student_payload)

        assert third.id == 3
