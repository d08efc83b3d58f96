from typing import Optional
from datetime import date, datetime
from sqlalchemy import (
    String,
    Integer,
    Enum,
    Index,
    func,
    DateTime,
    Date,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from student_registry.schemas.student_schemas import FreshmanOrTransfer


class Base(DeclarativeBase):
    pass


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )


# Models
class Student(Base, AuditMixin):
    __tablename__ = "students"

    # Assigned by SequenceAllocator, never by the database
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    identify_number: Mapped[str] = mapped_column(String, nullable=False)
    university_admission_year: Mapped[int] = mapped_column(Integer, nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    birth_city: Mapped[str] = mapped_column(String, nullable=False)
    school: Mapped[str] = mapped_column(String, nullable=False)
    program: Mapped[str] = mapped_column(String, nullable=False)
    voucher: Mapped[Optional[str]] = mapped_column(String)
    grant: Mapped[Optional[str]] = mapped_column(String)
    sociality: Mapped[Optional[str]] = mapped_column(String)
    learning_language: Mapped[Optional[str]] = mapped_column(String)
    freshman_or_transfer: Mapped[FreshmanOrTransfer] = mapped_column(
        Enum(
            FreshmanOrTransfer,
            name="freshman_or_transfer",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    mobility_semester: Mapped[Optional[str]] = mapped_column(String)
    agent: Mapped[Optional[str]] = mapped_column(String)
    email: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index("idx_students_email", "email"),
        Index("idx_students_identify_number", "identify_number"),
    )


class RecordSequence(Base):
    """Durable counter backing the student id sequence"""

    __tablename__ = "record_sequences"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
