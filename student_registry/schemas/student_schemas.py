import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import ConfigDict, Field, StrictStr, field_validator

from student_registry.schemas.camel_base_model import CamelCaseBaseModel

ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


class FreshmanOrTransfer(str, Enum):
    FRESHMAN = "Freshman"
    TRANSFER = "Transfer"


class StudentPayload(CamelCaseBaseModel):
    """Student fields a client may submit. Used for both create and full update."""

    model_config = ConfigDict(extra="ignore")

    first_name: StrictStr = Field(..., min_length=1, description="First name")
    last_name: StrictStr = Field(..., min_length=1, description="Last name")
    identify_number: StrictStr = Field(
        ..., min_length=1, description="National or passport identification number"
    )
    university_admission_year: int = Field(..., description="Year of admission")
    birth_date: date = Field(..., description="ISO-8601 calendar date of birth")
    birth_city: StrictStr = Field(..., min_length=1, description="City of birth")
    school: StrictStr = Field(..., min_length=1, description="School")
    program: StrictStr = Field(..., min_length=1, description="Study program")
    freshman_or_transfer: FreshmanOrTransfer = Field(
        ..., description="Admission track, Freshman or Transfer"
    )
    email: StrictStr = Field(..., description="Contact email address, stored as sent")

    voucher: Optional[StrictStr] = Field(None, description="Voucher")
    grant: Optional[StrictStr] = Field(None, description="Grant")
    sociality: Optional[StrictStr] = Field(None, description="Sociality")
    learning_language: Optional[StrictStr] = Field(
        None, description="Language of instruction"
    )
    mobility_semester: Optional[StrictStr] = Field(
        None, description="Mobility semester"
    )
    agent: Optional[StrictStr] = Field(None, description="Recruiting agent")

    @field_validator("university_admission_year", mode="before")
    @classmethod
    def admission_year_is_numeric(cls, value: Any) -> Any:
        # bool is an int subclass; JSON true/false is not a year
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError("admission year must be a number")
        if isinstance(value, str) and not value.strip().lstrip("+-").isdigit():
            raise ValueError("admission year must be a number")
        return value

    @field_validator("birth_date", mode="before")
    @classmethod
    def birth_date_is_iso_string(cls, value: Any) -> Any:
        # Stored rows come back as date objects, clients must send a string
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        if not isinstance(value, str) or not ISO_DATE_PREFIX.match(value):
            raise ValueError("birth date must be an ISO-8601 date string")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def email_is_valid(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        try:
            # Syntax only; the address is kept exactly as the client wrote it
            validate_email(value, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(str(e)) from e
        return value


class StudentRecord(StudentPayload):
    """A persisted student, identified by its system-assigned id"""

    id: int = Field(..., description="System-assigned identifier")

    def to_response(self) -> dict:
        """camelCase wire representation, optional fields left out when unset"""
        return self.model_dump(by_alias=True, exclude_none=True)
