"""Student payload validation.

``validate_student`` checks a raw JSON payload against :class:`StudentPayload`
and reports *every* violation at once, so a client can fix a form in one round
trip. The result is an explicit value rather than an exception; the record
service decides what to do with an :class:`Invalid` outcome.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from student_registry.schemas.student_schemas import StudentPayload

# Wire name -> human label, in schema order
FIELD_LABELS: Dict[str, str] = {
    "firstName": "First name",
    "lastName": "Last name",
    "identifyNumber": "Identify number",
    "universityAdmissionYear": "University admission year",
    "birthDate": "Birth date",
    "birthCity": "Birth city",
    "school": "School",
    "program": "Program",
    "voucher": "Voucher",
    "grant": "Grant",
    "sociality": "Sociality",
    "learningLanguage": "Learning language",
    "freshmanOrTransfer": "Freshman or transfer",
    "mobilitySemester": "Mobility semester",
    "agent": "Agent",
    "email": "Email",
}

RULE_MESSAGES: Dict[str, str] = {
    "universityAdmissionYear": "University admission year must be a number",
    "birthDate": "Birth date must be a valid date",
    "freshmanOrTransfer": 'Freshman or transfer must be either "Freshman" or "Transfer"',
    "email": "Email must be a valid email address",
}

BODY_FIELD = "body"


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    type: str = "value_error"
    input: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "type": self.type,
            "input": self.input,
        }


@dataclass(frozen=True)
class Valid:
    record: StudentPayload
    is_valid: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Invalid:
    errors: List[FieldError]
    is_valid: bool = field(default=False, init=False)


ValidationResult = Union[Valid, Invalid]


def _message_for(wire_name: str, error_type: str) -> str:
    label = FIELD_LABELS.get(wire_name, wire_name)
    if error_type == "missing":
        return f"{label} is required"
    if wire_name in RULE_MESSAGES:
        return RULE_MESSAGES[wire_name]
    if error_type == "string_too_short":
        return f"{label} must not be empty"
    return f"{label} must be a string"


def _to_field_errors(exc: ValidationError) -> List[FieldError]:
    errors: List[FieldError] = []
    seen = set()
    for error in exc.errors():
        loc = error.get("loc") or ()
        wire_name = str(loc[0]) if loc else BODY_FIELD
        # one error per offending field
        if wire_name in seen:
            continue
        seen.add(wire_name)

        if wire_name == BODY_FIELD:
            message = "Request body must be a JSON object"
        else:
            message = _message_for(wire_name, error["type"])
        errors.append(
            FieldError(
                field=wire_name,
                message=message,
                type=error["type"],
                input=error.get("input") if error["type"] != "missing" else None,
            )
        )
    return errors


def validate_student(payload: Any) -> ValidationResult:
    """Validate a raw create/update payload against the student schema."""
    if not isinstance(payload, Mapping):
        return Invalid(
            errors=[
                FieldError(
                    field=BODY_FIELD,
                    message="Request body must be a JSON object",
                    type="model_type",
                    input=payload,
                )
            ]
        )

    try:
        record = StudentPayload.model_validate(dict(payload))
    except ValidationError as exc:
        return Invalid(errors=_to_field_errors(exc))

    return Valid(record=record)
