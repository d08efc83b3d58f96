from .student_validator import (
    FieldError,
    Invalid,
    Valid,
    ValidationResult,
    validate_student,
)

__all__ = ["FieldError", "Invalid", "Valid", "ValidationResult", "validate_student"]
