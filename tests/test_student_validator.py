import pytest
from datetime import date

from student_registry.schemas.student_schemas import FreshmanOrTransfer
from student_registry.validation import Invalid, Valid, validate_student


def _errors_by_field(result):
    assert isinstance(result, Invalid)
    return {error.field: error for error in result.errors}


@pytest.mark.unit
class TestValidPayloads:
    """Payloads that satisfy the student schema."""

    def test_required_fields_only(self, student_payload):
        result = validate_student(student_payload)

        assert isinstance(result, Valid)
        assert result.is_valid
        record = result.record
        assert record.first_name == "Ana"
        assert record.university_admission_year == 2024
        assert record.birth_date == date(2002, 5, 1)
        assert record.freshman_or_transfer is FreshmanOrTransfer.FRESHMAN
        assert record.voucher is None

    def test_optional_fields_are_kept(self, full_student_payload):
        result = validate_student(full_student_payload)

        assert isinstance(result, Valid)
        assert result.record.learning_language == "English"
        assert result.record.mobility_semester == "Spring 2026"

    def test_transfer_is_accepted(self, student_payload):
        student_payload["freshmanOrTransfer"] = "Transfer"

        result = validate_student(student_payload)

        assert isinstance(result, Valid)
        assert result.record.freshman_or_transfer is FreshmanOrTransfer.TRANSFER

    def test_client_supplied_id_and_unknown_keys_are_dropped(self, student_payload):
        student_payload["id"] = 999
        student_payload["nickname"] = "Annie"

        result = validate_student(student_payload)

        assert isinstance(result, Valid)
        dumped = result.record.model_dump()
        assert "id" not in dumped
        assert "nickname" not in dumped

    def test_numeric_string_admission_year_is_normalized(self, student_payload):
        student_payload["universityAdmissionYear"] = "2023"

        result = validate_student(student_payload)

        assert isinstance(result, Valid)
        assert result.record.university_admission_year == 2023

    def test_email_is_kept_exactly_as_sent(self, student_payload):
        student_payload["email"] = "Ana.Li@X.COM"

        result = validate_student(student_payload)

        assert isinstance(result, Valid)
        assert result.record.email == "Ana.Li@X.COM"
        assert result.record.to_response()["email"] == "Ana.Li@X.COM"

    def test_integral_float_admission_year(self, student_payload):
        student_payload["universityAdmissionYear"] = 2024.0

        result = validate_student(student_payload)

        assert isinstance(result, Valid)
        assert result.record.university_admission_year == 2024


@pytest.mark.unit
class TestInvalidPayloads:
    """Every violation is reported, one error per field."""

    def test_missing_required_field(self, student_payload):
        del student_payload["lastName"]

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["lastName"]
        assert errors["lastName"].message == "Last name is required"
        assert errors["lastName"].type == "missing"

    def test_bad_freshman_or_transfer(self, student_payload):
        student_payload["freshmanOrTransfer"] = "Senior"

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["freshmanOrTransfer"]
        assert (
            errors["freshmanOrTransfer"].message
            == 'Freshman or transfer must be either "Freshman" or "Transfer"'
        )
        assert errors["freshmanOrTransfer"].input == "Senior"

    def test_enum_value_is_case_sensitive(self, student_payload):
        student_payload["freshmanOrTransfer"] = "freshman"

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["freshmanOrTransfer"]

    def test_malformed_email(self, student_payload):
        student_payload["email"] = "ana-at-x.com"

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["email"]
        assert errors["email"].message == "Email must be a valid email address"

    def test_bad_birth_date(self, student_payload):
        student_payload["birthDate"] = "01/05/2002"

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["birthDate"]
        assert errors["birthDate"].message == "Birth date must be a valid date"

    def test_non_numeric_admission_year(self, student_payload):
        student_payload["universityAdmissionYear"] = "next year"

        errors = _errors_by_field(validate_student(student_payload))

        assert errors["universityAdmissionYear"].message == (
            "University admission year must be a number"
        )

    def test_wrong_types_are_not_coerced_to_strings(self, student_payload):
        student_payload["identifyNumber"] = 12345
        student_payload["voucher"] = 10

        errors = _errors_by_field(validate_student(student_payload))

        assert set(errors) == {"identifyNumber", "voucher"}
        assert errors["identifyNumber"].message == "Identify number must be a string"
        assert errors["voucher"].message == "Voucher must be a string"

    def test_empty_required_string(self, student_payload):
        student_payload["school"] = ""

        errors = _errors_by_field(validate_student(student_payload))

        assert errors["school"].message == "School must not be empty"

    def test_all_violations_are_collected(self, student_payload):
        del student_payload["firstName"]
        student_payload["freshmanOrTransfer"] = "Graduate"
        student_payload["email"] = "nope"
        student_payload["birthCity"] = 7

        result = validate_student(student_payload)

        errors = _errors_by_field(result)
        assert set(errors) == {"firstName", "freshmanOrTransfer", "email", "birthCity"}
        assert len(result.errors) == 4

    def test_empty_object_reports_every_required_field(self):
        errors = _errors_by_field(validate_student({}))

        assert set(errors) == {
            "firstName",
            "lastName",
            "identifyNumber",
            "universityAdmissionYear",
            "birthDate",
            "birthCity",
            "school",
            "program",
            "freshmanOrTransfer",
            "email",
        }

    @pytest.mark.parametrize("body", [[], "student", 42, None])
    def test_non_object_body(self, body):
        errors = _errors_by_field(validate_student(body))

        assert list(errors) == ["body"]
        assert errors["body"].message == "Request body must be a JSON object"

    def test_field_error_serializes_for_clients(self, student_payload):
        student_payload["email"] = "nope"

        result = validate_student(student_payload)

        assert result.errors[0].to_dict() == {
            "field": "email",
            "message": "Email must be a valid email address",
            "type": "value_error",
            "input": "nope",
        }

    @pytest.mark.parametrize("year", [True, False, None, [2024], {"year": 2024}, "", "2024a"])
    def test_admission_year_must_be_numeric(self, student_payload, year):
        student_payload["universityAdmissionYear"] = year

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["universityAdmissionYear"]
        assert errors["universityAdmissionYear"].message == (
            "University admission year must be a number"
        )

    def test_fractional_admission_year(self, student_payload):
        student_payload["universityAdmissionYear"] = 2024.5

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["universityAdmissionYear"]

    @pytest.mark.parametrize("birth_date", [0, 1020211200, "1020211200", True, None])
    def test_birth_date_must_be_an_iso_date_string(self, student_payload, birth_date):
        student_payload["birthDate"] = birth_date

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["birthDate"]
        assert errors["birthDate"].message == "Birth date must be a valid date"

    def test_impossible_calendar_date(self, student_payload):
        student_payload["birthDate"] = "2002-02-30"

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["birthDate"]

    @pytest.mark.parametrize("email", ["Ana <ana@x.com>", "ana@", "", 42])
    def test_email_must_be_a_bare_address(self, student_payload, email):
        student_payload["email"] = email

        errors = _errors_by_field(validate_student(student_payload))

        assert list(errors) == ["email"]
        assert errors["email"].message == "Email must be a valid email address"
