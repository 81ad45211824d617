# tests/test_validators.py
"""
Unit tests for field normalization and per-step validation.
"""

import pytest
from datetime import date, timedelta

from campus.core.registration_state import RegistrationFormData, WizardStep
from campus.core.validators import (
    is_valid_email,
    normalize_field,
    normalize_phone,
    parse_birth_date,
    parse_year_level,
    validate_field,
    validate_step,
)


class TestEmail:
    @pytest.mark.parametrize(
        "email",
        ["jean.dupont@ecole.fr", "a@b.co", "  padded@example.com  "],
    )
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize(
        "email",
        [None, "", "jean", "jean@", "jean@ecole", "je an@ecole.fr", "@ecole.fr"],
    )
    def test_invalid(self, email):
        assert not is_valid_email(email)

    def test_normalized_to_lowercase(self):
        assert normalize_field("email", "  Jean.Dupont@Ecole.FR ") == "jean.dupont@ecole.fr"


class TestPhone:
    def test_strips_separators(self):
        assert normalize_phone("06 12 34 56 78") == "0612345678"

    def test_keeps_leading_plus(self):
        assert normalize_phone("+33 6 12 34 56 78") == "+33612345678"

    def test_rejects_too_short(self):
        assert normalize_phone("1234") is None

    def test_invalid_value_kept_for_validation(self):
        assert normalize_field("phone", "12") == "12"
        assert validate_field("phone", "12") == "Numéro de téléphone invalide"


class TestBirthDate:
    def test_accepts_french_format(self):
        assert parse_birth_date("15/03/2001") == date(2001, 3, 15)

    def test_accepts_iso_format(self):
        assert parse_birth_date("2001-03-15") == date(2001, 3, 15)

    def test_rejects_future(self):
        tomorrow = date.today() + timedelta(days=1)
        assert parse_birth_date(tomorrow.isoformat()) is None

    def test_rejects_garbage(self):
        assert parse_birth_date("31/02/2001") is None
        assert parse_birth_date("hier") is None

    def test_normalized_to_iso(self):
        assert normalize_field("birth_date", "15/03/2001") == "2001-03-15"


class TestYearLevel:
    @pytest.mark.parametrize("raw,expected", [("1", 1), (3, 3), ("8", 8)])
    def test_valid(self, raw, expected):
        assert parse_year_level(raw) == expected

    @pytest.mark.parametrize("raw", [0, 9, "deux", None])
    def test_invalid(self, raw):
        assert parse_year_level(raw) is None


class TestValidateField:
    def test_required(self):
        assert validate_field("first_name", "   ") == "Ce champ est obligatoire"
        assert validate_field("first_name", None) == "Ce champ est obligatoire"

    def test_email_message(self):
        assert validate_field("email", "not-an-email") == "Format email invalide"

    def test_short_name(self):
        assert validate_field("last_name", "D") == "Au moins 2 caractères"

    def test_accepts_valid_value(self):
        assert validate_field("address", "12 rue de la Paix") is None


class TestValidateStep:
    def test_personal_info_reports_every_missing_field(self):
        errors = validate_step(WizardStep.PERSONAL_INFO, RegistrationFormData())
        assert set(errors) == {
            "first_name",
            "last_name",
            "email",
            "phone",
            "birth_date",
            "address",
        }

    def test_personal_info_valid(self):
        data = RegistrationFormData(
            first_name="Jean",
            last_name="Dupont",
            email="jean.dupont@ecole.fr",
            phone="0612345678",
            birth_date="2001-03-15",
            address="12 rue de la Paix",
        )
        assert validate_step(WizardStep.PERSONAL_INFO, data) == {}

    def test_documents_step_has_no_required_fields(self):
        assert validate_step(WizardStep.DOCUMENTS, RegistrationFormData()) == {}

    def test_program_must_belong_to_department(self):
        data = RegistrationFormData(department_id="d1", program_id="p2", year_level=1)
        errors = validate_step(
            WizardStep.PROGRAM_SELECTION, data, program_departments={"p1": "d1", "p2": "d2"}
        )
        assert "program_id" in errors

    def test_unknown_program(self):
        data = RegistrationFormData(department_id="d1", program_id="zz", year_level=1)
        errors = validate_step(
            WizardStep.PROGRAM_SELECTION, data, program_departments={"p1": "d1"}
        )
        assert errors == {"program_id": "Programme invalide"}

    def test_program_selection_without_catalogue(self):
        data = RegistrationFormData(department_id="d1", program_id="p1", year_level=2)
        assert validate_step(WizardStep.PROGRAM_SELECTION, data) == {}
