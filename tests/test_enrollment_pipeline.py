# tests/test_enrollment_pipeline.py
"""
Unit tests for the enrollment pipeline: retry policy and failure classification.
"""

import pytest
from dataclasses import replace
from unittest.mock import MagicMock

from campus.core.enrollment_pipeline import EnrollmentPipeline, FailureKind
from campus.core.flow_context import build_flow_context
from campus.core.registration_state import (
    EmailCheckResult,
    EnrollmentResult,
    RegistrationFormData,
    WizardStep,
)
from campus.core.session_manager import WizardSession


SYNC_FAILURE = EnrollmentResult(
    success=False,
    error="Erreur de synchronisation lors de la génération du numéro étudiant",
    error_code="synchronisation",
)


@pytest.fixture
def session():
    return WizardSession(
        session_id="s1",
        step=WizardStep.DOCUMENTS,
        form_data=RegistrationFormData(
            first_name="Jean",
            last_name="Dupont",
            email="jean.dupont@ecole.fr",
            program_id="p1",
            year_level=1,
        ),
    )


@pytest.fixture
def backend():
    return MagicMock()


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def email_service():
    return MagicMock()


@pytest.fixture
def pipeline(config, backend, sleep, email_service):
    return EnrollmentPipeline(
        replace(config, enrollment_retry_delay_ms=3000),
        backend,
        email_service=email_service,
        sleep=sleep,
    )


class TestSubmit:
    def test_success_moves_to_validation(self, pipeline, backend, session, email_service):
        backend.auto_enroll.return_value = EnrollmentResult(success=True, student_number="INF26001")

        outcome = pipeline.submit(session)

        assert outcome.success
        assert outcome.attempts == 1
        assert session.step == WizardStep.VALIDATION
        assert session.enrollment_result.student_number == "INF26001"
        assert session.retry_count == 0
        email_service.send_welcome.assert_called_once_with(
            to_email="jean.dupont@ecole.fr",
            full_name="Jean Dupont",
            student_number="INF26001",
        )

    def test_request_built_from_form(self, pipeline, backend, session):
        backend.auto_enroll.return_value = EnrollmentResult(success=True, student_number="X1")
        pipeline.submit(session)

        request = backend.auto_enroll.call_args.args[0]
        assert request.email == "jean.dupont@ecole.fr"
        assert request.full_name == "Jean Dupont"
        assert request.program_id == "p1"
        assert request.year_level == 1
        assert request.retry is False

    def test_success_without_student_number_is_failure(self, pipeline, backend, session):
        backend.auto_enroll.return_value = EnrollmentResult(success=True)

        outcome = pipeline.submit(session)

        assert outcome.failure_kind == FailureKind.GENERIC
        assert session.step == WizardStep.DOCUMENTS

    def test_synchronisation_is_retried_twice_then_terminal(self, pipeline, backend, session, sleep):
        backend.auto_enroll.return_value = SYNC_FAILURE

        outcome = pipeline.submit(session)

        assert backend.auto_enroll.call_count == 3
        assert outcome.attempts == 3
        assert outcome.failure_kind == FailureKind.SYNCHRONISATION
        assert session.retry_count == 2
        assert session.step == WizardStep.DOCUMENTS
        assert sleep.call_count == 2
        sleep.assert_called_with(3.0)

    def test_retry_flag_set_on_resubmission(self, pipeline, backend, session):
        backend.auto_enroll.side_effect = [
            SYNC_FAILURE,
            EnrollmentResult(success=True, student_number="INF26002"),
        ]

        outcome = pipeline.submit(session)

        assert outcome.success
        assert outcome.attempts == 2
        assert session.retry_count == 0
        flags = [call.args[0].retry for call in backend.auto_enroll.call_args_list]
        assert flags == [False, True]

    def test_each_submission_starts_a_fresh_retry_budget(self, pipeline, backend, session):
        backend.auto_enroll.return_value = SYNC_FAILURE
        pipeline.submit(session)
        pipeline.submit(session)

        assert backend.auto_enroll.call_count == 6

    def test_generic_failure_not_retried(self, pipeline, backend, session, sleep):
        backend.auto_enroll.return_value = EnrollmentResult(
            success=False, error="Programme invalide", error_code="invalid_program"
        )

        outcome = pipeline.submit(session)

        assert backend.auto_enroll.call_count == 1
        assert outcome.failure_kind == FailureKind.GENERIC
        sleep.assert_not_called()
        assert session.enrollment_result.error == "Programme invalide"

    def test_existing_student_is_terminal(self, pipeline, backend, session):
        session.flow_context = build_flow_context(
            EmailCheckResult(has_profile=True, is_student=True)
        )
        backend.auto_enroll.return_value = EnrollmentResult(
            success=False, error="déjà inscrit", is_existing_user=True
        )

        outcome = pipeline.submit(session)

        assert backend.auto_enroll.call_count == 1
        assert outcome.failure_kind == FailureKind.EXISTING_STUDENT

    def test_backend_exception_becomes_generic_failure(self, pipeline, backend, session):
        backend.auto_enroll.side_effect = ConnectionError("boom")

        outcome = pipeline.submit(session)

        assert outcome.failure_kind == FailureKind.GENERIC
        assert outcome.result.error

    def test_welcome_email_failure_does_not_fail_enrollment(
        self, pipeline, backend, session, email_service
    ):
        backend.auto_enroll.return_value = EnrollmentResult(success=True, student_number="INF26001")
        email_service.send_welcome.side_effect = OSError("smtp down")

        outcome = pipeline.submit(session)

        assert outcome.success
        assert session.step == WizardStep.VALIDATION


class TestClassifyFailure:
    def test_marker_fallback_without_error_code(self, pipeline, session):
        result = EnrollmentResult(success=False, error="Erreur de SYNCHRONISATION réseau")
        assert pipeline.classify_failure(session, result) == FailureKind.SYNCHRONISATION

    def test_error_code_takes_precedence_over_text(self, pipeline, session):
        result = EnrollmentResult(
            success=False, error="synchronisation impossible", error_code="invalid_request"
        )
        assert pipeline.classify_failure(session, result) == FailureKind.GENERIC

    def test_existing_user_without_student_check_is_generic(self, pipeline, session):
        session.flow_context = build_flow_context(
            EmailCheckResult(has_profile=True, is_student=False)
        )
        result = EnrollmentResult(success=False, error="Erreur", is_existing_user=True)
        assert pipeline.classify_failure(session, result) == FailureKind.GENERIC
