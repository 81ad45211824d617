# tests/test_wizard.py
"""
Unit tests for the wizard step controller.
"""

import pytest
from unittest.mock import MagicMock

from campus.core.enrollment_pipeline import EnrollmentPipeline, FailureKind
from campus.core.flow_context import FlowContextResolver, build_flow_context
from campus.core.registration_state import EmailCheckResult, EnrollmentResult, WizardStep
from campus.core.session_manager import WizardSession
from campus.core.wizard import WizardController


CATALOGUE = {"p1": "d1", "p2": "d2"}


@pytest.fixture
def backend():
    return MagicMock()


@pytest.fixture
def wizard(config, backend):
    pipeline = EnrollmentPipeline(config, backend, sleep=MagicMock())
    return WizardController(pipeline, program_departments=lambda: CATALOGUE)


@pytest.fixture
def session(wizard, personal_info):
    session = WizardSession(session_id="s1")
    wizard.update_fields(session, personal_info)
    return session


def at_documents_step(wizard, session):
    wizard.next(session)
    wizard.update_fields(session, {"department_id": "d1", "program_id": "p1", "year_level": "2"})
    wizard.next(session)
    assert session.step == WizardStep.DOCUMENTS
    return session


class TestUpdateFields:
    def test_values_normalized(self, session):
        assert session.form_data.phone == "0612345678"
        assert session.form_data.birth_date == "2001-03-15"
        assert session.errors == {}

    def test_invalid_value_stored_with_error(self, wizard, session):
        errors = wizard.update_fields(session, {"email": "pas-un-email"})
        assert errors == {"email": "Format email invalide"}
        assert session.form_data.email == "pas-un-email"

    def test_unknown_field_rejected(self, wizard, session):
        with pytest.raises(ValueError):
            wizard.update_fields(session, {"nickname": "JD"})

    def test_email_change_drops_flow_context(self, wizard, session):
        session.flow_context = build_flow_context(EmailCheckResult(False, False))
        wizard.update_fields(session, {"email": "autre@ecole.fr"})
        assert session.flow_context is None

    def test_other_field_keeps_flow_context(self, wizard, session):
        session.flow_context = build_flow_context(EmailCheckResult(False, False))
        wizard.update_fields(session, {"address": "1 place du Capitole"})
        assert session.flow_context is not None


class TestNavigation:
    def test_next_then_prev_returns_to_same_step(self, wizard, session):
        assert wizard.next(session).moved
        assert session.step == WizardStep.PROGRAM_SELECTION
        wizard.prev(session)
        assert session.step == WizardStep.PERSONAL_INFO

    def test_prev_clamped_at_first_step(self, wizard, session):
        transition = wizard.prev(session)
        assert not transition.moved
        assert session.step == WizardStep.PERSONAL_INFO

    def test_invalid_step_blocks_advance(self, wizard):
        session = WizardSession(session_id="empty")
        transition = wizard.next(session)
        assert not transition.moved
        assert "email" in transition.errors
        assert session.step == WizardStep.PERSONAL_INFO

    def test_program_outside_department_blocks_advance(self, wizard, session):
        wizard.next(session)
        wizard.update_fields(session, {"department_id": "d1", "program_id": "p2", "year_level": 1})
        transition = wizard.next(session)
        assert not transition.moved
        assert "program_id" in transition.errors

    def test_existing_student_context_blocks_every_step(self, wizard, session):
        wizard.next(session)
        session.flow_context = build_flow_context(EmailCheckResult(True, True))

        transition = wizard.next(session)

        assert transition.blocked
        assert not transition.moved
        assert session.step == WizardStep.PROGRAM_SELECTION

    def test_pending_email_check_resolved_before_advancing(self, config, backend, session):
        backend.check_email.return_value = EmailCheckResult(has_profile=True, is_student=True)
        pipeline = EnrollmentPipeline(config, backend, sleep=MagicMock())
        wizard = WizardController(pipeline, resolver=FlowContextResolver(backend))
        assert session.flow_context is None

        transition = wizard.next(session)

        backend.check_email.assert_called_once_with("jean.dupont@ecole.fr")
        assert transition.blocked
        assert session.step == WizardStep.PERSONAL_INFO

    def test_known_context_not_resolved_again(self, config, backend, session):
        session.flow_context = build_flow_context(EmailCheckResult(False, False))
        pipeline = EnrollmentPipeline(config, backend, sleep=MagicMock())
        wizard = WizardController(pipeline, resolver=FlowContextResolver(backend))

        assert wizard.next(session).moved
        backend.check_email.assert_not_called()

    def test_prev_allowed_while_blocked(self, wizard, session):
        wizard.next(session)
        session.flow_context = build_flow_context(EmailCheckResult(True, True))
        wizard.prev(session)
        assert session.step == WizardStep.PERSONAL_INFO


class TestSubmission:
    def test_documents_step_submits_enrollment(self, wizard, backend, session):
        backend.auto_enroll.return_value = EnrollmentResult(success=True, student_number="INF26001")
        at_documents_step(wizard, session)

        transition = wizard.next(session)

        assert transition.moved
        assert session.step == WizardStep.VALIDATION
        assert "INF26001" in transition.message
        # Formulário descartado após sucesso
        assert session.form_data.email is None

    def test_next_on_last_step_is_noop(self, wizard, backend, session):
        backend.auto_enroll.return_value = EnrollmentResult(success=True, student_number="INF26001")
        at_documents_step(wizard, session)
        wizard.next(session)

        transition = wizard.next(session)

        assert not transition.moved
        assert session.step == WizardStep.VALIDATION
        assert backend.auto_enroll.call_count == 1

    def test_back_from_validation_does_not_resubmit(self, wizard, backend, session):
        backend.auto_enroll.return_value = EnrollmentResult(success=True, student_number="INF26001")
        at_documents_step(wizard, session)
        wizard.next(session)

        wizard.prev(session)
        transition = wizard.next(session)

        assert transition.moved
        assert session.step == WizardStep.VALIDATION
        assert backend.auto_enroll.call_count == 1

    def test_failure_keeps_documents_step(self, wizard, backend, session):
        backend.auto_enroll.return_value = EnrollmentResult(
            success=False, error="Programme invalide", error_code="invalid_program"
        )
        at_documents_step(wizard, session)

        transition = wizard.next(session)

        assert not transition.moved
        assert transition.message == "Programme invalide"
        assert transition.failure_kind == FailureKind.GENERIC
        assert session.step == WizardStep.DOCUMENTS
        assert session.form_data.email == "jean.dupont@ecole.fr"

    def test_synchronisation_failure_reports_attempts(self, wizard, backend, session):
        backend.auto_enroll.return_value = EnrollmentResult(
            success=False, error="Erreur de synchronisation", error_code="synchronisation"
        )
        at_documents_step(wizard, session)

        transition = wizard.next(session)

        assert transition.failure_kind == FailureKind.SYNCHRONISATION
        assert transition.attempts == 3
