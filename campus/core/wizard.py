import logging
from typing import Optional, Dict, Any, Callable
from dataclasses import dataclass, field
from .registration_state import WizardStep, RegistrationFormData, UserFlowContext, FIRST_STEP, LAST_STEP
from .session_manager import WizardSession
from .enrollment_pipeline import EnrollmentPipeline, FailureKind
from .flow_context import FlowContextResolver
from .validators import validate_step, validate_field, normalize_field, is_valid_email

logger = logging.getLogger(__name__)


@dataclass
class WizardTransition:
    """
    Estado lógico do assistente após uma ação.
    Não é a resposta final ao usuário; a camada HTTP decide como exibir.
    """
    session: WizardSession
    moved: bool
    message: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)
    blocked: bool = False
    failure_kind: Optional[FailureKind] = None
    attempts: int = 0


class WizardController:
    """
    Controla a sequência linear de etapas do assistente de inscrição.

    1 dados pessoais -> 2 escolha do programa -> 3 documentos -> 4 validação.
    Na etapa 3, "próximo" dispara o pipeline de inscrição em vez de avançar.
    """

    def __init__(
        self,
        pipeline: EnrollmentPipeline,
        program_departments: Optional[Callable[[], Dict[str, str]]] = None,
        resolver: Optional[FlowContextResolver] = None,
    ) -> None:
        self._pipeline = pipeline
        self._program_departments = program_departments
        self._resolver = resolver

    def update_fields(self, session: WizardSession, updates: Dict[str, Any]) -> Dict[str, str]:
        """
        Aplica atualizações campo a campo. Retorna erros de validação
        dos campos recebidos (os valores são gravados mesmo assim).

        Raises:
            ValueError: Se algum campo não existir no formulário
        """
        known = set(RegistrationFormData.field_names())
        unknown = [name for name in updates if name not in known]
        if unknown:
            raise ValueError(f"Campos desconhecidos: {unknown}")

        errors: Dict[str, str] = {}
        for name, value in updates.items():
            normalized = normalize_field(name, value)
            setattr(session.form_data, name, normalized)
            session.errors.pop(name, None)
            if normalized is not None and name != "specialization":
                error = validate_field(name, normalized)
                if error:
                    errors[name] = error

        if "email" in updates:
            # O contexto anterior é descartado até a nova verificação
            session.flow_context = None

        session.errors.update(errors)
        return errors

    def set_flow_context(self, session: WizardSession, context: Optional[UserFlowContext]) -> None:
        session.flow_context = context

    def validate_current_step(self, session: WizardSession) -> Dict[str, str]:
        catalogue = None
        if session.step == WizardStep.PROGRAM_SELECTION and self._program_departments is not None:
            catalogue = self._program_departments()
        return validate_step(session.step, session.form_data, catalogue)

    def _ensure_flow_context(self, session: WizardSession) -> None:
        """
        Resolve o contexto na hora quando a verificação com debounce ainda
        não terminou (contexto ausente com e-mail válido).
        """
        if self._resolver is None or session.flow_context is not None:
            return
        if not is_valid_email(session.form_data.email):
            return
        session.flow_context = self._resolver.resolve(session.form_data.email)

    def next(self, session: WizardSession) -> WizardTransition:
        step = session.step

        if step == LAST_STEP:
            return WizardTransition(session=session, moved=False, message="Inscription terminée")

        self._ensure_flow_context(session)
        if session.is_blocked:
            logger.info(
                f"Avanço bloqueado (e-mail de estudante existente): "
                f"session_id={session.session_id}, step={int(step)}"
            )
            return WizardTransition(
                session=session,
                moved=False,
                blocked=True,
                message="Cet email appartient déjà à un étudiant. Veuillez vous connecter.",
            )

        errors = self.validate_current_step(session)
        if errors:
            session.errors = errors
            logger.debug(
                f"Validação da etapa falhou: session_id={session.session_id}, "
                f"step={int(step)}, fields={sorted(errors)}"
            )
            return WizardTransition(
                session=session,
                moved=False,
                errors=errors,
                message="Veuillez corriger les champs indiqués",
            )
        session.errors = {}

        if step == WizardStep.DOCUMENTS:
            return self._submit(session)

        session.step = WizardStep(min(int(step) + 1, int(LAST_STEP)))
        logger.debug(
            f"Etapa avançada: session_id={session.session_id}, "
            f"{int(step)} -> {int(session.step)}"
        )
        return WizardTransition(session=session, moved=True)

    def prev(self, session: WizardSession) -> WizardTransition:
        step = session.step
        session.step = WizardStep(max(int(step) - 1, int(FIRST_STEP)))
        return WizardTransition(session=session, moved=session.step != step)

    def _submit(self, session: WizardSession) -> WizardTransition:
        previous = session.enrollment_result
        if previous is not None and previous.success and previous.student_number:
            # Já inscrito: volta à validação sem reenviar
            session.step = LAST_STEP
            return WizardTransition(session=session, moved=True)

        outcome = self._pipeline.submit(session)
        if outcome.success:
            session.reset_form()
            return WizardTransition(
                session=session,
                moved=True,
                message=f"Inscription réussie. Numéro étudiant : {outcome.result.student_number}",
                attempts=outcome.attempts,
            )

        return WizardTransition(
            session=session,
            moved=False,
            message=outcome.result.error or "L'inscription a échoué",
            blocked=outcome.failure_kind == FailureKind.EXISTING_STUDENT,
            failure_kind=outcome.failure_kind,
            attempts=outcome.attempts,
        )
