import logging
import time
from enum import Enum
from dataclasses import dataclass
from typing import Callable, Optional
from ..config import AppConfig
from ..infra.email_service import EmailService
from .flow_context import mask_email
from .registration_state import (
    EnrollmentRequest,
    EnrollmentResult,
    WizardStep,
    ERROR_CODE_SYNCHRONISATION,
)
from .session_manager import WizardSession

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    EXISTING_STUDENT = "existing_student"
    SYNCHRONISATION = "synchronisation"
    GENERIC = "generic"


@dataclass
class SubmissionOutcome:
    """
    Resultado de uma submissão (incluindo retries automáticos).
    """
    result: EnrollmentResult
    attempts: int
    failure_kind: Optional[FailureKind] = None

    @property
    def success(self) -> bool:
        return self.failure_kind is None


def is_successful(result: EnrollmentResult) -> bool:
    return bool(result.success and result.student_number)


class EnrollmentPipeline:
    """
    Envia o formulário ao colaborador de auto-inscrição.

    Retry fixo (sem backoff) apenas para erros de sincronização:
    no máximo enrollment_max_retries reenvios, com enrollment_retry_delay_ms entre eles.
    """

    def __init__(
        self,
        config: AppConfig,
        backend,
        email_service: Optional[EmailService] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._backend = backend
        self._email_service = email_service
        self._sleep = sleep
        self._max_retries = config.enrollment_max_retries
        self._retry_delay_seconds = config.enrollment_retry_delay_ms / 1000.0
        self._sync_error_marker = config.sync_error_marker.lower()

    def classify_failure(self, session: WizardSession, result: EnrollmentResult) -> FailureKind:
        """
        Classifica a falha. O error_code estruturado tem precedência;
        sem ele, cai no casamento de substring da mensagem.
        """
        check = session.flow_context.email_check_result if session.flow_context else None
        if result.is_existing_user and check is not None and check.is_student:
            return FailureKind.EXISTING_STUDENT

        if result.error_code:
            if result.error_code == ERROR_CODE_SYNCHRONISATION:
                return FailureKind.SYNCHRONISATION
            return FailureKind.GENERIC

        if self._sync_error_marker and self._sync_error_marker in (result.error or "").lower():
            return FailureKind.SYNCHRONISATION
        return FailureKind.GENERIC

    def _build_request(self, session: WizardSession, retry: bool) -> EnrollmentRequest:
        data = session.form_data
        return EnrollmentRequest(
            email=data.email or "",
            full_name=data.full_name,
            program_id=str(data.program_id or ""),
            year_level=int(data.year_level or 0),
            retry=retry,
        )

    def _call_backend(self, request: EnrollmentRequest) -> EnrollmentResult:
        try:
            return self._backend.auto_enroll(request)
        except Exception as e:
            logger.error(
                f"Erro inesperado na auto-inscrição: email={mask_email(request.email)}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True,
            )
            return EnrollmentResult(
                success=False,
                error="Une erreur inattendue est survenue, veuillez réessayer",
            )

    def _send_welcome(self, session: WizardSession, result: EnrollmentResult) -> None:
        if self._email_service is None:
            return
        try:
            self._email_service.send_welcome(
                to_email=session.form_data.email or "",
                full_name=session.form_data.full_name,
                student_number=result.student_number,
            )
        except Exception as e:
            # A inscrição já foi persistida; só registra a falha
            logger.error(
                f"Falha ao enviar e-mail de boas-vindas: student_number={result.student_number}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True,
            )

    def submit(self, session: WizardSession) -> SubmissionOutcome:
        """
        Submete a inscrição da sessão, reenviando automaticamente em erro de sincronização.

        Sucesso: guarda o resultado, vai para a etapa 4 e zera o contador.
        Falha terminal: guarda o resultado e mantém a etapa.
        """
        session.retry_count = 0
        attempts = 0

        while True:
            attempts += 1
            request = self._build_request(session, retry=attempts > 1)
            logger.info(
                f"Submetendo inscrição: session_id={session.session_id}, "
                f"email={mask_email(request.email)}, attempt={attempts}"
            )
            result = self._call_backend(request)

            if is_successful(result):
                session.enrollment_result = result
                session.step = WizardStep.VALIDATION
                session.retry_count = 0
                session.errors = {}
                logger.info(
                    f"Inscrição concluída: session_id={session.session_id}, "
                    f"student_number={result.student_number}, attempts={attempts}"
                )
                self._send_welcome(session, result)
                return SubmissionOutcome(result=result, attempts=attempts)

            kind = self.classify_failure(session, result)
            if kind == FailureKind.SYNCHRONISATION and session.retry_count < self._max_retries:
                session.retry_count += 1
                logger.warning(
                    f"Erro de sincronização, novo envio em {self._retry_delay_seconds:.1f}s: "
                    f"session_id={session.session_id}, "
                    f"retry={session.retry_count}/{self._max_retries}"
                )
                self._sleep(self._retry_delay_seconds)
                continue

            session.enrollment_result = result
            logger.warning(
                f"Inscrição falhou: session_id={session.session_id}, kind={kind.value}, "
                f"attempts={attempts}, error={result.error}"
            )
            return SubmissionOutcome(result=result, attempts=attempts, failure_kind=kind)
