"""
Colaboradores de inscrição: verificação de e-mail e auto-inscrição.

DatabaseEnrollmentBackend fala direto com as tabelas; RpcEnrollmentBackend
chama os procedimentos remotos equivalentes do backend hospedado.
"""
import logging
from datetime import datetime
from typing import Optional, Protocol, Any, Dict
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import IntegrityError
from ..core.registration_state import (
    EmailCheckResult,
    EnrollmentRequest,
    EnrollmentResult,
    ERROR_CODE_SYNCHRONISATION,
    ERROR_CODE_EXISTING_STUDENT,
    ERROR_CODE_INVALID_PROGRAM,
    ERROR_CODE_INVALID_REQUEST,
)
from ..core.validators import is_valid_email, normalize_email
from ..storage.database import session_scope
from ..storage.repository import ProfileRepository, StudentRepository, ProgramRepository
from .rpc_client import RpcClient

logger = logging.getLogger(__name__)


class EnrollmentBackend(Protocol):
    def check_email(self, email: str) -> EmailCheckResult:
        ...

    def auto_enroll(self, request: EnrollmentRequest) -> EnrollmentResult:
        ...


def student_number_prefix(program_code: str, year: int) -> str:
    return f"{program_code}{str(year)[-2:]}"


class DatabaseEnrollmentBackend:
    """
    Implementação local do contrato de inscrição sobre o banco SQLAlchemy.
    """

    def __init__(self, db_session_factory: sessionmaker) -> None:
        self._db_session_factory = db_session_factory

    def check_email(self, email: str) -> EmailCheckResult:
        with session_scope(self._db_session_factory) as db:
            profile = ProfileRepository(db).find_by_email(email)
            if profile is None:
                return EmailCheckResult(has_profile=False, is_student=False)

            student = StudentRepository(db).find_by_profile_id(profile.id)
            return EmailCheckResult(
                has_profile=True,
                is_student=student is not None,
                profile_data={
                    "id": profile.id,
                    "full_name": profile.full_name,
                    "role": profile.role,
                },
            )

    def _next_student_number(self, students: StudentRepository, program_code: str) -> str:
        prefix = student_number_prefix(program_code, datetime.utcnow().year)
        sequence = students.count_with_number_prefix(prefix) + 1
        return f"{prefix}{sequence:03d}"

    def auto_enroll(self, request: EnrollmentRequest) -> EnrollmentResult:
        """
        Converte um perfil existente ou cria um novo e registra o estudante.

        Dois envios simultâneos podem gerar o mesmo número de estudante; a
        violação de unicidade é devolvida como erro de sincronização para o
        pipeline reenviar.
        """
        if not is_valid_email(request.email) or not request.full_name.strip():
            return EnrollmentResult(
                success=False,
                error="Données d'inscription incomplètes",
                error_code=ERROR_CODE_INVALID_REQUEST,
            )

        email = normalize_email(request.email)
        with session_scope(self._db_session_factory) as db:
            profiles = ProfileRepository(db)
            students = StudentRepository(db)

            program = ProgramRepository(db).get(request.program_id)
            if program is None:
                return EnrollmentResult(
                    success=False,
                    error="Programme invalide",
                    error_code=ERROR_CODE_INVALID_PROGRAM,
                )

            profile = profiles.find_by_email(email)
            is_existing_user = profile is not None

            if profile is not None and students.find_by_profile_id(profile.id):
                logger.warning(f"Auto-inscrição recusada: perfil já é estudante, profile_id={profile.id}")
                return EnrollmentResult(
                    success=False,
                    error="Cet email est déjà associé à un étudiant",
                    is_existing_user=True,
                    error_code=ERROR_CODE_EXISTING_STUDENT,
                )

            if profile is None:
                profile = profiles.create_profile(email=email, full_name=request.full_name)
            else:
                profiles.convert_to_student(profile, full_name=request.full_name)

            student_number = self._next_student_number(students, program.code)
            try:
                students.create_student(
                    profile_id=profile.id,
                    student_number=student_number,
                    program_id=program.id,
                    year_level=request.year_level,
                )
            except IntegrityError:
                logger.warning(
                    f"Colisão ao gerar número de estudante: number={student_number}, "
                    f"retry={request.retry}"
                )
                return EnrollmentResult(
                    success=False,
                    error="Erreur de synchronisation lors de la génération du numéro étudiant",
                    is_existing_user=is_existing_user,
                    error_code=ERROR_CODE_SYNCHRONISATION,
                )

            logger.info(
                f"Estudante inscrito: number={student_number}, program={program.code}, "
                f"existing_user={is_existing_user}"
            )
            return EnrollmentResult(
                success=True,
                student_number=student_number,
                is_existing_user=is_existing_user,
            )


class RpcEnrollmentBackend:
    """
    Mesmo contrato, delegado aos procedimentos remotos
    check_email_exists e auto_enroll_student.
    """

    def __init__(self, rpc_client: RpcClient) -> None:
        self._rpc = rpc_client

    def check_email(self, email: str) -> EmailCheckResult:
        data: Dict[str, Any] = self._rpc.call("check_email_exists", {"p_email": email}) or {}
        return EmailCheckResult(
            has_profile=bool(data.get("has_profile")),
            is_student=bool(data.get("is_student")),
            profile_data=data.get("profile_data"),
        )

    def auto_enroll(self, request: EnrollmentRequest) -> EnrollmentResult:
        data: Optional[Dict[str, Any]] = self._rpc.call(
            "auto_enroll_student",
            {
                "p_email": request.email,
                "p_full_name": request.full_name,
                "p_program_id": request.program_id,
                "p_year_level": request.year_level,
                "p_is_retry": request.retry,
            },
        )
        if not data:
            return EnrollmentResult(success=False, error="Réponse vide du serveur")
        return EnrollmentResult(
            success=bool(data.get("success")),
            student_number=data.get("student_number"),
            error=data.get("error"),
            is_existing_user=data.get("is_existing_user"),
            error_code=data.get("error_code"),
        )
