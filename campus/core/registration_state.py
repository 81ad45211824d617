from enum import Enum, IntEnum
from dataclasses import dataclass, field, fields
from typing import Optional, List, Dict, Any


class WizardStep(IntEnum):
    """
    Etapas do assistente de inscrição (sequência linear fixa).
    """
    PERSONAL_INFO = 1
    PROGRAM_SELECTION = 2
    DOCUMENTS = 3
    VALIDATION = 4


FIRST_STEP = WizardStep.PERSONAL_INFO
LAST_STEP = WizardStep.VALIDATION

# Códigos de erro do contrato de auto-inscrição
ERROR_CODE_SYNCHRONISATION = "synchronisation"
ERROR_CODE_EXISTING_STUDENT = "existing_student"
ERROR_CODE_INVALID_PROGRAM = "invalid_program"
ERROR_CODE_INVALID_REQUEST = "invalid_request"


class FlowType(str, Enum):
    """
    Classificação da tentativa de inscrição a partir do e-mail informado.
    """
    NEW_USER = "new_user"
    EXISTING_USER_CONVERSION = "existing_user_conversion"
    EXISTING_STUDENT = "existing_student"


@dataclass
class RegistrationFormData:
    """
    Dados coletados pelo assistente de inscrição.
    """
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[str] = None
    address: Optional[str] = None
    department_id: Optional[str] = None
    program_id: Optional[str] = None
    year_level: Optional[int] = None
    specialization: Optional[str] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.field_names()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistrationFormData":
        known = set(cls.field_names())
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class EmailCheckResult:
    """
    Resposta do colaborador de verificação de e-mail.
    """
    has_profile: bool
    is_student: bool
    profile_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_profile": self.has_profile,
            "is_student": self.is_student,
            "profile_data": self.profile_data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmailCheckResult":
        return cls(
            has_profile=bool(data.get("has_profile")),
            is_student=bool(data.get("is_student")),
            profile_data=data.get("profile_data"),
        )


@dataclass
class UserFlowContext:
    """
    Contexto derivado (nunca persistido no banco) do fluxo de inscrição.
    Recalculado a cada verificação de e-mail, substituindo o anterior.
    """
    flow_type: FlowType
    is_blocked: bool
    next_action: str
    recommendations: List[str] = field(default_factory=list)
    email_check_result: Optional[EmailCheckResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow_type": self.flow_type.value,
            "is_blocked": self.is_blocked,
            "next_action": self.next_action,
            "recommendations": list(self.recommendations),
            "email_check_result": (
                self.email_check_result.to_dict() if self.email_check_result else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserFlowContext":
        check = data.get("email_check_result")
        return cls(
            flow_type=FlowType(data["flow_type"]),
            is_blocked=bool(data["is_blocked"]),
            next_action=data["next_action"],
            recommendations=list(data.get("recommendations") or []),
            email_check_result=EmailCheckResult.from_dict(check) if check else None,
        )


@dataclass
class EnrollmentRequest:
    """
    Payload enviado ao colaborador de auto-inscrição.
    """
    email: str
    full_name: str
    program_id: str
    year_level: int
    retry: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "full_name": self.full_name,
            "program_id": self.program_id,
            "year_level": self.year_level,
            "retry": self.retry,
        }


@dataclass
class EnrollmentResult:
    """
    Resultado terminal do pipeline de inscrição.

    error_code é o contrato estruturado do backend
    ("synchronisation", "existing_student", "invalid_program", ...).
    """
    success: bool
    student_number: Optional[str] = None
    error: Optional[str] = None
    is_existing_user: Optional[bool] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "student_number": self.student_number,
            "error": self.error,
            "is_existing_user": self.is_existing_user,
            "error_code": self.error_code,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnrollmentResult":
        return cls(
            success=bool(data.get("success")),
            student_number=data.get("student_number"),
            error=data.get("error"),
            is_existing_user=data.get("is_existing_user"),
            error_code=data.get("error_code"),
        )
