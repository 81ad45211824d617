import logging
from datetime import datetime
from typing import Dict, Optional, Any
from dataclasses import dataclass, field
from uuid import uuid4

from .registration_state import (
    WizardStep,
    RegistrationFormData,
    UserFlowContext,
    EnrollmentResult,
)

logger = logging.getLogger(__name__)


@dataclass
class WizardSession:
    """
    Estado explícito de uma inscrição em andamento.
    Passado por referência ao controlador e ao pipeline.
    """
    session_id: str
    step: WizardStep = WizardStep.PERSONAL_INFO
    form_data: RegistrationFormData = field(default_factory=RegistrationFormData)
    flow_context: Optional[UserFlowContext] = None
    enrollment_result: Optional[EnrollmentResult] = None
    retry_count: int = 0
    errors: Dict[str, str] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def is_blocked(self) -> bool:
        return bool(self.flow_context and self.flow_context.is_blocked)

    def reset_form(self) -> None:
        """
        Descarta os dados do formulário após inscrição bem-sucedida.
        """
        self.form_data = RegistrationFormData()
        self.errors = {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "step": int(self.step),
            "form_data": self.form_data.to_dict(),
            "flow_context": self.flow_context.to_dict() if self.flow_context else None,
            "enrollment_result": (
                self.enrollment_result.to_dict() if self.enrollment_result else None
            ),
            "retry_count": self.retry_count,
            "errors": dict(self.errors),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WizardSession":
        flow_context = data.get("flow_context")
        enrollment_result = data.get("enrollment_result")
        return cls(
            session_id=data["session_id"],
            step=WizardStep(data.get("step", 1)),
            form_data=RegistrationFormData.from_dict(data.get("form_data") or {}),
            flow_context=UserFlowContext.from_dict(flow_context) if flow_context else None,
            enrollment_result=(
                EnrollmentResult.from_dict(enrollment_result) if enrollment_result else None
            ),
            retry_count=int(data.get("retry_count", 0)),
            errors=dict(data.get("errors") or {}),
            created_at=data.get("created_at") or datetime.utcnow().isoformat(),
        )


def new_session_id() -> str:
    return uuid4().hex


class InMemorySessionManager:
    """
    Gerenciador simples de sessões do assistente em memória.
    Em produção, configure REDIS_URL para usar RedisSessionManager.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, WizardSession] = {}

    def create(self) -> WizardSession:
        session = WizardSession(session_id=new_session_id())
        self._sessions[session.session_id] = session
        logger.debug(f"Nova WizardSession criada: session_id={session.session_id}")
        return session

    def get(self, session_id: str) -> Optional[WizardSession]:
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug(f"WizardSession não encontrada: session_id={session_id}")
        return session

    def save_session(self, session: WizardSession) -> None:
        self._sessions[session.session_id] = session

    def clear_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
