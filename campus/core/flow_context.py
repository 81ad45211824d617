"""
Resolução do contexto de fluxo da inscrição a partir do e-mail.
"""
import asyncio
import threading
import logging
from typing import Callable, Optional, Protocol

from .registration_state import EmailCheckResult, FlowType, UserFlowContext
from .validators import is_valid_email, normalize_email

logger = logging.getLogger(__name__)


NEXT_ACTION_REQUIRE_LOGIN = "require login"
NEXT_ACTION_CONVERT_PROFILE = "convert profile to student"
NEXT_ACTION_CREATE_ACCOUNT = "create new account"


class EmailExistenceChecker(Protocol):
    def check_email(self, email: str) -> EmailCheckResult:
        ...


def mask_email(email: Optional[str]) -> str:
    """
    Mascara o e-mail para logs.
    Ex: "jean.dupont@ecole.fr" -> "je****@ecole.fr"
    """
    if not email or "@" not in email:
        return "****"
    local, domain = email.split("@", 1)
    return f"{local[:2]}****@{domain}"


def build_flow_context(check: EmailCheckResult) -> UserFlowContext:
    """
    Classifica o resultado da verificação de e-mail em um dos três fluxos.
    Bloqueado se e somente se o e-mail já pertence a um estudante.
    """
    if check.is_student:
        return UserFlowContext(
            flow_type=FlowType.EXISTING_STUDENT,
            is_blocked=True,
            next_action=NEXT_ACTION_REQUIRE_LOGIN,
            recommendations=[
                "Cet email est déjà associé à un compte étudiant",
                "Connectez-vous avec votre compte existant",
                "Contactez la scolarité si vous pensez qu'il s'agit d'une erreur",
            ],
            email_check_result=check,
        )
    if check.has_profile:
        return UserFlowContext(
            flow_type=FlowType.EXISTING_USER_CONVERSION,
            is_blocked=False,
            next_action=NEXT_ACTION_CONVERT_PROFILE,
            recommendations=[
                "Un profil existe déjà pour cet email",
                "Il sera converti en profil étudiant lors de l'inscription",
            ],
            email_check_result=check,
        )
    return UserFlowContext(
        flow_type=FlowType.NEW_USER,
        is_blocked=False,
        next_action=NEXT_ACTION_CREATE_ACCOUNT,
        recommendations=[
            "Un nouveau compte sera créé",
            "Un email de confirmation vous sera envoyé",
        ],
        email_check_result=check,
    )


class FlowContextResolver:
    """
    Consulta o colaborador de existência de e-mail e deriva o contexto.
    Sem retry: qualquer falha vira contexto None (equivalente a "ocioso").
    """

    def __init__(self, checker: EmailExistenceChecker) -> None:
        self._checker = checker

    def resolve(self, email: Optional[str]) -> Optional[UserFlowContext]:
        if not is_valid_email(email):
            return None

        email = normalize_email(email)
        try:
            check = self._checker.check_email(email)
        except Exception as e:
            logger.warning(
                f"Falha na verificação de e-mail: email={mask_email(email)}, "
                f"error={type(e).__name__}: {e}"
            )
            return None

        context = build_flow_context(check)
        logger.info(
            f"Contexto de fluxo resolvido: email={mask_email(email)}, "
            f"flow_type={context.flow_type.value}, blocked={context.is_blocked}"
        )
        return context


class DebouncedEmailChecker:
    """
    Agenda a resolução do contexto após um período de inatividade.

    Cada novo agendamento cancela o anterior; um resultado que chega depois
    de ter sido superado (contador de geração) é descartado.
    O callback recebe None enquanto a verificação está em andamento e em caso de erro.
    O callback roda fora do event loop (thread do executor), pois costuma gravar a sessão.
    """

    def __init__(self, resolver: FlowContextResolver, debounce_ms: int = 800) -> None:
        self._resolver = resolver
        self._delay_seconds = debounce_ms / 1000.0
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def generation(self) -> int:
        return self._generation

    def schedule(
        self,
        email: Optional[str],
        on_context: Callable[[Optional[UserFlowContext]], None],
    ) -> asyncio.Task:
        """
        Deve ser chamado de dentro de um event loop em execução.
        """
        if self.pending:
            self._task.cancel()
        self._generation += 1
        self._task = asyncio.ensure_future(self._run(email, self._generation, on_context))
        return self._task

    def cancel(self) -> None:
        """
        Pode ser chamado de qualquer thread. Ao retornar, nenhum resultado
        anterior será mais entregue ao callback.
        """
        with self._lock:
            self._generation += 1
        task = self._task
        if task is not None and not task.done():
            task.get_loop().call_soon_threadsafe(task.cancel)

    def _deliver(
        self,
        generation: int,
        on_context: Callable[[Optional[UserFlowContext]], None],
        context: Optional[UserFlowContext],
    ) -> None:
        with self._lock:
            if generation != self._generation:
                return
            on_context(context)

    async def _run(
        self,
        email: Optional[str],
        generation: int,
        on_context: Callable[[Optional[UserFlowContext]], None],
    ) -> None:
        await asyncio.sleep(self._delay_seconds)

        if not is_valid_email(email):
            await asyncio.to_thread(self._deliver, generation, on_context, None)
            return

        await asyncio.to_thread(self._deliver, generation, on_context, None)
        context = await asyncio.to_thread(self._resolver.resolve, email)

        if generation != self._generation:
            logger.debug(
                f"Resultado de verificação descartado (superado): email={mask_email(email)}"
            )
            return
        await asyncio.to_thread(self._deliver, generation, on_context, context)
