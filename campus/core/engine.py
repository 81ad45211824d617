import logging
import threading
from contextlib import contextmanager
from typing import Dict, Any, Iterator, Optional
from ..config import AppConfig
from ..infra.email_service import EmailService
from ..infra.enrollment_backend import DatabaseEnrollmentBackend, RpcEnrollmentBackend
from ..infra.rpc_client import RpcClient
from ..session.redis_session_manager import RedisSessionManager
from ..storage.database import create_session_factory, session_scope
from ..storage.repository import ProgramRepository
from .enrollment_pipeline import EnrollmentPipeline
from .flow_context import FlowContextResolver, DebouncedEmailChecker, mask_email
from .registration_state import UserFlowContext
from .session_manager import InMemorySessionManager, WizardSession
from .wizard import WizardController, WizardTransition

logger = logging.getLogger(__name__)


SESSION_LOCK_STRIPES = 64


class SessionNotFoundError(LookupError):
    pass


class RegistrationEngine:
    """
    Núcleo lógico da inscrição.

    - Guarda as sessões do assistente (Redis ou memória)
    - Resolve o contexto de fluxo a partir do e-mail
    - Conduz as etapas via WizardController
    - Submete a inscrição via EnrollmentPipeline
    """

    def __init__(self, config: AppConfig, db_session_factory=None, backend=None, sleep=None) -> None:
        self._config = config

        if config.redis_url and config.redis_url.strip():
            try:
                self._sessions = RedisSessionManager(
                    redis_url=config.redis_url,
                    session_ttl_seconds=config.session_ttl_seconds,
                )
                logger.info(f"Sessões usando Redis: url={config.redis_url}")
            except Exception as e:
                logger.error(f"Erro ao inicializar RedisSessionManager: {e}, usando InMemory como fallback")
                self._sessions = InMemorySessionManager()
        else:
            self._sessions = InMemorySessionManager()
            logger.info("Sessões usando armazenamento em memória (REDIS_URL não configurado)")

        if db_session_factory is None:
            # Em produção, não criar tabelas automaticamente (usar Alembic)
            db_session_factory = create_session_factory(
                config.database_url, create_tables=config.env == "dev"
            )
        self._db_session_factory = db_session_factory

        if backend is None:
            if config.enrollment_backend == "rpc":
                backend = RpcEnrollmentBackend(RpcClient(config))
            else:
                backend = DatabaseEnrollmentBackend(db_session_factory)
        self._backend = backend

        pipeline_kwargs = {"sleep": sleep} if sleep is not None else {}
        self._pipeline = EnrollmentPipeline(
            config, backend, email_service=EmailService(config), **pipeline_kwargs
        )
        self._resolver = FlowContextResolver(backend)
        self._wizard = WizardController(
            self._pipeline,
            program_departments=self._program_departments,
            resolver=self._resolver,
        )
        self._email_checkers: Dict[str, DebouncedEmailChecker] = {}
        self._session_locks = [threading.Lock() for _ in range(SESSION_LOCK_STRIPES)]

        db_type = "sqlite" if "sqlite" in config.database_url else "postgres" if "postgres" in config.database_url else "unknown"
        logger.info(
            f"RegistrationEngine inicializado: database_type={db_type}, "
            f"backend={config.enrollment_backend}, max_retries={config.enrollment_max_retries}"
        )

    @property
    def db_session_factory(self):
        return self._db_session_factory

    @property
    def sessions(self):
        return self._sessions

    def _program_departments(self) -> Optional[Dict[str, str]]:
        # O catálogo só é conhecido localmente com o backend de banco
        if not isinstance(self._backend, DatabaseEnrollmentBackend):
            return None
        with session_scope(self._db_session_factory) as db:
            return ProgramRepository(db).program_departments()

    @contextmanager
    def _locked(self, session_id: str) -> Iterator[None]:
        """
        Serializa o ciclo carregar-alterar-gravar de uma sessão entre o
        threadpool dos endpoints e os callbacks da verificação de e-mail.
        """
        lock = self._session_locks[hash(session_id) % SESSION_LOCK_STRIPES]
        with lock:
            yield

    def _load(self, session_id: str) -> WizardSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _snapshot(self, session: WizardSession, transition: Optional[WizardTransition] = None) -> Dict[str, Any]:
        data = session.to_dict()
        data["is_blocked"] = session.is_blocked
        if transition is not None:
            data["transition"] = {
                "moved": transition.moved,
                "message": transition.message,
                "errors": transition.errors,
                "blocked": transition.blocked,
                "failure_kind": transition.failure_kind.value if transition.failure_kind else None,
                "attempts": transition.attempts,
            }
        return data

    @property
    def pending_email_checks(self) -> int:
        return len(self._email_checkers)

    def create_session(self) -> Dict[str, Any]:
        session = self._sessions.create()
        logger.info(f"Sessão de inscrição criada: session_id={session.session_id}")
        return self._snapshot(session)

    def get_session(self, session_id: str) -> Dict[str, Any]:
        return self._snapshot(self._load(session_id))

    def update_fields(self, session_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Raises:
            SessionNotFoundError: Sessão inexistente
            ValueError: Campo desconhecido
        """
        with self._locked(session_id):
            session = self._load(session_id)
            errors = self._wizard.update_fields(session, updates)
            self._sessions.save_session(session)
        logger.debug(
            f"Campos atualizados: session_id={session_id}, fields={sorted(updates)}, "
            f"errors={sorted(errors)}"
        )
        return self._snapshot(session)

    def apply_flow_context(self, session_id: str, context: Optional[UserFlowContext]) -> None:
        with self._locked(session_id):
            session = self._sessions.get(session_id)
            if session is None:
                self._email_checkers.pop(session_id, None)
                logger.debug(f"Contexto descartado, sessão expirada: session_id={session_id}")
                return
            self._wizard.set_flow_context(session, context)
            self._sessions.save_session(session)

    def _release_checker(self, session_id: str, checker: DebouncedEmailChecker) -> None:
        if self._email_checkers.get(session_id) is checker and not checker.pending:
            self._email_checkers.pop(session_id, None)

    def schedule_email_check(self, session_id: str, email: Optional[str]) -> None:
        """
        Agenda a verificação do e-mail com debounce.
        Precisa ser chamado dentro do event loop (endpoint async); não faz I/O.
        """
        checker = self._email_checkers.get(session_id)
        if checker is None:
            checker = DebouncedEmailChecker(self._resolver, self._config.email_check_debounce_ms)
            self._email_checkers[session_id] = checker
        task = checker.schedule(
            email,
            lambda context: self.apply_flow_context(session_id, context),
        )
        task.add_done_callback(lambda _task: self._release_checker(session_id, checker))

    def check_email(self, session_id: str) -> Dict[str, Any]:
        """
        Resolve o contexto imediatamente, sem debounce.
        """
        checker = self._email_checkers.pop(session_id, None)
        if checker is not None:
            checker.cancel()

        with self._locked(session_id):
            session = self._load(session_id)
            context = self._resolver.resolve(session.form_data.email)
            self._wizard.set_flow_context(session, context)
            self._sessions.save_session(session)
        logger.info(
            f"Verificação de e-mail: session_id={session_id}, "
            f"email={mask_email(session.form_data.email)}, "
            f"flow_type={context.flow_type.value if context else None}"
        )
        return self._snapshot(session)

    def next_step(self, session_id: str) -> Dict[str, Any]:
        with self._locked(session_id):
            session = self._load(session_id)
            transition = self._wizard.next(session)
            self._sessions.save_session(session)
        if transition.moved and session.enrollment_result and session.enrollment_result.success:
            checker = self._email_checkers.pop(session_id, None)
            if checker is not None:
                checker.cancel()
        return self._snapshot(session, transition)

    def prev_step(self, session_id: str) -> Dict[str, Any]:
        with self._locked(session_id):
            session = self._load(session_id)
            transition = self._wizard.prev(session)
            self._sessions.save_session(session)
        return self._snapshot(session, transition)

    def get_catalogue(self) -> Dict[str, Any]:
        with session_scope(self._db_session_factory) as db:
            repo = ProgramRepository(db)
            return {
                "departments": [
                    {"id": d.id, "name": d.name, "code": d.code} for d in repo.list_departments()
                ],
                "programs": [
                    {
                        "id": p.id,
                        "department_id": p.department_id,
                        "name": p.name,
                        "code": p.code,
                        "duration_years": p.duration_years,
                    }
                    for p in repo.list_programs()
                ],
            }
