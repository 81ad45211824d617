import logging
import time
from uuid import uuid4
from fastapi import FastAPI, HTTPException, Header, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.concurrency import run_in_threadpool
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from sqlalchemy import text
from ..config import AppConfig
from ..core.engine import RegistrationEngine, SessionNotFoundError
from ..documents.composer import TemplateSection
from ..documents.service import DocumentService
from ..exams.conflicts import ExamConflictService
from ..infra.rpc_client import RpcClient, RpcError
from ..session.redis_session_manager import RedisSessionManager

logger = logging.getLogger(__name__)

GENERIC_ERROR_DETAIL = "Une erreur interne est survenue. Veuillez réessayer plus tard."


class FieldsUpdate(BaseModel):
    fields: Dict[str, Any]


class SectionPayload(BaseModel):
    id: str
    type: str = "content"
    name: str = ""
    content: str
    variables: List[str] = Field(default_factory=list)
    order: int = 0
    is_active: bool = True
    styles: Dict[str, str] = Field(default_factory=dict)

    def to_section(self) -> TemplateSection:
        return TemplateSection.from_dict(self.model_dump())


class PreviewRequest(BaseModel):
    sections: Optional[List[SectionPayload]] = None
    variables: Optional[Dict[str, Any]] = None
    document_type: Optional[str] = None
    wrap: bool = True


class PreviewResponse(BaseModel):
    html: str


class TemplateRequest(BaseModel):
    name: str
    sections: List[SectionPayload]
    id: Optional[str] = None
    description: Optional[str] = None
    document_type: Optional[str] = None
    is_active: bool = True
    is_default: bool = False


class TemplatePreviewRequest(BaseModel):
    variables: Optional[Dict[str, Any]] = None


class ConflictDetectionRequest(BaseModel):
    academic_year_id: Optional[str] = None


class ScheduleRequest(BaseModel):
    academic_year_id: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware que gera request_id único para cada requisição
    e adiciona aos logs e headers de resposta.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex[:16]
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Request processado: request_id={request_id}, "
            f"method={request.method}, path={request.url.path}, "
            f"status={response.status_code}, duration_ms={duration_ms:.2f}"
        )
        return response


def require_api_key(config: AppConfig, x_api_key: Optional[str]) -> None:
    """
    Valida API key baseado no ambiente.

    Em produção (ENV=prod), sempre exige API key.
    Em desenvolvimento (ENV=dev), só exige se API_KEY estiver configurada.
    """
    expected_key = config.api_key or ""

    if config.env == "prod":
        if not x_api_key or x_api_key != expected_key:
            logger.warning("Tentativa de acesso não autorizado em PRODUÇÃO")
            raise HTTPException(status_code=401, detail="Invalid API key")
    elif expected_key and expected_key.strip():
        if x_api_key != expected_key:
            logger.warning("Tentativa de acesso não autorizado em DEV")
            raise HTTPException(status_code=401, detail="Invalid API key")


def create_app(
    config: Optional[AppConfig] = None,
    engine: Optional[RegistrationEngine] = None,
) -> FastAPI:
    """
    Cria a aplicação FastAPI e injeta dependências principais (config + engine).
    """
    config = config or AppConfig.load_from_env()
    engine = engine or RegistrationEngine(config=config)
    documents = DocumentService(engine.db_session_factory, institution_name=config.institution_name)
    exams = ExamConflictService(RpcClient(config))

    app = FastAPI(
        title="Campus Registration API",
        version="0.1.0",
        description="Inscription des étudiants, modèles de documents et planification des examens.",
    )
    app.add_middleware(RequestIDMiddleware)

    def not_found(session_id: str) -> HTTPException:
        return HTTPException(status_code=404, detail=f"Session introuvable: {session_id}")

    def internal_error(request: Request, action: str, e: Exception) -> HTTPException:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            f"Erro ao {action}: request_id={request_id}, error={type(e).__name__}: {e}",
            exc_info=True,
        )
        return HTTPException(status_code=500, detail=GENERIC_ERROR_DETAIL)

    @app.get("/health")
    def health_check():
        """
        Endpoint de health check para monitoramento e Docker healthchecks.
        """
        db_ok = True
        try:
            with engine.db_session_factory() as db:
                db.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Database health check falhou: {e}")
            db_ok = False

        redis_status = "disabled"
        if isinstance(engine.sessions, RedisSessionManager):
            redis_status = "ok" if engine.sessions.ping() else "error"

        healthy = db_ok and redis_status != "error"
        return {
            "status": "healthy" if healthy else "degraded",
            "database": "ok" if db_ok else "error",
            "redis": redis_status,
        }

    @app.get("/registration/programs")
    def list_programs(request: Request):
        try:
            return engine.get_catalogue()
        except Exception as e:
            raise internal_error(request, "listar programas", e)

    @app.post("/registration/sessions")
    def create_session(
        request: Request,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ):
        require_api_key(config, x_api_key)
        try:
            return engine.create_session()
        except Exception as e:
            raise internal_error(request, "criar sessão", e)

    @app.get("/registration/sessions/{session_id}")
    def get_session(session_id: str):
        try:
            return engine.get_session(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)

    @app.patch("/registration/sessions/{session_id}/fields")
    async def update_fields(
        session_id: str,
        payload: FieldsUpdate,
        request: Request,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ):
        """
        Atualiza campos do formulário (no threadpool, o acesso à sessão é bloqueante).
        Mudança de e-mail agenda a verificação do contexto de fluxo (com debounce).
        """
        require_api_key(config, x_api_key)
        try:
            result = await run_in_threadpool(engine.update_fields, session_id, payload.fields)
            if "email" in payload.fields:
                engine.schedule_email_check(session_id, result["form_data"]["email"])
            return result
        except SessionNotFoundError:
            raise not_found(session_id)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except Exception as e:
            raise internal_error(request, "atualizar campos", e)

    @app.post("/registration/sessions/{session_id}/email-check")
    def check_email(
        session_id: str,
        request: Request,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ):
        require_api_key(config, x_api_key)
        try:
            return engine.check_email(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)
        except Exception as e:
            raise internal_error(request, "verificar e-mail", e)

    @app.post("/registration/sessions/{session_id}/next")
    def next_step(
        session_id: str,
        request: Request,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ):
        require_api_key(config, x_api_key)
        try:
            return engine.next_step(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)
        except Exception as e:
            raise internal_error(request, "avançar etapa", e)

    @app.post("/registration/sessions/{session_id}/prev")
    def prev_step(
        session_id: str,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ):
        require_api_key(config, x_api_key)
        try:
            return engine.prev_step(session_id)
        except SessionNotFoundError:
            raise not_found(session_id)

    @app.post("/documents/preview", response_model=PreviewResponse)
    def preview_document(payload: PreviewRequest) -> PreviewResponse:
        try:
            sections = [s.to_section() for s in payload.sections] if payload.sections is not None else None
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        html = documents.preview(
            sections=sections,
            variables=payload.variables,
            document_type=payload.document_type,
            wrap=payload.wrap,
        )
        return PreviewResponse(html=html)

    @app.post("/documents/templates")
    def save_template(
        payload: TemplateRequest,
        request: Request,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ):
        require_api_key(config, x_api_key)
        try:
            return documents.save_template(
                name=payload.name,
                sections=[s.to_section() for s in payload.sections],
                template_id=payload.id,
                description=payload.description,
                document_type=payload.document_type,
                is_active=payload.is_active,
                is_default=payload.is_default,
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except Exception as e:
            raise internal_error(request, "salvar template", e)

    @app.get("/documents/templates/{template_id}")
    def get_template(template_id: str):
        template = documents.get_template(template_id)
        if template is None:
            raise HTTPException(status_code=404, detail="Modèle introuvable")
        return template

    @app.post("/documents/templates/{template_id}/preview", response_model=PreviewResponse)
    def preview_template(template_id: str, payload: TemplatePreviewRequest) -> PreviewResponse:
        html = documents.preview_template(template_id, payload.variables)
        if html is None:
            raise HTTPException(status_code=404, detail="Modèle introuvable")
        return PreviewResponse(html=html)

    @app.post("/exams/conflicts/detect")
    def detect_conflicts(payload: ConflictDetectionRequest):
        return exams.detect(payload.academic_year_id).to_dict()

    @app.post("/exams/schedule")
    def generate_schedule(
        payload: ScheduleRequest,
        x_api_key: Optional[str] = Header(default=None, alias="X-API-KEY"),
    ):
        require_api_key(config, x_api_key)
        try:
            return {"schedule": exams.generate_schedule(payload.academic_year_id, payload.parameters)}
        except RpcError as e:
            logger.error(f"Falha ao gerar calendário: academic_year_id={payload.academic_year_id}, error={e}")
            raise HTTPException(status_code=502, detail="Impossible de générer le planning des examens")

    return app
