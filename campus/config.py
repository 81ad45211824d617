from dataclasses import dataclass
import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfig:
    """
    Configurações principais da aplicação.

    Centraliza parâmetros críticos (banco, sessões, SMTP, backend de
    inscrição e política de retry) para facilitar revisão e testes.
    """
    database_url: str = "sqlite:///./campus.db"
    redis_url: str = ""
    session_ttl_seconds: int = 86400  # 1 dia
    smtp_host: str = "dev-log"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "scolarite@campus.example"
    api_key: str = ""
    env: str = "dev"  # "dev" ou "prod"
    institution_name: str = "Mon École"
    enrollment_backend: str = "database"  # "database" ou "rpc"
    rpc_base_url: str = ""
    rpc_api_key: str = ""
    rpc_timeout_ms: int = 10000
    email_check_debounce_ms: int = 800  # janela de inatividade antes de consultar o e-mail
    enrollment_max_retries: int = 2  # retries automáticos em erro de sincronização
    enrollment_retry_delay_ms: int = 3000  # delay fixo entre tentativas
    sync_error_marker: str = "synchronisation"  # fallback quando o backend não manda error_code

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """
        Carrega configuração a partir de variáveis de ambiente.
        Primeiro tenta carregar do arquivo .env, depois do ambiente do sistema.
        Levanta erro explícito se algo crítico faltar.
        """
        load_dotenv()

        database_url = os.getenv("DATABASE_URL", "sqlite:///./campus.db")
        redis_url = os.getenv("REDIS_URL", "")
        session_ttl_seconds = int(os.getenv("SESSION_TTL_SECONDS", "86400"))
        smtp_host = os.getenv("SMTP_HOST", "dev-log")
        smtp_port = int(os.getenv("SMTP_PORT", "587"))
        smtp_user = os.getenv("SMTP_USER", "")
        smtp_password = os.getenv("SMTP_PASSWORD", "")
        smtp_from = os.getenv("SMTP_FROM", "scolarite@campus.example")
        api_key = os.getenv("API_KEY", "")
        institution_name = os.getenv("INSTITUTION_NAME", "Mon École")

        env = os.getenv("ENV", "dev").lower()
        if env not in ("dev", "prod"):
            logger.warning(f"ENV inválido '{env}', usando 'dev' como padrão")
            env = "dev"

        # Em produção, API_KEY é obrigatória
        if env == "prod":
            if not api_key or not api_key.strip():
                raise RuntimeError(
                    "ENV=prod requer API_KEY definida. "
                    "Configure API_KEY no ambiente de produção."
                )
            logger.info("Modo PRODUÇÃO: API_KEY validada")
        elif not api_key or not api_key.strip():
            logger.warning(
                "⚠️  MODO DEV: API_KEY não configurada. "
                "Endpoints de escrita aceitarão requisições sem autenticação."
            )

        enrollment_backend = os.getenv("ENROLLMENT_BACKEND", "database").lower()
        if enrollment_backend not in ("database", "rpc"):
            logger.warning(
                f"ENROLLMENT_BACKEND inválido '{enrollment_backend}', usando 'database'"
            )
            enrollment_backend = "database"

        rpc_base_url = os.getenv("RPC_BASE_URL", "")
        rpc_api_key = os.getenv("RPC_API_KEY", "")
        if enrollment_backend == "rpc" and not rpc_base_url.strip():
            raise RuntimeError("ENROLLMENT_BACKEND=rpc requer RPC_BASE_URL definida.")
        rpc_timeout_ms = int(os.getenv("RPC_TIMEOUT_MS", "10000"))

        # Debounce fica entre 800ms e 1000ms
        email_check_debounce_ms = int(os.getenv("EMAIL_CHECK_DEBOUNCE_MS", "800"))
        clamped = min(max(email_check_debounce_ms, 800), 1000)
        if clamped != email_check_debounce_ms:
            logger.warning(
                f"EMAIL_CHECK_DEBOUNCE_MS={email_check_debounce_ms} fora do intervalo, usando {clamped}"
            )
            email_check_debounce_ms = clamped

        enrollment_max_retries = int(os.getenv("ENROLLMENT_MAX_RETRIES", "2"))
        enrollment_retry_delay_ms = int(os.getenv("ENROLLMENT_RETRY_DELAY_MS", "3000"))
        sync_error_marker = os.getenv("SYNC_ERROR_MARKER", "synchronisation")

        return cls(
            database_url=database_url,
            redis_url=redis_url,
            session_ttl_seconds=session_ttl_seconds,
            smtp_host=smtp_host,
            smtp_port=smtp_port,
            smtp_user=smtp_user,
            smtp_password=smtp_password,
            smtp_from=smtp_from,
            api_key=api_key,
            env=env,
            institution_name=institution_name,
            enrollment_backend=enrollment_backend,
            rpc_base_url=rpc_base_url,
            rpc_api_key=rpc_api_key,
            rpc_timeout_ms=rpc_timeout_ms,
            email_check_debounce_ms=email_check_debounce_ms,
            enrollment_max_retries=enrollment_max_retries,
            enrollment_retry_delay_ms=enrollment_retry_delay_ms,
            sync_error_marker=sync_error_marker,
        )
