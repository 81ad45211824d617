"""
Gerenciador de sessões do assistente usando Redis como backend.
Armazena WizardSession serializada em JSON com TTL configurável.
"""
import logging
import json
from typing import Optional
from redis import Redis
from redis.exceptions import RedisError
from ..core.session_manager import WizardSession, new_session_id

logger = logging.getLogger(__name__)


class RedisSessionManager:
    """
    Gerenciador de sessões usando Redis.

    Armazena cada sessão em uma chave: wizard:{session_id}
    Com TTL configurável para expiração automática.
    """

    def __init__(
        self,
        redis_url: str,
        session_ttl_seconds: int = 86400,
    ) -> None:
        """
        Args:
            redis_url: URL de conexão Redis (ex: redis://localhost:6379/0)
            session_ttl_seconds: TTL em segundos para expiração de sessões
        """
        self._redis = Redis.from_url(redis_url, decode_responses=False)
        self._session_ttl_seconds = session_ttl_seconds

        try:
            self._redis.ping()
            logger.info(
                f"RedisSessionManager inicializado: redis_url={redis_url}, "
                f"ttl={session_ttl_seconds}s"
            )
        except RedisError as e:
            logger.error(f"Erro ao conectar ao Redis: {e}")
            raise

    @staticmethod
    def _key(session_id: str) -> str:
        return f"wizard:{session_id}"

    def _serialize(self, session: WizardSession) -> bytes:
        return json.dumps(session.to_dict(), ensure_ascii=False).encode("utf-8")

    def _deserialize(self, data: bytes) -> WizardSession:
        return WizardSession.from_dict(json.loads(data.decode("utf-8")))

    def create(self) -> WizardSession:
        session = WizardSession(session_id=new_session_id())
        self.save_session(session)
        logger.debug(f"Nova sessão criada no Redis: session_id={session.session_id}")
        return session

    def get(self, session_id: str) -> Optional[WizardSession]:
        try:
            data = self._redis.get(self._key(session_id))
        except RedisError as e:
            logger.error(f"Erro ao recuperar sessão do Redis: session_id={session_id}, error={e}")
            return None

        if not data:
            logger.debug(f"Sessão não encontrada no Redis: session_id={session_id}")
            return None
        return self._deserialize(data)

    def save_session(self, session: WizardSession) -> None:
        """
        Salva uma sessão no Redis com TTL (renovado a cada escrita).
        """
        try:
            self._redis.setex(
                self._key(session.session_id),
                self._session_ttl_seconds,
                self._serialize(session),
            )
            logger.debug(
                f"Sessão salva no Redis: session_id={session.session_id}, "
                f"step={int(session.step)}, ttl={self._session_ttl_seconds}s"
            )
        except RedisError as e:
            logger.error(
                f"Erro ao salvar sessão no Redis: session_id={session.session_id}, error={e}"
            )
            raise

    def clear_session(self, session_id: str) -> None:
        try:
            self._redis.delete(self._key(session_id))
            logger.debug(f"Sessão removida do Redis: session_id={session_id}")
        except RedisError as e:
            logger.error(f"Erro ao remover sessão do Redis: session_id={session_id}, error={e}")

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except RedisError:
            return False
