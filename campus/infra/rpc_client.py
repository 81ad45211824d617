import json
import logging
import time
import urllib.request
import urllib.error
from typing import Any, Dict, Optional
from ..config import AppConfig

logger = logging.getLogger(__name__)


class RpcError(Exception):
    """
    Falha ao chamar um procedimento remoto (rede, HTTP ou resposta inválida).
    """

    def __init__(self, procedure: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(f"{procedure}: {message}")
        self.procedure = procedure
        self.message = message
        self.status = status


class RpcClient:
    """
    Cliente mínimo para os procedimentos remotos do backend hospedado.

    POST JSON em {base_url}/rest/v1/rpc/{procedure} via stdlib (sem dependências extras).
    """

    def __init__(self, config: AppConfig) -> None:
        self._base_url = (config.rpc_base_url or "").strip().rstrip("/")
        self._api_key = config.rpc_api_key
        self._timeout_s = config.rpc_timeout_ms / 1000.0

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def call(self, procedure: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Chama o procedimento e retorna o JSON decodificado.

        Raises:
            RpcError: Em falhas de rede/HTTP/parse
        """
        if not self._base_url:
            raise RpcError(procedure, "RPC_BASE_URL não configurada")

        url = f"{self._base_url}/rest/v1/rpc/{procedure}"
        data = json.dumps(params or {}).encode("utf-8")
        req = urllib.request.Request(url, data=data, method="POST", headers=self._headers())

        start_time = time.time()
        try:
            with urllib.request.urlopen(req, timeout=self._timeout_s) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            logger.error(f"Erro HTTP no RPC: procedure={procedure}, status={e.code}")
            raise RpcError(procedure, f"HTTP {e.code}", status=e.code) from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            logger.error(f"Erro de rede no RPC: procedure={procedure}, error={type(e).__name__}: {e}")
            raise RpcError(procedure, str(e)) from e

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(f"RPC concluído: procedure={procedure}, duration_ms={duration_ms:.2f}")

        if not body:
            return None
        try:
            return json.loads(body.decode("utf-8"))
        except ValueError as e:
            raise RpcError(procedure, f"Resposta não-JSON: {e}") from e
