# tests/test_infra.py
"""
Unit tests for configuration loading, the RPC client, Redis sessions and e-mail.
"""

import io
import json
import urllib.error
import pytest
from dataclasses import replace
from unittest.mock import MagicMock, patch

from campus.config import AppConfig
from campus.core.registration_state import WizardStep
from campus.core.session_manager import InMemorySessionManager, WizardSession
from campus.infra.email_service import EmailService
from campus.infra.rpc_client import RpcClient, RpcError
from campus.session.redis_session_manager import RedisSessionManager


class TestAppConfig:
    @pytest.fixture(autouse=True)
    def no_dotenv(self):
        with patch("campus.config.load_dotenv"):
            yield

    def test_defaults(self, monkeypatch):
        for name in ["ENV", "API_KEY", "ENROLLMENT_BACKEND", "EMAIL_CHECK_DEBOUNCE_MS"]:
            monkeypatch.delenv(name, raising=False)
        config = AppConfig.load_from_env()
        assert config.env == "dev"
        assert config.enrollment_max_retries == 2
        assert config.enrollment_retry_delay_ms == 3000
        assert config.email_check_debounce_ms == 800

    def test_prod_requires_api_key(self, monkeypatch):
        monkeypatch.setenv("ENV", "prod")
        monkeypatch.setenv("API_KEY", "")
        with pytest.raises(RuntimeError):
            AppConfig.load_from_env()

    def test_rpc_backend_requires_base_url(self, monkeypatch):
        monkeypatch.setenv("ENV", "dev")
        monkeypatch.setenv("ENROLLMENT_BACKEND", "rpc")
        monkeypatch.setenv("RPC_BASE_URL", "")
        with pytest.raises(RuntimeError):
            AppConfig.load_from_env()

    def test_debounce_clamped(self, monkeypatch):
        monkeypatch.setenv("ENV", "dev")
        monkeypatch.delenv("ENROLLMENT_BACKEND", raising=False)
        monkeypatch.setenv("EMAIL_CHECK_DEBOUNCE_MS", "5000")
        assert AppConfig.load_from_env().email_check_debounce_ms == 1000


class TestRpcClient:
    @pytest.fixture
    def client(self, config):
        return RpcClient(replace(config, rpc_base_url="https://backend.example/", rpc_api_key="k"))

    def test_posts_json_to_procedure(self, client):
        response = MagicMock()
        response.read.return_value = json.dumps({"ok": True}).encode()
        response.__enter__.return_value = response

        with patch("urllib.request.urlopen", return_value=response) as urlopen:
            assert client.call("check_email_exists", {"p_email": "a@b.fr"}) == {"ok": True}

        request = urlopen.call_args.args[0]
        assert request.full_url == "https://backend.example/rest/v1/rpc/check_email_exists"
        assert json.loads(request.data) == {"p_email": "a@b.fr"}
        assert request.get_header("Authorization") == "Bearer k"

    def test_http_error(self, client):
        error = urllib.error.HTTPError("url", 500, "boom", {}, io.BytesIO(b""))
        with patch("urllib.request.urlopen", side_effect=error):
            with pytest.raises(RpcError) as exc_info:
                client.call("detect_exam_conflicts")
        assert exc_info.value.status == 500

    def test_missing_base_url(self, config):
        with pytest.raises(RpcError):
            RpcClient(config).call("detect_exam_conflicts")


class TestSessionManagers:
    def test_in_memory_roundtrip(self):
        manager = InMemorySessionManager()
        session = manager.create()
        session.step = WizardStep.DOCUMENTS
        manager.save_session(session)

        assert manager.get(session.session_id).step == WizardStep.DOCUMENTS
        manager.clear_session(session.session_id)
        assert manager.get(session.session_id) is None

    def test_redis_stores_json_with_ttl(self):
        redis = MagicMock()
        with patch("campus.session.redis_session_manager.Redis.from_url", return_value=redis):
            manager = RedisSessionManager("redis://localhost:6379/0", session_ttl_seconds=60)

        session = WizardSession(session_id="abc", step=WizardStep.PROGRAM_SELECTION)
        manager.save_session(session)

        key, ttl, payload = redis.setex.call_args.args
        assert key == "wizard:abc"
        assert ttl == 60
        redis.get.return_value = payload
        assert manager.get("abc").step == WizardStep.PROGRAM_SELECTION

    def test_redis_missing_session(self):
        redis = MagicMock()
        redis.get.return_value = None
        with patch("campus.session.redis_session_manager.Redis.from_url", return_value=redis):
            manager = RedisSessionManager("redis://localhost:6379/0")
        assert manager.get("nope") is None


class TestEmailService:
    def test_welcome_message_contains_student_number(self, config):
        msg = EmailService(config).build_welcome_message("jean@ecole.fr", "Jean Dupont", "INF24001")
        assert msg["To"] == "jean@ecole.fr"
        assert "INF24001" in msg.get_content()

    def test_dev_log_mode_does_not_connect(self, config):
        with patch("smtplib.SMTP") as smtp:
            EmailService(config).send_welcome("jean@ecole.fr", "Jean Dupont", "INF24001")
        smtp.assert_not_called()

    def test_requires_recipient(self, config):
        with pytest.raises(ValueError):
            EmailService(config).send_welcome("", "Jean Dupont", "INF24001")
