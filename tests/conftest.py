# tests/conftest.py

import pytest
from dataclasses import replace

from campus.config import AppConfig
from campus.storage.database import create_session_factory, session_scope
from campus.storage.repository import ProgramRepository


@pytest.fixture
def config(tmp_path):
    """Test configuration: sqlite file, no Redis, no real SMTP, no retry delay."""
    return AppConfig(
        database_url=f"sqlite:///{tmp_path / 'campus_test.db'}",
        redis_url="",
        smtp_host="dev-log",
        env="dev",
        enrollment_backend="database",
        enrollment_retry_delay_ms=0,
    )


@pytest.fixture
def config_with_key(config):
    return replace(config, api_key="secret-key")


@pytest.fixture
def db_session_factory(config):
    return create_session_factory(config.database_url, create_tables=True)


@pytest.fixture
def catalogue(db_session_factory):
    """Seed one department with two programs."""
    with session_scope(db_session_factory) as db:
        repo = ProgramRepository(db)
        info = repo.create_department(name="Informatique", code="DINF")
        maths = repo.create_department(name="Mathématiques", code="DMAT")
        computing = repo.create_program(
            department_id=info.id, name="Licence Informatique", code="INF"
        )
        statistics = repo.create_program(
            department_id=maths.id, name="Licence Statistique", code="STA"
        )
        return {
            "department_id": info.id,
            "program_id": computing.id,
            "other_department_id": maths.id,
            "other_program_id": statistics.id,
        }


@pytest.fixture
def personal_info():
    return {
        "first_name": "Jean",
        "last_name": "Dupont",
        "email": "jean.dupont@ecole.fr",
        "phone": "06 12 34 56 78",
        "birth_date": "15/03/2001",
        "address": "12 rue de la Paix, Paris",
    }
