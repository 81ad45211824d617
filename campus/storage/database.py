import os
import logging
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_engine_from_url(database_url: str):
    """
    Cria um engine SQLAlchemy a partir de uma URL de banco de dados.

    Para PostgreSQL, usa pool_pre_ping=True para detectar conexões perdidas.
    Para SQLite, libera o uso entre threads (endpoints síncronos rodam no threadpool).
    """
    is_postgres = "postgres" in database_url.lower()

    if is_postgres:
        engine = create_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )
        logger.info("Engine PostgreSQL criado com pool_pre_ping=True")
    elif database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        logger.info("Engine SQLite criado")
    else:
        engine = create_engine(database_url, echo=False, pool_pre_ping=True)
        logger.info("Engine criado")

    return engine


def create_session_factory(database_url: str, create_tables: bool = False) -> sessionmaker:
    """
    Cria uma factory de sessões SQLAlchemy.

    Args:
        database_url: URL de conexão do banco
        create_tables: Se True, cria tabelas automaticamente (apenas para dev/test)
                      Em produção, use migrações Alembic!
    """
    engine = create_engine_from_url(database_url)

    if create_tables:
        env = os.getenv("ENV", "dev").lower()
        if env == "prod":
            logger.warning(
                "⚠️  create_tables=True em produção! "
                "Use migrações Alembic ao invés de criar tabelas automaticamente."
            )
        else:
            # Garante que os modelos estão registrados no metadata
            from . import models  # noqa: F401

            logger.info("Criando tabelas automaticamente (modo dev/test)")
            Base.metadata.create_all(bind=engine)

    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Abre uma sessão e garante o fechamento (commit/rollback ficam com os repositórios).
    """
    db_session: Session = session_factory()
    try:
        yield db_session
    finally:
        db_session.close()
