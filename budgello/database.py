import logging

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel, create_engine, Session

from .core.errors import Conflict


logger = logging.getLogger(__name__)


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url in {"sqlite://", "sqlite:///:memory:"}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    if _is_memory_sqlite(database_url):
        # One shared connection, otherwise every checkout sees an empty database
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    elif database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 60},
            poolclass=NullPool,  # avoid multiple pooled connections holding write locks
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
                conn.exec_driver_sql("PRAGMA busy_timeout=60000;")
        except OperationalError:
            # Locked during reloader startup; the pragmas are an optimisation only
            logger.warning("Could not set SQLite pragmas on %s", database_url)
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
    return engine


def init_db(engine: Engine) -> None:
    from .models import budget, category, shared_budget, transaction, user  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    with Session(request.app.state.engine) as session:
        yield session


def commit_or_conflict(session: Session, message: str) -> None:
    """Commit, turning a uniqueness violation raised by the database into Conflict."""
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict(message)
