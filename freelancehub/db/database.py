from typing import Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from freelancehub.core.config import settings


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write; take the write lock up front
    # so concurrent writers queue on the busy timeout instead of deadlocking
    # on a SHARED -> RESERVED upgrade.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, *, echo: bool = False, timeout_seconds: float | None = None) -> Engine:
    timeout = settings.database_timeout_seconds if timeout_seconds is None else timeout_seconds

    connect_args: dict = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
    elif database_url.startswith("postgresql"):
        connect_args = {"options": f"-c statement_timeout={int(timeout * 1000)}"}

    engine = create_engine(database_url, echo=echo, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_immediate_transactions(engine)
    return engine


engine = build_engine(settings.database_url, echo=settings.debug)


def create_db_and_tables(target: Engine | None = None) -> None:
    # Ensure all SQLModel table classes are imported before metadata.create_all.
    import freelancehub.models  # noqa: F401

    SQLModel.metadata.create_all(target or engine)


def get_session(target: Engine | None = None) -> Iterator[Session]:
    with Session(target or engine) as session:
        yield session
