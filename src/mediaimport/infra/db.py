"""
Library database engine, session factory and declarative base.

SQLite engines are adjusted so nested transactions (SAVEPOINTs) and foreign
keys behave as on a server database.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import MetaData

from mediaimport.infra.settings import settings

# Deterministic constraint/index names
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def _install_sqlite_hooks(target: Engine) -> None:
    """Enable foreign keys and let SQLAlchemy own BEGIN so SAVEPOINTs work on pysqlite."""

    @event.listens_for(target, "connect")
    def _on_connect(dbapi_conn, _):
        dbapi_conn.isolation_level = None
        cur = dbapi_conn.cursor()
        try:
            cur.execute("PRAGMA foreign_keys=ON")
        finally:
            cur.close()

    @event.listens_for(target, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def _build_engine(url: str, *, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        built = create_engine(url, echo=echo, future=True, **kwargs)
        _install_sqlite_hooks(built)
        return built

    connect_args: dict[str, object] = {}
    if "postgresql" in url:
        connect_args["connect_timeout"] = settings.connect_timeout

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        future=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        connect_args=connect_args,
    )


engine = _build_engine(settings.database_url, echo=settings.echo_sql)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def get_engine(db_url: str | None = None) -> Engine:
    """The shared library engine, or a new one for another database URL."""
    if not db_url or db_url == settings.database_url:
        return engine
    return _build_engine(db_url)


def get_sessionmaker(bind: Engine | None = None) -> sessionmaker:
    if bind is None:
        return SessionLocal
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True)


def create_all(target: Engine | None = None) -> None:
    """Create the library tables on the given engine (schema versioning is not handled here)."""
    # Import entities so every table is registered on the metadata
    from mediaimport.domain import entities  # noqa: F401

    Base.metadata.create_all(target or engine)
