"""
Shared pytest fixtures: an in-memory SQLite database per test.

pysqlite's own transaction handling breaks SAVEPOINT, which the company
upsert relies on, so the connection is switched to SQLAlchemy-managed
BEGIN/COMMIT (the recipe from the SQLAlchemy SQLite dialect docs).
"""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from robotics_hub.core.db import Base
import robotics_hub.models  # noqa: F401  (registers every table on Base.metadata)


def _make_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture
def engine():
    engine = _make_engine()
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
