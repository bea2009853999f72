"""Root conftest: in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from convene.repositories.sqlalchemy import SQLAlchemyGatheringRepository, SQLAlchemyInviteRepository
from convene.services.container import GatheringServices, build_services
from convene.settings import Settings

# Matches Alembic head: 3c1e9a7d5b20 (create gatherings and invites)
SCHEMA_DDL = """
CREATE TABLE gatherings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    creator VARCHAR(64) NOT NULL,
    canceled TINYINT NOT NULL DEFAULT 0,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL,
    UNIQUE(creator, title)
);

CREATE TABLE gathering_hosts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    gathering_id INTEGER NOT NULL REFERENCES gatherings(id) ON DELETE CASCADE,
    user_id VARCHAR(64) NOT NULL,
    created_at DATETIME NOT NULL,
    UNIQUE(gathering_id, user_id)
);

CREATE TABLE gathering_acceptors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    gathering_id INTEGER NOT NULL REFERENCES gatherings(id) ON DELETE CASCADE,
    user_id VARCHAR(64) NOT NULL,
    created_at DATETIME NOT NULL,
    UNIQUE(gathering_id, user_id)
);

CREATE TABLE gathering_posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    gathering_id INTEGER NOT NULL REFERENCES gatherings(id) ON DELETE CASCADE,
    post_id VARCHAR(64) NOT NULL,
    created_at DATETIME NOT NULL,
    UNIQUE(gathering_id, post_id)
);

CREATE TABLE invites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    gathering_id INTEGER NOT NULL REFERENCES gatherings(id),
    from_user VARCHAR(64) NOT NULL,
    to_user VARCHAR(64) NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at DATETIME NOT NULL,
    UNIQUE(gathering_id, to_user)
);
"""


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture()
def gathering_repo(db_connection: Connection) -> SQLAlchemyGatheringRepository:
    return SQLAlchemyGatheringRepository(db_connection)


@pytest.fixture()
def invite_repo(db_connection: Connection) -> SQLAlchemyInviteRepository:
    return SQLAlchemyInviteRepository(db_connection)


def _make_services(gathering_repo, invite_repo, **overrides) -> GatheringServices:
    config = Settings(_env_file=None, **overrides)
    return build_services(gathering_repo, invite_repo, config)


@pytest.fixture()
def make_services(gathering_repo, invite_repo):
    """Build services over the SQLite repositories with policy overrides."""

    def _factory(**overrides) -> GatheringServices:
        return _make_services(gathering_repo, invite_repo, **overrides)

    return _factory


@pytest.fixture()
def services(make_services) -> GatheringServices:
    return make_services()
