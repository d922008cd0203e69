import sys
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chatsql.db.init_db import init_db
from chatsql.services.connection_registry import ConnectionRegistry
from chatsql.services.example_store import ExampleStore
from chatsql.services.memory_store import ConversationMemoryStore

tests_dir = Path(__file__).resolve().parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def registry(session_factory):
    return ConnectionRegistry(session_factory)


@pytest.fixture
def memory_store(session_factory):
    return ConversationMemoryStore(session_factory)


@pytest.fixture
def example_store(session_factory):
    return ExampleStore(session_factory)


@pytest.fixture
def connection_config():
    return {
        "id": "c1",
        "name": "销售库",
        "db_type": "mysql",
        "server": "127.0.0.1",
        "port": 3306,
        "database": "sales",
        "username": "reader",
        "password": "secret",
    }


@pytest.fixture
def c1(registry, connection_config):
    return registry.create(connection_config)


@pytest.fixture
def c2(registry):
    return registry.create({
        "id": "c2",
        "name": "库存库",
        "db_type": "postgresql",
        "connection_string": "postgresql://inventory",
    })


@pytest.fixture
def base_time():
    return datetime(2024, 1, 1, 9, 0, 0)
