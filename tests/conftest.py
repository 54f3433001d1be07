import os
import sqlite3
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Register UUID adapter for SQLite - store as string
sqlite3.register_adapter(uuid.UUID, lambda u: str(u))

# Monkey-patch SQLAlchemy's UUID type for SQLite compatibility
# This must happen before any models are imported
from sqlalchemy.sql import sqltypes  # noqa: E402

_original_uuid_bind_processor = sqltypes.Uuid.bind_processor
_original_uuid_result_processor = sqltypes.Uuid.result_processor


def _sqlite_uuid_bind_processor(self, dialect):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return str(value)
                return str(uuid.UUID(value)) if value else None
            return None
        return process
    return _original_uuid_bind_processor(self, dialect)


def _sqlite_uuid_result_processor(self, dialect, coltype):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return value
                return uuid.UUID(value) if value else None
            return None
        return process
    return _original_uuid_result_processor(self, dialect, coltype)


setattr(sqltypes.Uuid, "bind_processor", _sqlite_uuid_bind_processor)
setattr(sqltypes.Uuid, "result_processor", _sqlite_uuid_result_processor)

from isp_billing.db import Base  # noqa: E402
from isp_billing.models.network import Odp, Router  # noqa: E402
from isp_billing.models.subscriber import (  # noqa: E402
    InstallationStatus,
    ServiceStatus,
    Subscriber,
    SubscriberStatus,
)
from tests.mocks import FakeRouterGateway  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    database_url = os.getenv("TEST_DATABASE_URL")
    if database_url:
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, _connection_record):
            # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs work on pysqlite.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(connection):
            connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)

    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        autocommit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def gateway():
    return FakeRouterGateway()


@pytest.fixture()
def router(db_session):
    router = Router(
        name=f"core-{uuid.uuid4().hex[:6]}",
        ip_address="10.0.0.1",
        port=8728,
        username="api",
        password="secret",
    )
    db_session.add(router)
    db_session.commit()
    db_session.refresh(router)
    return router


@pytest.fixture()
def odp(db_session):
    odp = Odp(name="ODP-A1", area="North", total_slots=8, used_slots=0)
    db_session.add(odp)
    db_session.commit()
    db_session.refresh(odp)
    return odp


@pytest.fixture()
def make_subscriber(db_session, router):
    """Factory for billable subscribers; keyword arguments override defaults."""
    counter = {"n": 0}

    def _make(**overrides) -> Subscriber:
        counter["n"] += 1
        data = {
            "subscriber_number": f"TST{counter['n']:04d}-{uuid.uuid4().hex[:6]}",
            "name": f"Subscriber {counter['n']}",
            "package_name": "Home 20M",
            "package_price": Decimal("300000"),
            "discount": Decimal("0"),
            "active_date": date(2025, 1, 1),
            "status": SubscriberStatus.active,
            "installation_status": InstallationStatus.installed,
            "service_status": ServiceStatus.active,
            "router_account_name": f"ppp-{counter['n']}",
            "router_id": router.id,
        }
        data.update(overrides)
        subscriber = Subscriber(**data)
        db_session.add(subscriber)
        db_session.commit()
        db_session.refresh(subscriber)
        return subscriber

    return _make


@pytest.fixture()
def subscriber(make_subscriber):
    return make_subscriber()
