import os

# Settings are read at import time; keep the test process off the OTLP exporter
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from botocore.exceptions import ClientError
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from social_api import models  # noqa: F401  (registers tables on Base.metadata)
from social_api.clients import minio_client
from social_api.database import Base, get_db
from social_api.stores import users


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def session_factory(tmp_path):
    db_path = tmp_path / "social.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    # NullPool: every session opens its connection on the loop that uses it
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)

    # pysqlite defers BEGIN on its own; take it over so SAVEPOINTs nest properly
    @event.listens_for(engine.sync_engine, "connect")
    def _no_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory, anyio_backend):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def client(session_factory, monkeypatch):
    from social_api.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def fake_db_hook():
        return None

    monkeypatch.setattr("social_api.main.init_db", fake_db_hook)
    monkeypatch.setattr("social_api.main.close_db", fake_db_hook)
    monkeypatch.setattr("social_api.main.init_minio", lambda: None)
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def make_user(db, name, email=None):
    """Store-level user with a placeholder hash (no login in store tests)."""
    user = await users.create_user(
        db, name, email or f"{name.lower()}@example.com", "not-a-real-hash"
    )
    await db.commit()
    return user


def register(client, name, email=None, password="secret"):
    """Register through the API; returns (user_id, auth headers)."""
    resp = client.post(
        "/auth/register",
        json={"name": name, "email": email or f"{name.lower()}@example.com", "password": password},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}


class FakeS3:
    """In-memory stand-in for the boto3 S3 client."""

    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[Key] = (Body.read(), ContentType)

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentType": self.objects[Key][1]}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"http://minio/{Params['Bucket']}/{Params['Key']}?expires={ExpiresIn}"


@pytest.fixture()
def fake_s3(monkeypatch):
    s3 = FakeS3()
    monkeypatch.setattr(minio_client, "_s3", s3)
    return s3
