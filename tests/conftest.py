from __future__ import annotations

import pathlib
import sys
from typing import Iterable, Iterator

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from docvault.db.session import install_tenant_scope
from docvault.dependencies.db import get_db
from docvault.dependencies.documents import get_object_store
from docvault.main import app
from docvault.models import Base, Client
from docvault.services.errors import ErrorKind, StorageError
from docvault.services.storage import S3ObjectStore


TEST_BUCKET = "test-docvault-bucket"
TEST_REGION = "us-east-1"


class MemoryObjectStore:
    """In-process object store that records calls and can be told to fail."""

    def __init__(self, bucket: str = "memory-bucket", fail_on: Iterable[str] = ()) -> None:
        self._bucket = bucket
        self.fail_on = set(fail_on)
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.calls: list[tuple[str, str]] = []

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def is_configured(self) -> bool:
        return True

    def _record(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if operation in self.fail_on:
            raise StorageError(ErrorKind.STORAGE_OPERATION_FAILED, f"{operation} failed for {key}")

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self._record("put", key)
        self.objects[key] = (data, content_type)

    def issue_read_capability(self, key: str, ttl_seconds: int) -> str:
        self._record("issue_read_capability", key)
        if key not in self.objects:
            raise StorageError(ErrorKind.RESOURCE_NOT_FOUND, f"Stored object not found: {key}")
        return f"https://{self._bucket}.storage.test/{key}?expires={ttl_seconds}"

    def delete(self, key: str) -> None:
        self._record("delete", key)
        self.objects.pop(key, None)

    def exists(self, key: str) -> bool:
        self._record("exists", key)
        return key in self.objects


def ticking_clock(start: float = 1_700_000_000.0):
    """Clock that advances one whole second per call, so storage keys never collide."""
    state = {"now": start}

    def _clock() -> float:
        value = state["now"]
        state["now"] += 1.0
        return value

    return _clock


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    install_tenant_scope(factory)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seeded_clients(session_factory: sessionmaker) -> list[str]:
    with session_factory() as session:
        session.add_all(
            [
                Client(id="acme-01", company_name="Acme Freight"),
                Client(id="globex-02", company_name="Globex Logistics"),
            ]
        )
        session.commit()
    return ["acme-01", "globex-02"]


@pytest.fixture()
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)


@pytest.fixture()
def mock_s3(aws_credentials):
    with mock_aws():
        s3 = boto3.client("s3", region_name=TEST_REGION)
        s3.create_bucket(Bucket=TEST_BUCKET)
        yield s3


@pytest.fixture()
def object_store(mock_s3) -> S3ObjectStore:
    return S3ObjectStore(
        bucket=TEST_BUCKET,
        region=TEST_REGION,
        access_key_id="testing",
        secret_access_key="testing",
    )


@pytest.fixture()
def memory_store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture()
def make_memory_store():
    return MemoryObjectStore


@pytest.fixture()
def clock():
    return ticking_clock()


@pytest.fixture()
def client(session_factory: sessionmaker, memory_store: MemoryObjectStore) -> Iterator[TestClient]:
    """TestClient wired to the in-memory database and object store."""

    def _db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_object_store] = lambda: memory_store
    try:
        with TestClient(app) as _client:
            yield _client
    finally:
        app.dependency_overrides.clear()
