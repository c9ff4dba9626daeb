"""Pytest configuration and shared fixtures."""

import asyncio
import sys
from pathlib import Path

import boto3
import pytest
from botocore.config import Config
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import campus_events.database as database
import campus_events.models  # noqa: F401,E402 - registers tables on Base
from campus_events.services.storage import UploadBroker


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path.as_posix()}"


@pytest.fixture
def run_db(tmp_path):
    """Run ``scenario(session)`` against a fresh SQLite database and return its result."""

    url = _sqlite_url(tmp_path / "repo.db")

    def _run(scenario):
        async def _main():
            engine = create_async_engine(url)
            async with engine.begin() as conn:
                await conn.run_sync(database.Base.metadata.create_all)
            factory = async_sessionmaker(engine, expire_on_commit=False)
            try:
                async with factory() as session:
                    return await scenario(session)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run


def make_s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(signature_version="s3v4"),
    )


@pytest.fixture
def broker() -> UploadBroker:
    return UploadBroker(
        bucket="campus-events-test",
        region="us-east-1",
        public_domain="d111111abcdef8.cloudfront.net",
        client=make_s3_client(),
    )


@pytest.fixture
def client(tmp_path, broker):
    """TestClient bound to a scratch SQLite file; startup creates the tables."""

    database.configure_engine(_sqlite_url(tmp_path / "api.db"))

    from campus_events.main import app
    from campus_events.services.storage import get_upload_broker

    app.dependency_overrides[get_upload_broker] = lambda: broker
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
