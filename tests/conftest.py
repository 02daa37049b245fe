"""Test configuration and fixtures for MetaQuery."""

from dotenv import load_dotenv
import pytest
import asyncio
import os
import sys
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from metaquery.catalog import CatalogBase
from tests.models import Base

# Try to load environment variables from .env file
load_dotenv()

_ALL_METADATA = (CatalogBase.metadata, Base.metadata)


async def _create_all(conn):
    for md in _ALL_METADATA:
        await conn.run_sync(md.create_all)


async def _drop_all(conn):
    for md in reversed(_ALL_METADATA):
        await conn.run_sync(md.drop_all)


@pytest.fixture(scope="session", autouse=True)
def event_loop_policy():
    """Set event loop policy for Windows compatibility."""
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    yield


@pytest.fixture(scope="function")
async def engine():
    """Create a test database engine for each test function."""
    test_db_url = os.getenv('METAQUERY_TEST_DATABASE_URL')

    if test_db_url:
        engine = create_async_engine(test_db_url, echo=False, future=True, pool_pre_ping=True)
        # Clean slate: drop then create. Also validates the connection early.
        async with engine.begin() as conn:
            await _drop_all(conn)
            await _create_all(conn)
        is_external_db = True
    else:
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, future=True)
        async with engine.begin() as conn:
            await _create_all(conn)
        is_external_db = False

    yield engine

    if is_external_db:
        try:
            async with engine.begin() as conn:
                await _drop_all(conn)
        except Exception as e:
            print(f"Failed to clean up external database: {e}")

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for each test function."""
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session


from tests.fixtures import (  # noqa: E402,F401
    sample_catalog,
    sample_orders,
    populated_db,
)
