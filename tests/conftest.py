import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest
import anyio
import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite:///" + str(BASE_DIR / "test.db"))
os.environ.setdefault("PRODUCT_IMAGE_DIR", str(BASE_DIR / "test_media" / "product_images"))
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.pop("REDIS_URL", None)

from app.core.config import get_settings
from app.core import db as db_module
from app.core.cache import InMemoryCacheBackend, cache_manager
from app.core.dependencies import get_blob_store, get_db
from app.models import Base, Brand, Category
from app.services import LocalBlobStore, ProductCatalogService
from app.main import app

get_settings.cache_clear()

db_module._engine = None
db_module._SessionLocal = None
_db_path = BASE_DIR / "test.db"


def _create_engine():
    settings = get_settings()
    connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
    return create_engine(settings.DATABASE_URL, connect_args=connect_args)


def _create_session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="session")
def engine():
    engine = _create_engine()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if _db_path.exists():
        _db_path.unlink()


@pytest.fixture(scope="session")
def session_factory(engine):
    return _create_session_factory(engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _fresh_cache():
    cache_manager.backend = InMemoryCacheBackend()
    yield
    cache_manager.backend = None


@pytest.fixture()
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "product_images")


@pytest.fixture()
def catalog_service(db_session, blob_store):
    return ProductCatalogService(db_session, blob_store)


@pytest.fixture()
def make_brand(session_factory):
    def _make(name: str | None = None) -> Brand:
        session = session_factory()
        brand = Brand(name=name or f"Brand {uuid4().hex[:8]}")
        session.add(brand)
        session.commit()
        session.close()
        return brand

    return _make


@pytest.fixture()
def make_category(session_factory):
    def _make(name: str | None = None) -> Category:
        session = session_factory()
        category = Category(name=name or f"Category {uuid4().hex[:8]}")
        session.add(category)
        session.commit()
        session.close()
        return category

    return _make


@pytest.fixture()
def client(session_factory, blob_store):
    def _get_test_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    class _SyncASGIClient:
        def __init__(self, fastapi_app):
            self._client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=fastapi_app),
                base_url="http://testserver",
            )

        def request(self, method: str, url: str, **kwargs):
            async def _do_request():
                return await self._client.request(method, url, **kwargs)

            return anyio.run(_do_request)

        def get(self, url: str, **kwargs):
            return self.request("GET", url, **kwargs)

        def post(self, url: str, **kwargs):
            return self.request("POST", url, **kwargs)

        def put(self, url: str, **kwargs):
            return self.request("PUT", url, **kwargs)

        def close(self):
            async def _do_close():
                await self._client.aclose()

            anyio.run(_do_close)

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            self.close()

    with _SyncASGIClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
