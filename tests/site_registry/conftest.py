from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from services.common.clock import FrozenClock
from services.site_registry.app import create_app
from services.site_registry.config import SiteRegistryConfig
from services.site_registry.repository import InMemorySiteRepository
from services.site_registry.service import SiteRegistryService
from services.site_registry.sql_repository import SqlSiteRepository


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 1, 28, tzinfo=timezone.utc))


@pytest.fixture
def memory_repo():
    return InMemorySiteRepository()


@pytest.fixture
def sql_repo():
    repo = SqlSiteRepository.from_url("sqlite://")
    repo.init_schema()
    yield repo
    repo.dispose()


@pytest.fixture(params=["memory", "sqlite"])
def site_repo(request):
    if request.param == "memory":
        return request.getfixturevalue("memory_repo")
    return request.getfixturevalue("sql_repo")


@pytest.fixture
def registry(site_repo, clock):
    return SiteRegistryService(site_repo, clock=clock)


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry=registry, config=SiteRegistryConfig()))
