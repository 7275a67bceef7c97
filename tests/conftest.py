# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from leadflow.adapters.config import AppConfig
from leadflow.adapters.memory_repo import (
    InMemoryActivityLog,
    InMemoryLeadRepository,
    InMemoryListingRepository,
    InMemoryMatchRepository,
    InMemoryNotificationRepository,
)
from leadflow.adapters.sql_repo import (
    SqlActivityLog,
    SqlLeadRepository,
    SqlListingRepository,
    SqlMatchRepository,
    SqlNotificationRepository,
    make_engine,
)
from leadflow.api.http import Services, app, get_services


@pytest.fixture
def cfg():
    return AppConfig()


@pytest.fixture
def activity():
    return InMemoryActivityLog()


@pytest.fixture
def lead_repo(activity):
    return InMemoryLeadRepository(activity)


@pytest.fixture
def listing_repo():
    return InMemoryListingRepository()


@pytest.fixture
def match_repo():
    return InMemoryMatchRepository()


@pytest.fixture
def sql_services(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/test.db")
    return Services(
        cfg=AppConfig(),
        leads=SqlLeadRepository(engine=engine),
        listings=SqlListingRepository(engine=engine),
        matches=SqlMatchRepository(engine=engine),
        activity=SqlActivityLog(engine=engine),
        notifications=SqlNotificationRepository(engine=engine),
    )


@pytest.fixture
def memory_services(cfg, lead_repo, listing_repo, match_repo, activity):
    return Services(
        cfg=cfg,
        leads=lead_repo,
        listings=listing_repo,
        matches=match_repo,
        activity=activity,
        notifications=InMemoryNotificationRepository(),
    )


@pytest.fixture
def client(sql_services):
    app.dependency_overrides[get_services] = lambda: sql_services
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
