import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from encounter_engine.modules import fight as fight_module

from .factories import make_session_factory


@pytest.fixture
def session_factory():
    return make_session_factory()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    # A bare app with the router: no startup hook, so nothing touches the real database.
    app = FastAPI()
    app.include_router(fight_module.router)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[fight_module.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
