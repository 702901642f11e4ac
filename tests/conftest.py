import os

# Configure before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from notepad.api.database import SessionLocal, engine
from notepad.api.main import app
from notepad.api.models import Base


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signup(client):
    def _signup(name="Ann", email="ann@x.com", password="pw123456"):
        response = client.post("/auth/signup", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return response.json()
    return _signup


@pytest.fixture
def auth_headers(signup):
    token = signup()["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(signup):
    token = signup(name="Bob", email="bob@x.com")["token"]
    return {"Authorization": f"Bearer {token}"}
