"""
Shared fixtures for the test suite: in-memory databases, settings
overrides and an HTTP client wired to them.
"""
import dataclasses
import unittest

from fastapi.testclient import TestClient
from sqlmodel import Session

from config import Settings, get_settings, load_settings
from database import build_engine, create_db_and_tables, get_session
from services.credentials import CredentialStore
from services.entities import EntityStore
from services.sessions import SessionManager


def make_settings(**overrides) -> Settings:
    return dataclasses.replace(load_settings(), **overrides)


def make_engine():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    return engine


class StoreTestCase(unittest.TestCase):
    """Services bound to a fresh in-memory database"""

    settings_overrides = {}

    def setUp(self):
        self.settings = make_settings(**self.settings_overrides)
        self.engine = make_engine()
        self.session = Session(self.engine)
        self.credentials = CredentialStore(self.session, self.settings)
        self.sessions = SessionManager(self.session, self.settings)
        self.entities = EntityStore(self.session, self.settings, self.credentials)

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def register(self, login: str, secret: str = "secret123") -> int:
        return self.credentials.register(login, secret, provision=self.entities.add_default_group)


class ApiTestCase(unittest.TestCase):
    """TestClient against the app with database and settings overridden"""

    settings_overrides = {}

    def setUp(self):
        from main import app

        self.app = app
        self.settings = make_settings(**self.settings_overrides)
        self.engine = make_engine()

        def override_session():
            with Session(self.engine) as session:
                yield session

        app.dependency_overrides[get_session] = override_session
        app.dependency_overrides[get_settings] = lambda: self.settings

    def tearDown(self):
        self.app.dependency_overrides.clear()
        self.engine.dispose()

    def client(self) -> TestClient:
        return TestClient(self.app)

    def register(self, login: str, secret: str = "secret123") -> TestClient:
        """A client holding a fresh session cookie for a new user"""
        client = self.client()
        response = client.post("/api/user/create", json={"login": login, "secret": secret})
        self.assertEqual(response.status_code, 201, response.text)
        return client

    def assertError(self, response, status_code: int, kind: str):
        self.assertEqual(response.status_code, status_code, response.text)
        self.assertEqual(response.json()["error"]["kind"], kind)
