"""
Shared pytest fixtures.

Routes get an in-memory ``PortalDatabase`` through ``app.dependency_overrides``.
Its collections answer exact-match queries and honour unique indexes the way
MongoDB does, so the admission rule sees real ``DuplicateKeyError``s.
"""

import copy
import os
from types import SimpleNamespace

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

os.environ["ACCESS_TOKEN_SECRET"] = "test-secret-key-0123456789abcdef0123"
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("STRICT_SLOT_ADMISSION", None)

from config import Settings, get_settings  # noqa: E402
from main import app  # noqa: E402
from mongo import PortalDatabase, get_db  # noqa: E402


def _matches(document, query):
    return all(document.get(key) == value for key, value in query.items())


class FakeCollection:
    def __init__(self):
        self.documents = []
        self.unique_keys = []

    def create_index(self, keys, unique=False, name=None):
        if unique:
            self.unique_keys.append([key for key, _ in keys])
        return name

    def _violates_unique(self, candidate):
        for fields in self.unique_keys:
            key = {field: candidate.get(field) for field in fields}
            for document in self.documents:
                if _matches(document, key):
                    return True
        return False

    def find(self, query=None, projection=None):
        found = [copy.deepcopy(d) for d in self.documents if _matches(d, query or {})]
        if projection:
            fields = set(projection) | {"_id"}
            found = [{k: v for k, v in d.items() if k in fields} for d in found]
        return iter(found)

    def find_one(self, query=None):
        return next(self.find(query), None)

    def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        if self._violates_unique(document):
            raise DuplicateKeyError("E11000 duplicate key error")
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    def update_one(self, query, update, upsert=False):
        for document in self.documents:
            if _matches(document, query):
                changed = {k: v for k, v in update.get("$set", {}).items() if document.get(k) != v}
                document.update(changed)
                return SimpleNamespace(matched_count=1, modified_count=int(bool(changed)), upserted_id=None)
        if upsert:
            document = {**query, **update.get("$set", {}), "_id": ObjectId()}
            self.documents.append(document)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=document["_id"])
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    def delete_one(self, query):
        for document in self.documents:
            if _matches(document, query):
                self.documents.remove(document)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase(dict):
    def __missing__(self, name):
        collection = self[name] = FakeCollection()
        return collection


@pytest.fixture
def db():
    portal = PortalDatabase(FakeDatabase())
    portal.ensure_indexes()
    return portal


@pytest.fixture
def settings():
    return Settings(access_token_secret="test-secret-key-0123456789abcdef0123")


@pytest.fixture
def client(db, settings):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header(settings):
    from auth import issue_access_token

    def make(email):
        return {"Authorization": f"Bearer {issue_access_token(email, settings)}"}

    return make


@pytest.fixture
def catalog(db):
    db.services.insert_one({"name": "Teeth Orthodontics", "slots": ["8:00 AM", "8:30 AM", "9:00 AM"]})
    db.services.insert_one({"name": "Cavity Protection", "slots": ["10:05 AM", "10:30 AM"]})
    return db.services
