"""Shared pytest fixtures.

API tests run against an in-memory stand-in for the Mongo database that
implements the subset of the async pymongo collection API the services use.
"""

import copy
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from spacehub.app import App
from spacehub.config import Config
from spacehub.web.server import create_fastapi_app

ADMIN_CONTACT = "demo-admin@example.com"
MEMBER_CONTACT = "demo-member@example.com"


def _normalize(value: Any) -> Any:
    # pymongo stores naive datetimes as UTC and tz_aware reads them back as UTC
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(doc, clause) for clause in condition):
                return False
            continue
        value = _normalize(doc.get(key))
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            for op, operand in condition.items():
                operand = _normalize(operand)
                if op == "$in" and value not in operand:
                    return False
                if op == "$ne" and value == operand:
                    return False
                if op == "$lt" and not (value is not None and value < operand):
                    return False
                if op == "$lte" and not (value is not None and value <= operand):
                    return False
                if op == "$gt" and not (value is not None and value > operand):
                    return False
                if op == "$gte" and not (value is not None and value >= operand):
                    return False
        elif value != _normalize(condition):
            return False
    return True


def _sort_key(field: str) -> Callable[[dict[str, Any]], tuple[bool, Any]]:
    def key(doc: dict[str, Any]) -> tuple[bool, Any]:
        value = _normalize(doc.get(field))
        return value is not None, value

    return key


@dataclass
class InsertOneResult:
    inserted_id: Any


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int


@dataclass
class DeleteResult:
    deleted_count: int


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs
        self._limit = 0

    def sort(self, key: str | list[tuple[str, int]], direction: int = 1) -> "FakeCursor":
        keys = key if isinstance(key, list) else [(key, direction)]
        # Stable sorts applied from the last key to the first give a compound ordering
        for field, field_direction in reversed(keys):
            self._docs.sort(key=_sort_key(field), reverse=field_direction < 0)
        return self

    def limit(self, limit: int) -> "FakeCursor":
        self._limit = limit
        return self

    def _results(self) -> list[dict[str, Any]]:
        return self._docs[: self._limit] if self._limit else self._docs

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return self._results()

    def __aiter__(self) -> "FakeCursor":
        self._iter = iter(self._results())
        return self

    async def __anext__(self) -> dict[str, Any]:
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration from None


class FakeCollection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: list[dict[str, Any]] = []
        self._unique: list[tuple[str, ...]] = []

    async def create_index(self, keys: list[tuple[str, int]], unique: bool = False, **_: Any) -> str:
        fields = tuple(field for field, _direction in keys)
        if unique and fields not in self._unique:
            self._unique.append(fields)
        return "_".join(fields)

    def _check_unique(self, candidate: dict[str, Any], ignore: dict[str, Any] | None = None) -> None:
        for fields in [("_id",), *self._unique]:
            values = tuple(candidate.get(f) for f in fields)
            if any(v is None for v in values):
                # Partial indexes skip documents without a value
                continue
            for doc in self.docs:
                if doc is ignore:
                    continue
                if tuple(doc.get(f) for f in fields) == values:
                    raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} index: {fields}")

    async def insert_one(self, document: dict[str, Any]) -> InsertOneResult:
        doc = copy.deepcopy(document)
        self._check_unique(doc)
        self.docs.append(doc)
        return InsertOneResult(inserted_id=doc["_id"])

    async def find_one(self, query: dict[str, Any], projection: dict[str, Any] | None = None) -> dict[str, Any] | None:
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: dict[str, Any] | None = None, projection: dict[str, Any] | None = None) -> FakeCursor:
        return FakeCursor([copy.deepcopy(doc) for doc in self.docs if _matches(doc, query or {})])

    async def count_documents(self, query: dict[str, Any], limit: int = 0, **_: Any) -> int:
        count = sum(1 for doc in self.docs if _matches(doc, query))
        return min(count, limit) if limit else count

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> UpdateResult:
        for doc in self.docs:
            if _matches(doc, query):
                updated = copy.deepcopy(doc)
                updated.update(copy.deepcopy(update.get("$set", {})))
                for key, amount in update.get("$inc", {}).items():
                    updated[key] = updated.get(key, 0) + amount
                self._check_unique(updated, ignore=doc)
                doc.clear()
                doc.update(updated)
                return UpdateResult(matched_count=1, modified_count=1)
        return UpdateResult(matched_count=0, modified_count=0)

    async def delete_one(self, query: dict[str, Any]) -> DeleteResult:
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[index]
                return DeleteResult(deleted_count=1)
        return DeleteResult(deleted_count=0)

    async def delete_many(self, query: dict[str, Any]) -> DeleteResult:
        before = len(self.docs)
        self.docs = [doc for doc in self.docs if not _matches(doc, query)]
        return DeleteResult(deleted_count=before - len(self.docs))


class FakeDatabase:
    def __init__(self) -> None:
        self._collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    def __getitem__(self, name: str) -> FakeCollection:
        return self.get_collection(name)


@pytest.fixture
def config() -> Config:
    return Config(
        _env_file=None,
        database_url="mongodb://localhost:27017/spacehub_test",
        host="127.0.0.1",
        port=3000,
        debug=False,
        session_secret_key="test-session-secret-key-0123456789abcdef",
        environment="development",
        otp_debug_codes=True,
    )


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def client(config: Config, database: FakeDatabase) -> Iterator[TestClient]:
    app = App(config, database=database)  # type: ignore[arg-type]
    with TestClient(create_fastapi_app(app, config)) as test_client:
        yield test_client


def sign_in(client: TestClient, contact: str) -> dict[str, str]:
    """Run the OTP flow for a contact and return bearer auth headers."""
    sent = client.post("/api/v1/auth/send-otp", json={"contact": contact})
    assert sent.status_code == 200, sent.text
    code = sent.json().get("debugOTP", "123456")
    verified = client.post("/api/v1/auth/verify-otp", json={"contact": contact, "otp": code})
    assert verified.status_code == 200, verified.text
    # Drop the session cookie so each request authenticates only via its headers
    client.cookies.clear()
    return {"Authorization": f"Bearer {verified.json()['token']}"}


@pytest.fixture
def sign_in_as(client: TestClient) -> Callable[[str], dict[str, str]]:
    return lambda contact: sign_in(client, contact)


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    return sign_in(client, ADMIN_CONTACT)


@pytest.fixture
def member_headers(client: TestClient) -> dict[str, str]:
    return sign_in(client, MEMBER_CONTACT)


@pytest.fixture
def space(client: TestClient, admin_headers: dict[str, str]) -> dict[str, Any]:
    """A space created by the demo admin."""
    response = client.post("/api/v1/spaces", json={"name": "Book Club", "emoji": "📚"}, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def joined_space(client: TestClient, space: dict[str, Any], member_headers: dict[str, str]) -> dict[str, Any]:
    """The admin's space after the demo member joined it."""
    response = client.post(f"/api/v1/spaces/{space['invite_code']}/join", headers=member_headers)
    assert response.status_code == 201, response.text
    return space
