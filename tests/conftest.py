"""
Pytest configuration and fixtures for controller tests.

InMemoryCollection is a test double with the async surface of a Motor
collection. It understands the subset of the query language the
controllers emit: equality (including array membership), $exists, $in,
$ne, $set/$unset updates, pipeline $set stages, sort/limit/skip.
"""

import copy
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure
from pymongo.results import (
    DeleteResult,
    InsertManyResult,
    InsertOneResult,
    UpdateResult,
)

from collection_controller import create_controller


_MISSING = object()


def _equals(value: Any, expected: Any) -> bool:
    if value == expected:
        return True
    return isinstance(value, list) and expected in value


def _matches(document: dict, query: dict) -> bool:
    for key, condition in query.items():
        value = document.get(key, _MISSING)
        is_operator = (
            isinstance(condition, dict)
            and condition
            and all(k.startswith("$") for k in condition)
        )

        if not is_operator:
            if value is _MISSING or not _equals(value, condition):
                return False
            continue

        for op, arg in condition.items():
            if op == "$exists":
                if (value is not _MISSING) != bool(arg):
                    return False
            elif op == "$in":
                if value is _MISSING or not any(_equals(value, a) for a in arg):
                    return False
            elif op == "$ne":
                if value is not _MISSING and _equals(value, arg):
                    return False
            else:
                raise NotImplementedError(f"Operator {op} not supported by test double")
    return True


def _apply_update(document: dict, update: Any) -> bool:
    before = copy.deepcopy(document)
    stages = update if isinstance(update, list) else [update]

    for stage in stages:
        for op, fields in stage.items():
            if op == "$set":
                document.update(fields)
            elif op == "$unset":
                for key in fields:
                    document.pop(key, None)
            else:
                raise NotImplementedError(f"Update {op} not supported by test double")
    return document != before


class InMemoryCursor:
    def __init__(self, documents: list[dict]):
        self._documents = documents

    async def to_list(self, length: int | None = None) -> list[dict]:
        if length is None:
            return list(self._documents)
        return self._documents[:length]


class InMemoryCollection:
    """Async collection double backed by a list of dicts."""

    def __init__(self, name: str = "items"):
        self.name = name
        self.documents: list[dict] = []
        self.indexes: dict[str, Any] = {"_id_": [("_id", 1)]}

    def _select(self, query: dict) -> list[dict]:
        return [doc for doc in self.documents if _matches(doc, query)]

    async def insert_one(self, document: dict, **kwargs) -> InsertOneResult:
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return InsertOneResult(document["_id"], True)

    async def insert_many(self, documents: list[dict], **kwargs) -> InsertManyResult:
        inserted_ids = []
        for document in documents:
            document.setdefault("_id", ObjectId())
            self.documents.append(copy.deepcopy(document))
            inserted_ids.append(document["_id"])
        return InsertManyResult(inserted_ids, True)

    def find(
        self,
        query: dict | None = None,
        *,
        limit: int = 0,
        skip: int = 0,
        sort: list | None = None,
        **kwargs,
    ) -> InMemoryCursor:
        items = [copy.deepcopy(doc) for doc in self._select(query or {})]
        for key, direction in reversed(sort or []):
            items.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        items = items[skip:]
        if limit:
            items = items[:limit]
        return InMemoryCursor(items)

    async def find_one(self, query: dict | None = None, **kwargs) -> dict | None:
        items = self._select(query or {})
        return copy.deepcopy(items[0]) if items else None

    async def count_documents(self, query: dict, **kwargs) -> int:
        return len(self._select(query))

    async def distinct(self, key: str, query: dict | None = None, **kwargs) -> list:
        values: list = []
        for doc in self._select(query or {}):
            value = doc.get(key, _MISSING)
            if value is _MISSING:
                continue
            for item in value if isinstance(value, list) else [value]:
                if item not in values:
                    values.append(item)
        return values

    async def update_one(self, query: dict, update: Any, **kwargs) -> UpdateResult:
        matched = self._select(query)[:1]
        modified = sum(_apply_update(doc, update) for doc in matched)
        return UpdateResult({"n": len(matched), "nModified": modified}, True)

    async def update_many(self, query: dict, update: Any, **kwargs) -> UpdateResult:
        matched = self._select(query)
        modified = sum(_apply_update(doc, update) for doc in matched)
        return UpdateResult({"n": len(matched), "nModified": modified}, True)

    async def delete_one(self, query: dict, **kwargs) -> DeleteResult:
        matched = self._select(query)[:1]
        for doc in matched:
            self.documents.remove(doc)
        return DeleteResult({"n": len(matched)}, True)

    async def delete_many(self, query: dict, **kwargs) -> DeleteResult:
        matched = self._select(query)
        for doc in matched:
            self.documents.remove(doc)
        return DeleteResult({"n": len(matched)}, True)

    async def create_index(self, keys: Any, *, name: str, **kwargs) -> str:
        self.indexes[name] = keys
        return name

    async def drop_index(self, name: str, **kwargs) -> None:
        if name not in self.indexes:
            raise OperationFailure(f"index not found with name [{name}]", code=27)
        del self.indexes[name]


def make_mock_collection() -> MagicMock:
    """Collection mock for asserting the exact calls a controller makes."""
    collection = MagicMock()
    collection.name = "mocked"
    for method in (
        "insert_one", "insert_many", "find_one", "count_documents", "distinct",
        "update_one", "update_many", "delete_one", "delete_many",
        "create_index", "drop_index",
    ):
        setattr(collection, method, AsyncMock())

    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    return collection


@pytest.fixture
def collection():
    """Fresh in-memory collection for each test."""
    return InMemoryCollection()


@pytest.fixture
def mock_collection():
    return make_mock_collection()


@pytest.fixture
def plain_controller(collection):
    """Controller without timestamps or soft delete."""
    return create_controller(collection)


@pytest.fixture
def soft_controller(collection):
    """Controller with soft delete only."""
    return create_controller({"collection": collection, "use_soft_delete": True})


@pytest.fixture
def ts_controller(collection):
    """Controller with timestamps only."""
    return create_controller({"collection": collection, "use_timestamps": True})


@pytest.fixture
def full_controller(collection):
    """Controller with timestamps and soft delete."""
    return create_controller(
        {"collection": collection, "use_timestamps": True, "use_soft_delete": True}
    )
