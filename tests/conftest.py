"""In-memory Supabase stand-ins shared by the service tests."""

from __future__ import annotations

import copy
import itertools
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from postgrest.exceptions import APIError


class FakeTable:
    """Chainable query builder over a list of dict rows."""

    def __init__(self, client: "FakeClient", name: str):
        self.client = client
        self.name = name
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Any] = []
        self._order: List[Any] = []
        self._limit = None
        self._single = False

    # -- verbs --------------------------------------------------------------
    def select(self, columns: str = "*"):
        self._op = "select"
        self._payload = columns
        return self

    def insert(self, rows):
        self._op = "insert"
        self._payload = rows if isinstance(rows, list) else [rows]
        return self

    def update(self, patch):
        self._op = "update"
        self._payload = dict(patch)
        return self

    def delete(self):
        self._op = "delete"
        return self

    # -- filters ------------------------------------------------------------
    def eq(self, column, value):
        self._filters.append(("eq", column, value))
        return self

    def in_(self, column, values):
        self._filters.append(("in", column, list(values)))
        return self

    def or_(self, expression):
        self._filters.append(("or", expression, None))
        return self

    def order(self, column, desc=False):
        self._order.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._single = True
        return self

    # -- execution ----------------------------------------------------------
    def _matches(self, row: Dict[str, Any]) -> bool:
        for kind, column, value in self._filters:
            if kind == "or" or "." in column:
                # Embedded-resource filters are resolved by the database.
                continue
            if kind == "eq" and row.get(column) != value:
                return False
            if kind == "in" and row.get(column) not in value:
                return False
        return True

    def execute(self):
        self.client.calls.append(
            SimpleNamespace(table=self.name, op=self._op, payload=self._payload, filters=list(self._filters))
        )
        if (self.name, self._op) in self.client.failures:
            raise APIError(self.client.failures[(self.name, self._op)])

        rows = self.client.tables.setdefault(self.name, [])
        if self._op == "insert":
            created = []
            for row in self._payload:
                stored = dict(row)
                stored.setdefault(f"{self.name}_id", next(self.client.ids))
                rows.append(stored)
                created.append(copy.deepcopy(stored))
            return SimpleNamespace(data=created)

        matched = [row for row in rows if self._matches(row)]
        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return SimpleNamespace(data=copy.deepcopy(matched))
        if self._op == "delete":
            self.client.tables[self.name] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=copy.deepcopy(matched))

        for column, desc in reversed(self._order):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        if self._single:
            if len(matched) != 1:
                raise APIError(
                    {
                        "message": "JSON object requested, multiple (or no) rows returned",
                        "code": "PGRST116",
                        "hint": None,
                        "details": f"The result contains {len(matched)} rows",
                    }
                )
            return SimpleNamespace(data=copy.deepcopy(matched[0]))
        return SimpleNamespace(data=copy.deepcopy(matched))


class FakeClient:
    def __init__(self, tables: Dict[str, List[Dict[str, Any]]] | None = None):
        self.tables = copy.deepcopy(tables or {})
        self.calls: List[SimpleNamespace] = []
        self.failures: Dict[tuple, Dict[str, Any]] = {}
        self.ids = itertools.count(1000)

    def table(self, name: str) -> FakeTable:
        return FakeTable(self, name)

    def fail(self, table: str, op: str, message: str = "boom", code: str = "XX000") -> None:
        self.failures[(table, op)] = {"message": message, "code": code, "hint": None, "details": None}

    def ops(self, table: str, op: str) -> List[SimpleNamespace]:
        return [call for call in self.calls if call.table == table and call.op == op]


@pytest.fixture
def make_client():
    """Factory for FakeClient instances seeded with table rows."""
    return FakeClient


@pytest.fixture
def use_client(monkeypatch):
    """Install a FakeClient as ``get_client`` in the given modules."""

    def _install(client: FakeClient, *modules) -> FakeClient:
        for module in modules:
            monkeypatch.setattr(module, "get_client", lambda: client)
        return client

    return _install


@pytest.fixture
def fake_st(monkeypatch):
    """Replace ``st`` in the given modules with a dict-backed stand-in."""
    state: Dict[str, Any] = {}
    reruns: List[bool] = []
    stub = SimpleNamespace(
        session_state=state,
        rerun=lambda: reruns.append(True),
        error=lambda *a, **k: None,
        success=lambda *a, **k: None,
        reruns=reruns,
    )

    def _install(*modules):
        for module in modules:
            monkeypatch.setattr(module, "st", stub)
        return stub

    return _install
