# backend/tests/conftest.py
"""
Pytest configuration for routeshare backend tests.

- Ensures that the project root (backend/) is added to sys.path
  so that `import routeshare.*` works correctly in tests.
- Ensures required environment variables for tests are set
  with safe dummy values (e.g., SUPABASE_URL, SUPABASE_ANON_KEY).
- Provides an in-memory table client and a controllable clock so that
  services can be tested without network access or wall-clock waits.
"""

import os
import sys
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest


def _ensure_project_root_in_sys_path() -> None:
    # This file is located at: backend/tests/conftest.py
    # parents[1] -> backend/
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)

    if project_root_str not in sys.path:
        # Insert at the beginning so it has priority over site-packages, etc.
        sys.path.insert(0, project_root_str)


def _ensure_test_env_vars() -> None:
    """
    Set dummy environment variables required for tests.

    These values are only for local testing and do NOT contain real secrets.
    """
    os.environ.setdefault("SUPABASE_URL", "https://dummy-project.supabase.co")
    os.environ.setdefault("SUPABASE_ANON_KEY", "dummy-anon-key-for-tests")


_ensure_project_root_in_sys_path()
_ensure_test_env_vars()


class FakeTableClient:
    """
    TableClient のインメモリ実装。

    - テーブルごとに dict のリストでレコードを保持する
    - 呼び出し履歴を calls に記録する
    - failures に操作名 -> 例外 を登録すると、その操作で例外を投げる
    """

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Tuple[str, str]] = []
        self.failures: Dict[str, Exception] = {}
        self._next_id = 1

    def _record(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        exc = self.failures.get(operation)
        if exc is not None:
            raise exc

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        for column, expected in (filters or {}).items():
            value = row.get(column)
            if isinstance(expected, (list, tuple, set)):
                if value not in expected:
                    return False
            elif value != expected:
                return False
        return True

    def count(self, operation: str, table: Optional[str] = None) -> int:
        return sum(
            1 for op, tbl in self.calls if op == operation and (table is None or tbl == table)
        )

    def seed(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(row)
        if "id" not in stored:
            stored["id"] = self._next_id
            self._next_id += 1
        self.tables[table].append(stored)
        return stored

    def select(
        self,
        table: str,
        *,
        filters: Optional[Dict[str, Any]] = None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        self._record("select", table)
        rows = [dict(row) for row in self.tables[table] if self._matches(row, filters)]
        if order_by:
            rows.sort(key=lambda row: row.get(order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        self._record("insert", table)
        stored = self.seed(table, record)
        return dict(stored)

    def update(
        self,
        table: str,
        *,
        filters: Dict[str, Any],
        patch: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        self._record("update", table)
        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(patch)
                updated.append(dict(row))
        return updated

    def delete(self, table: str, *, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._record("delete", table)
        removed = [row for row in self.tables[table] if self._matches(row, filters)]
        self.tables[table] = [row for row in self.tables[table] if not self._matches(row, filters)]
        return [dict(row) for row in removed]


class FakeClock:
    """手動で進められる時計。"""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def fake_table() -> FakeTableClient:
    return FakeTableClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))
