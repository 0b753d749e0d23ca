"""
Pytest configuration file.

This file is automatically loaded by pytest and provides global test configuration.
It ensures the project's source directory is added to the Python path so that
modules can be imported properly during test execution, and provides an
in-memory stand-in for the MySQL student store.
"""
import os
import sys
from contextlib import contextmanager

import pytest

# Add the current directory to the Python path
# This ensures imports work correctly when running tests
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

import mysql.connector  # noqa: E402
import pandas as pd  # noqa: E402

COLUMNS = ["rollno", "name", "class", "branch", "gender", "dob", "prn"]


class FakeCursor:
    """Interprets the SELECT/UPDATE/INSERT statements issued by the reconciliation engine."""

    def __init__(self, store):
        self.store = store
        self._result = []
        self.closed = False

    def execute(self, sql, params=()):
        self.store.statements.append((sql, tuple(params)))
        if self.store.fail_on is not None and sql.lstrip().upper().startswith(self.store.fail_on):
            raise mysql.connector.errors.DatabaseError(msg="simulated failure")

        verb = sql.lstrip().split()[0].upper()
        if verb == "SELECT":
            prn = params[0]
            self._result = [(prn,)] if prn in self.store.pending or prn in self.store.rows else []
        elif verb == "UPDATE":
            row = dict(zip(COLUMNS, params))
            self.store.pending[row["prn"]] = row
        elif verb == "INSERT":
            row = dict(zip(COLUMNS, params))
            if row["prn"] in self.store.rows or row["prn"] in self.store.pending:
                raise mysql.connector.errors.IntegrityError(msg="Duplicate entry for key 'prn'")
            self.store.pending[row["prn"]] = row

    def fetchone(self):
        return self._result[0] if self._result else None

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, store):
        self.store = store
        self.commits = 0
        self.rollbacks = 0
        self.released = False

    def cursor(self, buffered=False):
        return FakeCursor(self.store)

    def commit(self):
        self.store.rows.update(self.store.pending)
        self.store.pending.clear()
        self.commits += 1

    def rollback(self):
        self.store.pending.clear()
        self.rollbacks += 1

    def is_connected(self):
        return True

    def close(self):
        self.released = True


class FakeStore:
    """
    Drop-in for StudentStore backed by a dict keyed on prn.

    ``rows`` holds committed records, ``pending`` uncommitted writes.
    Setting ``fail_on`` to "SELECT", "UPDATE" or "INSERT" makes that
    statement raise a MySQL error.
    """
    table = "studentsdata"

    def __init__(self):
        self.rows = {}
        self.pending = {}
        self.statements = []
        self.connections = []
        self.fail_on = None
        self.available = True

    @contextmanager
    def connection(self):
        conn = FakeConnection(self)
        self.connections.append(conn)
        try:
            yield conn
        finally:
            conn.close()

    def ping(self):
        return self.available

    def count(self, verb):
        return sum(1 for sql, _ in self.statements if sql.lstrip().upper().startswith(verb))


@pytest.fixture
def fake_store():
    """
    Fixture providing an empty in-memory student store.

    Returns:
        FakeStore: Store with no records
    """
    return FakeStore()


@pytest.fixture
def student_rows():
    """
    Fixture providing spreadsheet rows for two students.

    Returns:
        list: Row dictionaries keyed by the sheet's column names
    """
    return [
        {"rollno": "1", "name": "A", "class": "X", "branch": "CS", "gender": "M", "dob": 44197, "prn": "P1"},
        {"rollno": "2", "name": "B", "class": "X", "branch": "IT", "gender": "F", "dob": 44500, "prn": "P2"},
    ]


@pytest.fixture
def write_workbook(tmp_path):
    """
    Fixture returning a helper that writes rows to an .xlsx file.

    Returns:
        Callable: ``write_workbook(rows, name="students.xlsx") -> str`` path of the file
    """
    def _write(rows, name="students.xlsx", columns=None):
        path = tmp_path / name
        pd.DataFrame(rows, columns=columns).to_excel(path, index=False)
        return str(path)
    return _write
