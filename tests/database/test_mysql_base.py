from __future__ import annotations

from datetime import time, timedelta

import mysql.connector
import pytest

from src.academy_billing.academy_billing.core.exceptions import PersistenceError
from src.academy_billing.academy_billing.database.bootstrap import (
    _iter_sql_statements,
    _strip_create_db_and_use,
    _strip_line_comments,
)
from src.academy_billing.academy_billing.database.mysql_base import borrowed_cursor, db_cursor, normalize_mysql_time


class FakeCursor:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self):
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.cur = FakeCursor()

    def cursor(self, dictionary=True):
        return self.cur

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self):
        self.conn = FakeConnection()

    def connect(self, autocommit=False):
        return self.conn


def test_db_cursor_commits_on_success():
    factory = FakeFactory()

    with db_cursor(factory) as (conn, cur):
        assert cur is factory.conn.cur

    assert factory.conn.commits == 1
    assert factory.conn.rollbacks == 0
    assert factory.conn.cur.closed and factory.conn.closed


def test_db_cursor_without_commit_rolls_back():
    factory = FakeFactory()

    with db_cursor(factory, commit=False):
        pass

    assert factory.conn.commits == 0
    assert factory.conn.rollbacks == 1


def test_driver_error_becomes_persistence_error():
    factory = FakeFactory()

    with pytest.raises(PersistenceError):
        with db_cursor(factory):
            raise mysql.connector.Error("deadlock")

    assert factory.conn.commits == 0
    assert factory.conn.rollbacks == 1
    assert factory.conn.closed


def test_other_errors_roll_back_and_propagate():
    factory = FakeFactory()

    with pytest.raises(ValueError):
        with db_cursor(factory):
            raise ValueError("boom")

    assert factory.conn.rollbacks == 1


def test_borrowed_cursor_reuses_open_cursor():
    factory = FakeFactory()
    outer = object()

    with borrowed_cursor(factory, outer) as cur:
        assert cur is outer

    assert factory.conn.commits == 0


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        (time(8, 30), time(8, 30)),
        (timedelta(hours=23, minutes=15), time(23, 15)),
        ("08:30:00", time(8, 30)),
        ("08:30", time(8, 30)),
        ("bad", "bad"),
    ],
)
def test_normalize_mysql_time(raw, expected):
    assert normalize_mysql_time(raw) == expected


def test_schema_splitter_ignores_semicolons_in_quotes():
    sql = """
    CREATE DATABASE IF NOT EXISTS academy;
    USE academy;
    -- comment; with semicolon
    CREATE TABLE a (note VARCHAR(10) DEFAULT 'x;y');
    CREATE TABLE b (id INT)
    """

    cleaned = _strip_line_comments(_strip_create_db_and_use(sql))
    statements = list(_iter_sql_statements(cleaned))

    assert statements == [
        "CREATE TABLE a (note VARCHAR(10) DEFAULT 'x;y')",
        "CREATE TABLE b (id INT)",
    ]
