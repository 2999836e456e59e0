import pytest


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self._last = None
        self.rowcount = 0

    def execute(self, sql, params=None):
        sql = " ".join(sql.split())
        self._conn.executed.append((sql, params))
        for needle, error in self._conn.fail_on:
            if needle in sql:
                raise error
        self._last = sql

    def _result(self):
        for needle, rows in self._conn.results:
            if needle in self._last:
                return rows
        return []

    def fetchone(self):
        rows = self._result()
        return rows[0] if rows else None

    def fetchall(self):
        return list(self._result())

    def close(self):
        self._conn.cursor_closed = True


class FakeConnection:
    def __init__(self):
        self.executed = []
        self.results = []
        self.fail_on = []
        self.committed = False
        self.rolled_back = False
        self.closed = False
        self.cursor_closed = False

    def cursor(self, dictionary=False):
        assert dictionary
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeConnFactory:
    def __init__(self):
        self.conn = FakeConnection()
        self.connects = 0

    def connect(self):
        self.connects += 1
        return self.conn


@pytest.fixture
def factory():
    return FakeConnFactory()
