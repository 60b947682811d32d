import sqlite3

import pytest

from dcwallet import db_config
from dcwallet.database import Database
from dcwallet.db_config import ConfigNotFoundError


@pytest.fixture
def db():
    connection = sqlite3.connect(":memory:")
    connection.executescript(
        """
        CREATE TABLE t_app_config_int (k TEXT PRIMARY KEY, v INTEGER);
        CREATE TABLE t_app_config_str (k TEXT PRIMARY KEY, v TEXT);
        CREATE TABLE t_app_status_int (k TEXT PRIMARY KEY, v INTEGER);
        CREATE TABLE t_address_key (
            id INTEGER PRIMARY KEY, symbol TEXT, address TEXT, use_tag INTEGER
        );
        CREATE TABLE t_app_lock (
            id INTEGER PRIMARY KEY, k TEXT UNIQUE, v INTEGER, create_time INTEGER
        );
        """
    )
    yield Database(connection)
    connection.close()


class RecordingDb:
    """Stands in for Database where the SQL is MySQL-only."""

    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def _record(self, kind, query, params):
        self.calls.append((kind, query, params))
        return self.result

    def get(self, query, params):
        return self._record("get", query, params)

    def get_scalar(self, query, params):
        return self._record("get_scalar", query, params)

    def execute_last_id(self, query, params):
        return self._record("execute_last_id", query, params)


def _add_keys(db, rows):
    db.execute_many("INSERT INTO t_address_key (id, symbol, address, use_tag) VALUES %s", rows)


def test_config_int_and_str(db):
    db.connection.execute("INSERT INTO t_app_config_int VALUES ('min_free_address', 10)")
    db.connection.execute("INSERT INTO t_app_config_str VALUES ('cold_wallet_address', 'addr')")
    assert db_config.get_app_config_int(db, "min_free_address") == 10
    assert db_config.get_app_config_str(db, "cold_wallet_address") == "addr"


@pytest.mark.parametrize(
    "func, message",
    [
        (db_config.get_app_config_int, "no app config int of: missing"),
        (db_config.get_app_config_str, "no app config str of: missing"),
        (db_config.get_app_status_int, "no app status int of: missing"),
    ],
)
def test_missing_key_raises(db, func, message):
    with pytest.raises(ConfigNotFoundError) as info:
        func(db, "missing")
    assert str(info.value) == message


def test_status_updates(db):
    db.connection.execute("INSERT INTO t_app_status_int VALUES ('seek_num', 5)")
    assert db_config.update_app_status_int_if_greater(db, "seek_num", 3) == 0
    assert db_config.get_app_status_int(db, "seek_num") == 5
    assert db_config.update_app_status_int_if_greater(db, "seek_num", 9) == 1
    assert db_config.get_app_status_int(db, "seek_num") == 9
    assert db_config.update_app_status_int(db, "seek_num", 2) == 1
    assert db_config.get_app_status_int(db, "seek_num") == 2


def test_update_config_str(db):
    db.connection.execute("INSERT INTO t_app_config_str VALUES ('hot', 'old')")
    assert db_config.update_app_config_str(db, "hot", "new") == 1
    assert db_config.get_app_config_str(db, "hot") == "new"
    assert db_config.update_app_config_str(db, "absent", "x") == 0


def test_free_address_keys(db):
    _add_keys(db, [(1, "eth", "a1", 0), (2, "eth", "a2", 1), (3, "eth", "a3", 0), (4, "btc", "b1", 0)])
    assert db_config.count_free_address_keys(db, "eth") == 2
    assert db_config.count_free_address_keys(db, "eos") == 0
    rows = db_config.select_address_keys_by_tag_and_symbol(db, ["id", "address"], 0, "eth")
    assert rows == [{"id": 1, "address": "a1"}, {"id": 3, "address": "a3"}]


def test_address_key_lookup(db):
    _add_keys(db, [(1, "eth", "a1", 0), (2, "eth", "a2", 1)])
    rows = db_config.select_address_keys_by_address(db, ["address", "use_tag"], ["a2", "nope"])
    assert rows == [{"address": "a2", "use_tag": 1}]
    assert db_config.select_address_keys_by_address(db, ["address"], []) == []
    assert db_config.get_address_key_by_address(db, ["id"], "a1") == {"id": 1}
    assert db_config.get_address_key_by_address(db, ["id"], "nope") is None


def test_app_lock_held_only_when_v_is_one(db):
    db.connection.execute("INSERT INTO t_app_lock (k, v, create_time) VALUES ('job', 1, 100)")
    assert db_config.get_app_lock(db, ["create_time"], "job") == {"create_time": 100}
    count = db_config.update_app_lock(db, {"k": "job", "v": 0, "create_time": 200})
    assert count == 1
    assert db_config.get_app_lock(db, ["create_time"], "job") is None


def test_upsert_app_lock_without_id():
    fake = RecordingDb(result=7)
    assert db_config.upsert_app_lock(fake, {"k": "job", "v": 1, "create_time": 50}) == 7
    kind, query, params = fake.calls[0]
    assert "ON DUPLICATE KEY UPDATE" in query
    assert params == {"k": "job", "v": 1, "create_time": 50}


def test_upsert_app_lock_with_id():
    fake = RecordingDb(result=3)
    assert db_config.upsert_app_lock(fake, {"id": 3, "k": "job", "v": 1, "create_time": 50}) == 3
    _, query, params = fake.calls[0]
    assert params["id"] == 3
    assert ":id" in query


def test_free_address_key_for_update_locks_row():
    fake = RecordingDb(result={"id": 4})
    assert db_config.get_free_address_key_for_update(fake, ["id"], "eth") == {"id": 4}
    _, query, params = fake.calls[0]
    assert query.rstrip().endswith("FOR UPDATE")
    assert params == {"symbol": "eth"}


@pytest.mark.parametrize("stored, expected", [("42", 42), (17, 17), (None, 0)])
def test_max_eos_address(stored, expected):
    assert db_config.get_max_eos_address(RecordingDb(result=stored)) == expected


def test_max_eos_address_rejects_non_number():
    with pytest.raises(ValueError):
        db_config.get_max_eos_address(RecordingDb(result="abc"))