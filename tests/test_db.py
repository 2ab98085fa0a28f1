import sqlite3

import pytest

from dcaf.aif import Method
from dcaf.db import Database, KeyRecord, Rule


@pytest.fixture
def db():
    database = Database("test", memonly=True)
    yield database
    database.close()


def test_groups_are_returned_for_their_kid(db):
    db.add_to_group("alice", "admins")
    db.add_to_group("alice", "users")
    db.add_to_group("bob", "users")
    assert db.find_groups("alice") == ["admins", "users"]
    assert db.find_groups("bob") == ["users"]


def test_unknown_kid_has_no_groups(db):
    db.add_to_group("alice", "admins")
    assert db.find_groups("carol") == []


def test_rules_are_kept_per_audience_in_order(db):
    first = Rule("/r", "users", int(Method.GET))
    second = Rule("/a/led", "*", int(Method.GET | Method.PUT))
    other = Rule("/x", "admins", int(Method.POST))
    db.add_to_rules("light", first)
    db.add_to_rules("light", second)
    db.add_to_rules("lock", other)
    assert db.find_rules("light") == [first, second]
    assert db.find_rules("lock") == [other]
    assert db.find_rules("unknown") == []


def test_find_rules_returns_a_copy(db):
    rule = Rule("/r", "users", 1)
    db.add_to_rules("light", rule)
    db.find_rules("light").clear()
    assert db.find_rules("light") == [rule]


def test_key_round_trip(db):
    db.keys.add("dcaf", 1, "secret", 1233456)
    assert db.keys.get_by_id("dcaf") == [KeyRecord("dcaf", "secret", 1, 1233456)]


def test_unknown_key_yields_nothing(db):
    db.keys.add("dcaf", 1, "secret", 10)
    assert db.keys.get_by_id("other") == []


def test_multiple_keys_same_kid_in_order(db):
    db.keys.add("dcaf", 1, "secret", 10)
    db.keys.add("dcaf", 2, "token", 20)
    records = db.keys.get_by_id("dcaf")
    assert [r.key_type for r in records] == [1, 2]
    assert [r.data for r in records] == ["secret", "token"]


def test_file_database_persists_keys(tmp_path):
    path = str(tmp_path / "am.db")
    with Database(path) as first:
        first.keys.add("dcaf", 1, "secret", 99)
    with Database(path) as second:
        assert second.keys.get_by_id("dcaf") == [KeyRecord("dcaf", "secret", 1, 99)]


def test_close_makes_database_false_and_keys_unusable():
    database = Database("test", memonly=True)
    assert bool(database) is True
    database.close()
    assert bool(database) is False
    with pytest.raises(sqlite3.ProgrammingError):
        database.keys.get_by_id("dcaf")


def test_context_manager_closes():
    with Database("test", memonly=True) as database:
        database.add_to_group("alice", "users")
        assert database.find_groups("alice") == ["users"]
    assert not database


def test_memonly_databases_are_independent():
    with Database("test", memonly=True) as one, Database("test", memonly=True) as two:
        one.keys.add("dcaf", 1, "secret", 1)
        assert two.keys.get_by_id("dcaf") == []
        assert len(one.keys.get_by_id("dcaf")) == 1