"""
Test that the required database indexes and constraints exist.
"""

from sqlalchemy import inspect


def _unique_constraint_names(inspector, table):
    return {c["name"] for c in inspector.get_unique_constraints(table)}


def test_all_tables_created(engine):
    inspector = inspect(engine)
    for table in ("app_users", "activity_records", "todos", "challenges", "user_challenges"):
        assert inspector.has_table(table), f"Missing table {table}"


def test_activity_records_one_entry_per_day(engine):
    inspector = inspect(engine)
    assert "uq_activity_records_user_date" in _unique_constraint_names(inspector, "activity_records")
    indexes = {idx["name"] for idx in inspector.get_indexes("activity_records")}
    assert "idx_activity_records_user_date" in indexes


def test_todos_indexes(engine):
    indexes = {idx["name"] for idx in inspect(engine).get_indexes("todos")}
    assert "idx_todos_user_created" in indexes


def test_challenge_indexes_and_progress_uniqueness(engine):
    inspector = inspect(engine)
    indexes = {idx["name"] for idx in inspector.get_indexes("challenges")}
    assert "idx_challenges_source_created" in indexes
    assert "uq_user_challenges_user_challenge" in _unique_constraint_names(inspector, "user_challenges")
