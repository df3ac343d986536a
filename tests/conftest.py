"""Shared fixtures for database-backed tests."""

import threading

import pytest
from sqlalchemy import event

from training_analytics.db.database import Database
from training_analytics.db.store import WorkoutStore


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    database = Database("sqlite:///:memory:")
    database.create_tables()
    yield database
    database.close()


@pytest.fixture
def store(db):
    return WorkoutStore(db)



@pytest.fixture
def file_db(tmp_path):
    """SQLite file database; each thread gets its own connection."""
    database = Database(f"sqlite:///{tmp_path / 'analytics.db'}")
    database.create_tables()
    yield database
    database.close()


@pytest.fixture
def hold_statements():
    """Make two threads reach a statement before either executes it.

    Call with a database and a statement prefix. The returned barrier is
    aborted on teardown so a failing thread cannot hang the other.
    """
    registered = []

    def hold(database, prefix):
        barrier = threading.Barrier(2, timeout=10)

        def before_execute(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith(prefix.upper()):
                barrier.wait()

        event.listen(database.engine, "before_cursor_execute", before_execute)
        registered.append((database.engine, before_execute, barrier))
        return barrier

    yield hold

    for engine, listener, barrier in registered:
        barrier.abort()
        event.remove(engine, "before_cursor_execute", listener)


@pytest.fixture
def run_concurrently():
    """Run callables on separate threads; return (results, errors) in call order."""

    def run_all(*calls):
        results = [None] * len(calls)
        errors = [None] * len(calls)

        def run(index, call):
            try:
                results[index] = call()
            except Exception as e:
                errors[index] = e

        threads = [threading.Thread(target=run, args=(i, call)) for i, call in enumerate(calls)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return results, errors

    return run_all
