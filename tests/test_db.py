"""Tests for database layer."""

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import OperationalError

from src.db.connection import Database, get_db, init_db, postgres_url
from src.db.migrations import (
    MIGRATIONS_DIR,
    applied_versions,
    migrate,
    pending_migrations,
    split_statements,
)
from src.db.models import CustomerRepository
from src.db.provider import DatabaseResolution, DbProvider


@pytest.fixture
def db():
    """Create an in-memory database for testing."""
    database = Database(DatabaseResolution(DbProvider.IN_MEMORY))
    yield database
    database.dispose()


@pytest.fixture
def sqlite_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'migrations.db'}")
    yield engine
    engine.dispose()


class TestDatabase:
    def test_in_memory_schema_created(self, db):
        assert inspect(db.engine).has_table("customers")

    def test_in_memory_is_shared_across_sessions(self, db):
        with db.session() as session:
            CustomerRepository(session).create("Ada")
        with db.session() as session:
            assert [c.name for c in CustomerRepository(session).get_all()] == ["Ada"]

    def test_session_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.session() as session:
                CustomerRepository(session).create("Ada")
                raise RuntimeError("boom")
        with db.session() as session:
            assert CustomerRepository(session).get_all() == []

    def test_init_db_in_memory_skips_migrations(self):
        database = init_db(DatabaseResolution(DbProvider.IN_MEMORY))
        try:
            assert get_db() is database
            assert not inspect(database.engine).has_table("schema_migrations")
        finally:
            database.dispose()

    def test_postgres_url(self):
        url = postgres_url("Host=svc;Port=5432;Database=d;Username=u;Password=p")
        assert url.drivername == "postgresql+psycopg2"
        assert (url.host, url.port, url.database, url.username, url.password) == (
            "svc",
            5432,
            "d",
            "u",
            "p",
        )

    def test_postgres_url_with_npgsql_keys(self):
        url = postgres_url(
            "Server=db.example;Port=5432;Database=c;User Id=app;Password=pw;SSL Mode=Require"
        )
        assert (url.host, url.port, url.database, url.username, url.password) == (
            "db.example",
            5432,
            "c",
            "app",
            "pw",
        )
        assert url.query == {"sslmode": "require"}

    def test_init_db_applies_migrations_when_requested(self):
        database = init_db(DatabaseResolution(DbProvider.IN_MEMORY), migrate=True)
        try:
            assert applied_versions(database.engine) == {"001_customers"}
        finally:
            database.dispose()

    def test_postgres_url_without_port(self):
        url = postgres_url("Host=;Port=-1;Database=;Username=;Password=")
        assert url.port is None
        assert url.host is None


class TestCustomerRepository:
    def test_create_and_get(self, db):
        with db.session() as session:
            customer_id = CustomerRepository(session).create("  Grace Hopper ")
        assert customer_id > 0

        with db.session() as session:
            customer = CustomerRepository(session).get(customer_id)
        assert customer is not None
        assert customer.name == "Grace Hopper"

    def test_get_nonexistent(self, db):
        with db.session() as session:
            assert CustomerRepository(session).get(999) is None

    def test_get_all_ordered_by_id(self, db):
        with db.session() as session:
            repo = CustomerRepository(session)
            repo.create("Zed")
            repo.create("Amy")
        with db.session() as session:
            assert [c.name for c in CustomerRepository(session).get_all()] == ["Zed", "Amy"]

    def test_update(self, db):
        with db.session() as session:
            customer_id = CustomerRepository(session).create("Old")
        with db.session() as session:
            assert CustomerRepository(session).update(customer_id, "New") is True
        with db.session() as session:
            assert CustomerRepository(session).get(customer_id).name == "New"

    def test_update_nonexistent(self, db):
        with db.session() as session:
            assert CustomerRepository(session).update(42, "Name") is False

    def test_delete(self, db):
        with db.session() as session:
            customer_id = CustomerRepository(session).create("Gone")
        with db.session() as session:
            assert CustomerRepository(session).delete(customer_id) is True
        with db.session() as session:
            assert CustomerRepository(session).delete(customer_id) is False

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_invalid_name_rejected(self, db, name):
        with db.session() as session:
            with pytest.raises(ValueError):
                CustomerRepository(session).create(name)


class TestMigrations:
    def test_split_statements(self):
        sql = "CREATE TABLE a (id INT);\n\n  CREATE TABLE b (id INT);\n"
        assert split_statements(sql) == ["CREATE TABLE a (id INT)", "CREATE TABLE b (id INT)"]

    def test_bundled_migrations_present(self):
        assert (MIGRATIONS_DIR / "001_customers.sql").exists()

    def test_applies_pending_only(self, sqlite_engine, tmp_path):
        migrations_dir = tmp_path / "sql"
        migrations_dir.mkdir()
        (migrations_dir / "001_first.sql").write_text(
            "CREATE TABLE a (id INTEGER PRIMARY KEY);\nCREATE TABLE b (id INTEGER PRIMARY KEY);\n"
        )

        assert migrate(sqlite_engine, migrations_dir) == ["001_first"]
        assert inspect(sqlite_engine).has_table("b")
        assert migrate(sqlite_engine, migrations_dir) == []

        (migrations_dir / "002_second.sql").write_text("CREATE TABLE c (id INTEGER PRIMARY KEY);")
        assert [p.stem for p in pending_migrations(sqlite_engine, migrations_dir)] == ["002_second"]
        assert migrate(sqlite_engine, migrations_dir) == ["002_second"]
        assert applied_versions(sqlite_engine) == {"001_first", "002_second"}

    def test_failed_migration_not_recorded(self, sqlite_engine, tmp_path):
        migrations_dir = tmp_path / "sql"
        migrations_dir.mkdir()
        (migrations_dir / "001_ok.sql").write_text("CREATE TABLE a (id INTEGER PRIMARY KEY);")
        (migrations_dir / "002_broken.sql").write_text("CREATE TABLE oops (;")

        with pytest.raises(OperationalError):
            migrate(sqlite_engine, migrations_dir)

        assert applied_versions(sqlite_engine) == {"001_ok"}
