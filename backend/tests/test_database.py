import pytest
from sqlalchemy import func, select, text

from messenger.database import create_db_engine, session_scope, transaction
from messenger.exceptions import DatabaseConnectionError, DatabaseStatementError, NotFound
from messenger.models import ListMembership, UserList


def test_foreign_keys_are_enforced(db, alice):
    with pytest.raises(DatabaseStatementError):
        with transaction(db):
            db.add(ListMembership(list_id=1, list_member="nobody"))


def test_statement_errors_are_translated(db):
    with pytest.raises(DatabaseStatementError):
        with transaction(db):
            db.execute(text("SELECT * FROM usr WHERE"))


def test_missing_table_is_a_statement_error(db):
    with pytest.raises(DatabaseStatementError):
        with transaction(db):
            db.execute(text("SELECT * FROM no_such_table"))


def test_domain_errors_roll_back(db):
    with pytest.raises(NotFound):
        with transaction(db):
            db.add(UserList(list_type="contact"))
            db.flush()
            raise NotFound()

    assert db.execute(select(func.count()).select_from(UserList)).scalar() == 0


def test_session_is_usable_after_a_failure(db, users):
    with pytest.raises(DatabaseStatementError):
        with transaction(db):
            db.execute(text("SELECT * FROM usr WHERE"))

    assert users.register_user("alice", "secret1", "555-0100").login == "alice"


def test_session_scope_closes_session(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'scope.db'}")

    with session_scope(engine) as db:
        assert db.execute(text("SELECT 1")).scalar() == 1

    assert not db.in_transaction()


def test_unreachable_database_is_a_connection_error(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}")

    with session_scope(engine) as db:
        with pytest.raises(DatabaseConnectionError):
            with transaction(db):
                db.execute(text("SELECT 1"))
