from __future__ import annotations

from datetime import date

import pytest
from mysql.connector import errorcode, errors

from src.hostel_system.hostel_system.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from src.hostel_system.hostel_system.core.enums import AttendanceStatus, RoomType
from src.hostel_system.hostel_system.core.exceptions import ConflictError, StorageUnavailableError
from src.hostel_system.hostel_system.database import connection as connection_module
from src.hostel_system.hostel_system.database.connection import DatabaseConnection, DBConfig
from src.hostel_system.hostel_system.database.mysql_base import db_cursor, db_transaction
from src.hostel_system.hostel_system.fees.mysql_fee_repository import MySQLFeeRepository
from src.hostel_system.hostel_system.rooms.mysql_occupancy_store import MySQLOccupancyStore


class StubCursor:
    def __init__(self, *, fail_with=None, rowcount=1, lastrowid=7):
        self.fail_with = fail_with
        self.rowcount = rowcount
        self.lastrowid = lastrowid
        self.statements: list[tuple[str, tuple]] = []
        self.closed = False

    def execute(self, sql, params=()):
        self.statements.append((sql, tuple(params)))
        if self.fail_with is not None:
            raise self.fail_with

    def fetchone(self):
        return None

    def fetchall(self):
        return []

    def close(self):
        self.closed = True


class StubConnection:
    def __init__(self, cursor: StubCursor):
        self.cur = cursor
        self.calls: list[str] = []

    def start_transaction(self):
        self.calls.append("start_transaction")

    def cursor(self, dictionary=False):
        self.calls.append("cursor")
        return self.cur

    def commit(self):
        self.calls.append("commit")

    def rollback(self):
        self.calls.append("rollback")

    def close(self):
        self.calls.append("close")


class StubConnectionFactory:
    """Hands out one prepared connection, the way DatabaseConnection.connect() would."""

    def __init__(self, **cursor_kwargs):
        self.conn = StubConnection(StubCursor(**cursor_kwargs))

    def connect(self):
        return self.conn


def duplicate_key() -> errors.IntegrityError:
    return errors.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)


def test_db_cursor_commits_and_closes_on_success():
    factory = StubConnectionFactory()

    with db_cursor(factory) as (_, cur):
        cur.execute("SELECT 1")

    assert factory.conn.calls == ["cursor", "commit", "close"]
    assert factory.conn.cur.closed is True


def test_db_transaction_starts_transaction_first():
    factory = StubConnectionFactory()

    with db_transaction(factory) as (_, cur):
        cur.execute("SELECT 1")

    assert factory.conn.calls == ["start_transaction", "cursor", "commit", "close"]


def test_integrity_error_rolls_back_and_propagates():
    factory = StubConnectionFactory(fail_with=duplicate_key())

    with pytest.raises(errors.IntegrityError):
        with db_transaction(factory) as (_, cur):
            cur.execute("INSERT INTO rooms(room_no) VALUES(%s)", ("A101",))

    assert "rollback" in factory.conn.calls
    assert "commit" not in factory.conn.calls
    assert factory.conn.calls[-1] == "close"


def test_application_error_rolls_back():
    factory = StubConnectionFactory()

    with pytest.raises(ConflictError):
        with db_transaction(factory) as (_, cur):
            cur.execute("SELECT 1")
            raise ConflictError("Room is full")

    assert factory.conn.calls == ["start_transaction", "cursor", "rollback", "close"]


@pytest.mark.parametrize(
    "error",
    [
        errors.OperationalError(msg="Lost connection to MySQL server during query", errno=2013),
        errors.InterfaceError(msg="Connection not available"),
        errors.DatabaseError(msg="Lock wait timeout exceeded", errno=errorcode.ER_LOCK_WAIT_TIMEOUT),
        errors.DatabaseError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK),
    ],
)
def test_transient_errors_become_storage_unavailable(error):
    factory = StubConnectionFactory(fail_with=error)

    with pytest.raises(StorageUnavailableError) as excinfo:
        with db_transaction(factory) as (_, cur):
            cur.execute("SELECT 1 FOR UPDATE")

    assert excinfo.value.__cause__ is error
    assert "commit" not in factory.conn.calls
    assert factory.conn.calls[-1] == "close"


def test_closed_factory_refuses_connections():
    factory = DatabaseConnection(DBConfig(host="localhost", port=3306, user="root", password="", database="hostel_db"))
    factory.close()

    with pytest.raises(StorageUnavailableError):
        factory.connect()


def test_connect_failure_becomes_storage_unavailable(monkeypatch):
    def refuse(**kwargs):
        raise errors.InterfaceError(msg="Can't connect to MySQL server", errno=2003)

    monkeypatch.setattr(connection_module.mysql.connector, "connect", refuse)
    factory = DatabaseConnection(DBConfig.from_dict({"host": "db", "user": "root", "password": "", "database": "hostel_db"}))

    with pytest.raises(StorageUnavailableError):
        factory.connect()


def test_attendance_duplicate_key_is_conflict():
    factory = StubConnectionFactory(fail_with=duplicate_key())
    repo = MySQLAttendanceRepository(factory)

    with pytest.raises(ConflictError):
        repo.create(user_id=2, attendance_date=date(2025, 3, 15), status=AttendanceStatus.PRESENT)

    assert "rollback" in factory.conn.calls


def test_attendance_other_integrity_errors_propagate():
    missing_user = errors.IntegrityError(msg="Cannot add or update a child row", errno=errorcode.ER_NO_REFERENCED_ROW_2)
    repo = MySQLAttendanceRepository(StubConnectionFactory(fail_with=missing_user))

    with pytest.raises(errors.IntegrityError):
        repo.create(user_id=404, attendance_date=date(2025, 3, 15), status=AttendanceStatus.LATE)


def test_attendance_create_returns_new_id():
    factory = StubConnectionFactory(lastrowid=41)
    repo = MySQLAttendanceRepository(factory)

    assert repo.create(user_id=2, attendance_date=date(2025, 3, 15), status=AttendanceStatus.PRESENT) == 41
    sql, params = factory.conn.cur.statements[0]
    assert "INSERT INTO attendance_records" in sql
    assert params[:3] == (2, date(2025, 3, 15), "present")


def test_mark_paid_is_conditional_on_not_paid():
    factory = StubConnectionFactory(rowcount=1)
    repo = MySQLFeeRepository(factory)

    assert repo.mark_paid(fee_id=5, paid_date=date(2025, 3, 15), receipt_no="R-1") is True
    sql, params = factory.conn.cur.statements[0]
    assert "status<>%s" in sql
    assert params == ("paid", date(2025, 3, 15), "R-1", 5, "paid")


def test_mark_paid_reports_lost_race():
    repo = MySQLFeeRepository(StubConnectionFactory(rowcount=0))

    assert repo.mark_paid(fee_id=5, paid_date=date(2025, 3, 15), receipt_no=None) is False


def test_mark_overdue_only_touches_pending_past_due():
    factory = StubConnectionFactory(rowcount=3)
    repo = MySQLFeeRepository(factory)

    assert repo.mark_overdue(today=date(2025, 3, 15)) == 3
    _, params = factory.conn.cur.statements[0]
    assert params == ("overdue", "pending", date(2025, 3, 15))


def test_occupancy_store_duplicate_room_is_conflict():
    factory = StubConnectionFactory(fail_with=duplicate_key())
    store = MySQLOccupancyStore(factory)

    with pytest.raises(ConflictError):
        with store.transaction() as tx:
            tx.insert_room(room_no="A101", capacity=2, room_type=RoomType.DOUBLE, floor=1)

    assert factory.conn.calls == ["start_transaction", "cursor", "rollback", "close"]


def test_occupancy_store_locks_rooms_in_id_order():
    factory = StubConnectionFactory()
    store = MySQLOccupancyStore(factory)

    with store.transaction() as tx:
        assert tx.lock_rooms_by_number(["B201", "A101", "B201"]) == {}

    sql, params = factory.conn.cur.statements[0]
    assert "ORDER BY r.room_id FOR UPDATE" in sql
    assert params == ("A101", "B201")
    assert factory.conn.calls[-2:] == ["commit", "close"]
