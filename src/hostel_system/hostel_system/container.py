from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import LATE_CUTOFF
from .database.connection import DBConfig, DatabaseConnection
from .fees.mysql_fee_repository import MySQLFeeRepository
from .fees.repository import FeeRepository
from .fees.service import FeeService
from .rooms.mysql_occupancy_store import MySQLOccupancyStore
from .rooms.mysql_room_repository import MySQLRoomRepository
from .rooms.repository import OccupancyStore, RoomRepository
from .rooms.service import OccupancyService, RoomService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, DashboardService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    rooms_repo: RoomRepository
    occupancy_store: OccupancyStore
    attendance_repo: AttendanceRepository
    fees_repo: FeeRepository

    auth_service: AuthService
    user_service: UserService
    occupancy_service: OccupancyService
    room_service: RoomService
    attendance_service: AttendanceService
    fee_service: FeeService
    dashboard_service: DashboardService


def wire_container(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    rooms_repo: RoomRepository,
    occupancy_store: OccupancyStore,
    attendance_repo: AttendanceRepository,
    fees_repo: FeeRepository,
    late_cutoff: time = LATE_CUTOFF,
    token_max_age_minutes: Optional[int] = None,
) -> Container:
    """Build services on top of the given repositories (MySQL or in-memory)."""

    occupancy_service = OccupancyService(occupancy_store)
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        strategy_factory=AttendanceStrategyFactory(cutoff=late_cutoff),
        token_max_age_minutes=token_max_age_minutes,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        rooms_repo=rooms_repo,
        occupancy_store=occupancy_store,
        attendance_repo=attendance_repo,
        fees_repo=fees_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo, occupancy_store, occupancy_service),
        occupancy_service=occupancy_service,
        room_service=RoomService(rooms_repo),
        attendance_service=attendance_service,
        fee_service=FeeService(fees_repo, users_repo),
        dashboard_service=DashboardService(users_repo, rooms_repo, fees_repo),
    )


def build_container(
    *,
    db_config: dict,
    late_cutoff: time = LATE_CUTOFF,
    token_max_age_minutes: Optional[int] = None,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    return wire_container(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        rooms_repo=MySQLRoomRepository(conn),
        occupancy_store=MySQLOccupancyStore(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        fees_repo=MySQLFeeRepository(conn),
        late_cutoff=late_cutoff,
        token_max_age_minutes=token_max_age_minutes,
    )
