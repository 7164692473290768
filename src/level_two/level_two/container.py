from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Optional

from .core.constants import DEFAULT_REPORT_MONTHS, DEFAULT_WORKSPACE_IDLE_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .members.mysql_member_repository import MySQLMemberRepository
from .members.repository import MemberRepository
from .members.service import MemberService
from .realtime.feed import ChangeFeed
from .records.model import ATTENDANCE, VISITATION, RecordKind
from .records.mysql_record_repository import MySQLRecordRepository
from .records.repository import RecordRepository
from .records.workspace import TrackingWorkspace, WorkspaceRegistry
from .reports.service import ReportService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService
from .visitation.mysql_assignment_repository import MySQLAssignmentRepository
from .visitation.repository import AssignmentRepository
from .visitation.service import AssignmentService


@dataclass(frozen=True)
class Container:
    feed: ChangeFeed

    users_repo: UserRepository
    members_repo: MemberRepository
    attendance_repo: RecordRepository
    visits_repo: RecordRepository
    assignments_repo: AssignmentRepository

    auth_service: AuthService
    user_service: UserService
    member_service: MemberService
    assignment_service: AssignmentService
    report_service: ReportService
    workspaces: WorkspaceRegistry

    conn: Optional[DatabaseConnection] = None


def wire_container(
    *,
    feed: ChangeFeed,
    users_repo: UserRepository,
    members_repo: MemberRepository,
    attendance_repo: RecordRepository,
    visits_repo: RecordRepository,
    assignments_repo: AssignmentRepository,
    conn: Optional[DatabaseConnection] = None,
    idle_minutes: int = DEFAULT_WORKSPACE_IDLE_MINUTES,
    report_months: int = DEFAULT_REPORT_MONTHS,
) -> Container:
    """Build services and the workspace registry on top of already constructed repositories."""

    record_repos = {ATTENDANCE.table: attendance_repo, VISITATION.table: visits_repo}

    def make_workspace(kind: RecordKind) -> TrackingWorkspace:
        return TrackingWorkspace(
            kind,
            records=record_repos[kind.table],
            members=members_repo,
            users=users_repo,
            feed=feed,
            assignments=assignments_repo if kind.table == VISITATION.table else None,
        )

    return Container(
        feed=feed,
        users_repo=users_repo,
        members_repo=members_repo,
        attendance_repo=attendance_repo,
        visits_repo=visits_repo,
        assignments_repo=assignments_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        member_service=MemberService(members_repo),
        assignment_service=AssignmentService(assignments_repo, members_repo, users_repo),
        report_service=ReportService(attendance_repo, default_months=report_months),
        workspaces=WorkspaceRegistry(make_workspace, idle_seconds=idle_minutes * 60),
        conn=conn,
    )


def build_container(*, db_config: dict, **options) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    feed = ChangeFeed()
    record_repo = partial(MySQLRecordRepository, conn, feed=feed)

    return wire_container(
        feed=feed,
        users_repo=MySQLUserRepository(conn),
        members_repo=MySQLMemberRepository(conn, feed),
        attendance_repo=record_repo(ATTENDANCE),
        visits_repo=record_repo(VISITATION),
        assignments_repo=MySQLAssignmentRepository(conn, feed),
        conn=conn,
        **options,
    )
