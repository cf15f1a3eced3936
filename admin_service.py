import os
import sys
import logging
import platform
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from chart_service import ChartService
from config import settings
from database import check_connection
from file_service import FileService
from models import Chart, File, User
from schemas import RoleUpdate, StatusUpdate, UserCreate, UserOut
from upload import directory_size
from utils.pagination import paginate
from utils.result import Result

logger = logging.getLogger(__name__)

BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB", "PB")


def format_bytes(size: int, decimals: int = 2) -> str:
    """Human readable byte count, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"

    unit_index = 0
    value = float(size)
    while value >= 1024 and unit_index < len(BYTE_UNITS) - 1:
        value /= 1024
        unit_index += 1

    rounded = round(value, max(decimals, 0))
    if rounded == int(rounded):
        rounded = int(rounded)
    return f"{rounded} {BYTE_UNITS[unit_index]}"


class AdminService:
    """
    Administrative use cases: user management and moderation of files and charts.

    Callers are already verified as admins by the route dependencies.
    """

    @staticmethod
    def list_users(
        db: Session,
        page: int,
        limit: int,
        search: str = "",
        role: Optional[str] = None,
        status: Optional[str] = None
    ) -> Result[Dict[str, Any]]:
        """
        Users, newest first.

        Args:
            search: Case-insensitive match on username, email, first or last name
            role: "user" or "admin"
            status: "active" or "inactive"
        """
        query = db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern)
            ))
        if role:
            query = query.filter(User.role == role)
        if status:
            query = query.filter(User.is_active.is_(status == "active"))

        users, info = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
        return Result.ok({"users": [UserOut.from_user(user) for user in users], **info})

    @staticmethod
    def create_user(db: Session, payload: UserCreate) -> Result[UserOut]:
        """Provision an account for a user authenticated by the upstream identity provider."""
        taken = db.query(User).filter(
            or_(User.username == payload.username, User.email == payload.email)
        ).first()
        if taken is not None:
            return Result.invalid_input("User already exists with this email or username")

        user = User(
            username=payload.username,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            role=payload.role
        )
        db.add(user)
        db.commit()
        logger.info("User provisioned", extra={"user_id": user.id, "role": user.role})
        return Result.created(UserOut.from_user(user))

    @staticmethod
    def update_role(db: Session, admin: User, user_id: int, payload: RoleUpdate) -> Result[UserOut]:
        user = db.get(User, user_id)
        if user is None:
            return Result.not_found("User not found")
        if user.id == admin.id and payload.role != admin.role:
            return Result.invalid_input("You cannot change your own role")

        user.role = payload.role
        db.commit()
        logger.info("User role updated", extra={"user_id": user.id, "role": user.role, "admin_id": admin.id})
        return Result.ok(UserOut.from_user(user))

    @staticmethod
    def update_status(db: Session, admin: User, user_id: int, payload: StatusUpdate) -> Result[UserOut]:
        user = db.get(User, user_id)
        if user is None:
            return Result.not_found("User not found")
        if user.id == admin.id and not payload.is_active:
            return Result.invalid_input("You cannot deactivate your own account")

        user.is_active = payload.is_active
        db.commit()
        logger.info(
            f"User {'activated' if user.is_active else 'deactivated'}",
            extra={"user_id": user.id, "admin_id": admin.id}
        )
        return Result.ok(UserOut.from_user(user))

    @staticmethod
    def list_files(db: Session, page: int, limit: int, status: Optional[str] = None) -> Result[Dict[str, Any]]:
        query = db.query(File)
        if status:
            query = query.filter(File.status == status)
        return Result.ok(FileService.page_of_files(query, page, limit))

    @staticmethod
    def delete_file(db: Session, file_id: int) -> Result[Dict[str, Any]]:
        record = db.get(File, file_id)
        if record is None:
            return Result.not_found("File not found")
        return Result.ok(FileService.delete_record(db, record))

    @staticmethod
    def list_charts(db: Session, page: int, limit: int, chart_type: Optional[str] = None) -> Result[Dict[str, Any]]:
        query = db.query(Chart)
        if chart_type:
            query = query.filter(Chart.chart_type == chart_type)
        query = query.order_by(Chart.created_at.desc(), Chart.id.desc())
        return Result.ok(ChartService.page_of_charts(query, page, limit))

    @staticmethod
    def delete_chart(db: Session, chart_id: int) -> Result[Dict[str, Any]]:
        chart = db.get(Chart, chart_id)
        if chart is None:
            return Result.not_found("Chart not found")
        return Result.ok(ChartService.delete_record(db, chart))

    @staticmethod
    def system_info(db: Session) -> Result[Dict[str, Any]]:
        """Host, interpreter, upload storage and database connectivity."""
        uploads_size = directory_size(settings.upload_dir)
        return Result.ok({
            "system": {
                "platform": sys.platform,
                "architecture": platform.machine(),
                "python_version": platform.python_version(),
                "cpus": os.cpu_count()
            },
            "storage": {
                "uploads_size": uploads_size,
                "uploads_size_formatted": format_bytes(uploads_size)
            },
            "database": {
                "connected": check_connection(db.get_bind())
            }
        })
