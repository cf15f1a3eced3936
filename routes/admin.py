"""
Admin routes (``/api/admin``): user management and moderation.

Every endpoint requires an active user with the admin role.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from admin_service import AdminService
from config import settings
from database import get_db
from dependencies import require_admin
from models import User
from schemas import RoleUpdate, StatusUpdate, UserCreate

from .responses import respond

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    search: str = Query(""),
    role: Optional[str] = Query(None, pattern="^(user|admin)$"),
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    db: Session = Depends(get_db),
):
    return respond(AdminService.list_users(db, page, limit, search.strip(), role, status))


@router.post("/users", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return respond(AdminService.create_user(db, payload))


@router.put("/users/{user_id}/role")
def update_user_role(
    user_id: int,
    payload: RoleUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return respond(AdminService.update_role(db, admin, user_id, payload))


@router.put("/users/{user_id}/status")
def update_user_status(
    user_id: int,
    payload: StatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Activate or deactivate a user; admins cannot deactivate themselves."""
    return respond(AdminService.update_status(db, admin, user_id, payload))


@router.get("/files")
def list_files(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return respond(AdminService.list_files(db, page, limit, status))


@router.delete("/files/{file_id}")
def delete_file(file_id: int, db: Session = Depends(get_db)):
    """Delete any file together with its charts."""
    return respond(AdminService.delete_file(db, file_id))


@router.get("/charts")
def list_charts(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    chart_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db),
):
    return respond(AdminService.list_charts(db, page, limit, chart_type))


@router.delete("/charts/{chart_id}")
def delete_chart(chart_id: int, db: Session = Depends(get_db)):
    return respond(AdminService.delete_chart(db, chart_id))


@router.get("/system-info")
def system_info(db: Session = Depends(get_db)):
    return respond(AdminService.system_info(db))
