"""
Chart routes (``/api/charts``).

Private charts belong to their creator; public charts are listed, viewed and
liked by everyone.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chart_service import ChartService
from config import settings
from database import get_db
from dependencies import get_current_user, get_optional_user
from models import User
from schemas import ChartCreate, ChartUpdate

from .responses import respond

router = APIRouter(prefix="/charts", tags=["Charts"])


@router.post("/", status_code=201)
def create_chart(payload: ChartCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Build a chart from a processed file the caller owns or that is public."""
    return respond(ChartService.create_chart(db, user, payload))


@router.get("/")
def list_charts(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=100),
    chart_type: Optional[str] = Query(None, alias="type"),
    public: bool = Query(False),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    ``public=true`` lists public charts by popularity; otherwise the caller's own
    charts are listed, which requires an identified user.
    """
    return respond(ChartService.list_charts(db, user, page, limit, chart_type, public))


@router.get("/{chart_id}")
def get_chart(chart_id: int, user: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    return respond(ChartService.get_chart(db, user, chart_id))


@router.put("/{chart_id}")
def update_chart(
    chart_id: int,
    payload: ChartUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return respond(ChartService.update_chart(db, user, chart_id, payload))


@router.delete("/{chart_id}")
def delete_chart(chart_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return respond(ChartService.delete_chart(db, user, chart_id))


@router.post("/{chart_id}/like")
def toggle_like(chart_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return respond(ChartService.toggle_like(db, user, chart_id))
