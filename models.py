"""
ORM models for users, uploaded spreadsheet files and charts.

Parsed spreadsheet content (rows, headers, column analysis) and chart
configuration/series are semi-structured and stored in JSON columns.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base

USER_ROLES = ("user", "admin")

FILE_STATUSES = ("uploading", "processing", "completed", "failed")

EXCEL_MIME_TYPES = (
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_processed_data() -> dict:
    return {"headers": [], "rows": [], "total_rows": 0, "total_columns": 0}


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)

    files = relationship("File", back_populates="owner")
    charts = relationship("Chart", back_populates="creator")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r}, role={self.role!r})"


class File(TimestampMixin, Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    path = Column(String(1024), nullable=False)
    size = Column(Integer, nullable=False)
    mimetype = Column(String(100), nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="uploading", index=True)
    processed_data = Column(JSON, nullable=False, default=empty_processed_data)
    # "metadata" is reserved on declarative classes
    file_metadata = Column("metadata", JSON, nullable=False, default=dict)
    is_public = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=False, default="")

    owner = relationship("User", back_populates="files")
    charts = relationship(
        "Chart",
        back_populates="file",
        cascade="all, delete-orphan",
        order_by="Chart.created_at",
    )

    @property
    def charts_count(self) -> int:
        return len(self.charts) if self.charts else 0

    def __repr__(self) -> str:
        return f"File(id={self.id!r}, original_name={self.original_name!r}, status={self.status!r})"


class Chart(TimestampMixin, Base):
    __tablename__ = "charts"

    id = Column(Integer, primary_key=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    chart_type = Column(String(20), nullable=False, index=True)
    dimension = Column(String(2), nullable=False)
    file_id = Column(Integer, ForeignKey("files.id"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    config = Column(JSON, nullable=False, default=dict)
    chart_data = Column(JSON, nullable=False, default=dict)
    is_public = Column(Boolean, nullable=False, default=False, index=True)
    views = Column(Integer, nullable=False, default=0)
    tags = Column(JSON, nullable=False, default=list)

    file = relationship("File", back_populates="charts")
    creator = relationship("User", back_populates="charts")
    likes = relationship("ChartLike", back_populates="chart", cascade="all, delete-orphan")

    @property
    def likes_count(self) -> int:
        return len(self.likes) if self.likes else 0

    @property
    def chart_url(self) -> str:
        return f"/api/charts/{self.id}"

    def is_liked_by(self, user_id: int) -> bool:
        return any(like.user_id == user_id for like in self.likes)

    def __repr__(self) -> str:
        return f"Chart(id={self.id!r}, title={self.title!r}, chart_type={self.chart_type!r})"


class ChartLike(Base):
    __tablename__ = "chart_likes"
    __table_args__ = (UniqueConstraint("chart_id", "user_id", name="uq_chart_like_user"),)

    id = Column(Integer, primary_key=True)
    chart_id = Column(Integer, ForeignKey("charts.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    liked_at = Column(DateTime, default=utcnow, nullable=False)

    chart = relationship("Chart", back_populates="likes")
